"""Form-related enums."""

from enum import Enum


class FormFieldType(str, Enum):
    """Field types supported by the form builder."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    PHONE = "phone"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    HEADING = "heading"
    DIVIDER = "divider"

    @property
    def is_layout(self) -> bool:
        """Layout-only fields never carry a value."""
        return self in (FormFieldType.HEADING, FormFieldType.DIVIDER)

    @property
    def has_options(self) -> bool:
        return self in (FormFieldType.SELECT, FormFieldType.CHECKBOX, FormFieldType.RADIO)


class ConditionOperator(str, Enum):
    """Operators for show/hide rules."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class FormHandlerType(str, Enum):
    """What happens to an accepted submission besides storage."""

    STANDARD = "standard"
    HELPSCOUT = "helpscout"


class FieldWidth(str, Enum):
    FULL = "full"
    HALF = "half"


class PrefillKey(str, Enum):
    """Prefill keys that map to known client data."""

    NAME = "name"
    EMAIL = "email"
    WEBSITE = "website"
    SERVICE_NAME = "service_name"


class SubmissionStatus(str, Enum):
    """Staff review state of a submission: NEW -> READ -> ARCHIVED."""

    NEW = "NEW"
    READ = "READ"
    ARCHIVED = "ARCHIVED"
