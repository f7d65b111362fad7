"""Enum definitions for application constants."""

from app.db.enums.auth import LEGACY_ROLE_ALIASES, ROLES_STAFF, Role
from app.db.enums.clients import ServiceType
from app.db.enums.forms import (
    ConditionOperator,
    FieldWidth,
    FormFieldType,
    FormHandlerType,
    PrefillKey,
    SubmissionStatus,
)

__all__ = [
    "ConditionOperator",
    "FieldWidth",
    "FormFieldType",
    "FormHandlerType",
    "LEGACY_ROLE_ALIASES",
    "PrefillKey",
    "Role",
    "ROLES_STAFF",
    "ServiceType",
    "SubmissionStatus",
]
