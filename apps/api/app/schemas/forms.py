"""Schemas for builder forms and submissions."""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from app.db.enums import (
    ConditionOperator,
    FieldWidth,
    FormFieldType,
    FormHandlerType,
    PrefillKey,
    SubmissionStatus,
)


FieldValue = str | list[str]


class FieldCondition(BaseModel):
    """Show the owning field only when another field's value matches."""

    field_id: str = Field(..., min_length=1, max_length=100)
    operator: ConditionOperator
    value: str | None = None


class FormField(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    type: FormFieldType
    label: str = Field(..., min_length=1, max_length=200)
    placeholder: str | None = None
    required: bool = False
    options: list[str] | None = None
    width: FieldWidth = FieldWidth.FULL
    order: int = 0
    conditions: list[FieldCondition] = Field(default_factory=list)
    prefill_key: PrefillKey | None = None


class FormSettings(BaseModel):
    """Per-form handler settings, stored as JSON on the form."""

    type: FormHandlerType = FormHandlerType.STANDARD
    email_notification: bool = True
    email_to: str = ""
    subject: str | None = None
    store_submissions: bool = True
    webhook_url: str | None = None
    submit_button_label: str = "Submit"
    success_message: str = "Thanks! We'll be in touch."
    redirect_url: str | None = None
    # Values left in fields hidden at submit time are dropped from the payload
    discard_hidden_values: bool = True


DEFAULT_FORM_SETTINGS = FormSettings()


def _validate_field_list(fields: list[FormField]) -> list[FormField]:
    ids = [f.id for f in fields]
    duplicates = {i for i in ids if ids.count(i) > 1}
    if duplicates:
        raise ValueError(f"Duplicate field ids: {', '.join(sorted(duplicates))}")
    known = set(ids)
    for field in fields:
        if field.type.has_options and not field.options:
            raise ValueError(f"Field '{field.label}' needs at least one option")
        for condition in field.conditions:
            if condition.field_id == field.id:
                raise ValueError(f"Field '{field.label}' cannot depend on itself")
            if condition.field_id not in known:
                raise ValueError(
                    f"Field '{field.label}' references unknown field '{condition.field_id}'"
                )
    return sorted(fields, key=lambda f: f.order)


class FormCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    slug: str = Field(..., min_length=1, max_length=150, pattern=r"^[a-z0-9-]+$")
    description: str | None = None
    fields: list[FormField] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)
    is_active: bool = True

    @model_validator(mode="after")
    def _check_fields(self) -> "FormCreate":
        self.fields = _validate_field_list(self.fields)
        return self


class FormUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=150)
    slug: str | None = Field(None, min_length=1, max_length=150, pattern=r"^[a-z0-9-]+$")
    description: str | None = None
    fields: list[FormField] | None = None
    settings: FormSettings | None = None
    is_active: bool | None = None

    @model_validator(mode="after")
    def _check_fields(self) -> "FormUpdate":
        if self.fields is not None:
            self.fields = _validate_field_list(self.fields)
        return self


class FormSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class FormRead(FormSummary):
    description: str | None
    fields: list[FormField]
    settings: FormSettings


class FormPublicRead(BaseModel):
    """What the renderer needs; no notification targets or webhooks."""

    id: UUID
    name: str
    slug: str
    description: str | None
    fields: list[FormField]
    submit_button_label: str
    prefill: dict[str, str] = Field(default_factory=dict)


class FormSubmitRequest(BaseModel):
    data: dict[str, FieldValue] = Field(default_factory=dict)


class FormSubmitResponse(BaseModel):
    message: str
    redirect_url: str | None = None


class SubmissionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    form_id: UUID
    data: dict
    meta: dict = Field(
        validation_alias=AliasChoices("meta", "metadata"),
        serialization_alias="metadata",
    )
    status: SubmissionStatus
    created_at: datetime


class SubmissionListResponse(BaseModel):
    items: list[SubmissionRead]
    total: int
    page: int
    per_page: int


class SubmissionStatusUpdate(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)
    status: SubmissionStatus


class SubmissionBulkDelete(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)
