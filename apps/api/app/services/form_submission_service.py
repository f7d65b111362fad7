"""Form submission service: conditional visibility, validation, submit flow and review."""

import html
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.enums import ConditionOperator, FormFieldType, FormHandlerType, PrefillKey, SubmissionStatus
from app.db.models import ClientContact, FormSubmission
from app.schemas.auth import Identity
from app.schemas.common import ActionResult
from app.schemas.forms import FieldCondition, FieldValue, FormField, FormSettings, FormSubmitResponse
from app.services import form_service, resend_email_service
from app.services.helpscout_service import HelpScoutClient
from app.services.http_service import IntegrationError, send_request

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
WEBHOOK_TIMEOUT_SECONDS = 10.0
FALLBACK_CUSTOMER_EMAIL = "unknown@unknown.com"
FALLBACK_CUSTOMER_NAME = "Portal User"


# =============================================================================
# Conditional visibility
# =============================================================================

def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    return str(value)


def evaluate_condition(operator: ConditionOperator | str, value: Any, expected: str | None) -> bool:
    """Compare another field's current value against a literal.

    Multi-valued answers are joined with ", "; absent answers are "".
    """
    text = _as_text(value)
    target = expected or ""
    op = ConditionOperator(operator)
    if op == ConditionOperator.EQUALS:
        return text == target
    if op == ConditionOperator.NOT_EQUALS:
        return text != target
    if op == ConditionOperator.CONTAINS:
        return target.lower() in text.lower()
    if op == ConditionOperator.IS_EMPTY:
        return text == ""
    if op == ConditionOperator.IS_NOT_EMPTY:
        return text != ""
    return True


def _condition_holds(condition: FieldCondition, values: dict[str, Any]) -> bool:
    return evaluate_condition(condition.operator, values.get(condition.field_id), condition.value)


def is_visible(field: FormField, values: dict[str, Any]) -> bool:
    """Visible when it has no conditions or every condition holds."""
    return all(_condition_holds(c, values) for c in field.conditions)


# =============================================================================
# Validation and payload
# =============================================================================

def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, list):
        return not any(str(v).strip() for v in value)
    return str(value).strip() == ""


def _validate_field_value(field: FormField, value: FieldValue) -> None:
    if isinstance(value, list) and field.type != FormFieldType.CHECKBOX:
        raise ValueError(f"{field.label} must be a single value")

    if field.type == FormFieldType.EMAIL and not EMAIL_PATTERN.match(value.strip()):
        raise ValueError(f"{field.label} must be a valid email address")

    if field.type.has_options:
        chosen = value if isinstance(value, list) else [value]
        allowed = set(field.options or [])
        invalid = [c for c in chosen if c not in allowed]
        if invalid:
            raise ValueError(f"{field.label} has an invalid option: {invalid[0]}")


def validate_submission(fields: list[FormField], values: dict[str, Any]) -> None:
    """
    Check submitted values against the field definitions.

    Hidden and layout fields are skipped.

    Raises:
        ValueError: First problem found, labelled with the field name
    """
    for field in fields:
        if field.type.is_layout or not is_visible(field, values):
            continue
        value = values.get(field.id)
        if _is_missing(value):
            if field.required:
                raise ValueError(f"{field.label} is required")
            continue
        _validate_field_value(field, value)


def build_payload(
    fields: list[FormField],
    values: dict[str, Any],
    form_settings: FormSettings,
) -> dict[str, FieldValue]:
    """Keep declared value-carrying fields; drop hidden ones when configured."""
    payload: dict[str, FieldValue] = {}
    for field in fields:
        if field.type.is_layout or field.id not in values:
            continue
        if form_settings.discard_hidden_values and not is_visible(field, values):
            continue
        payload[field.id] = values[field.id]
    return payload


def labeled_values(fields: list[FormField], payload: dict[str, FieldValue]) -> list[tuple[str, str]]:
    return [
        (field.label, _as_text(payload.get(field.id)))
        for field in fields
        if not field.type.is_layout and field.id in payload
    ]


# =============================================================================
# Submit flow
# =============================================================================

def _submitter_client_id(db: Session, identity: Identity | None) -> uuid.UUID | None:
    if identity is None:
        return None
    contact = (
        db.query(ClientContact)
        .filter(
            ClientContact.external_user_id == identity.id,
            ClientContact.is_active.is_(True),
        )
        .order_by(ClientContact.created_at.asc())
        .first()
    )
    return contact.client_id if contact else None


def _find_value(
    fields: list[FormField],
    payload: dict[str, FieldValue],
    prefill_key: PrefillKey,
    fallback,
) -> str:
    field = next((f for f in fields if f.prefill_key == prefill_key), None)
    if field is None:
        field = next((f for f in fields if fallback(f)), None)
    if field is None:
        return ""
    return _as_text(payload.get(field.id)).strip()


async def _create_helpscout_conversation(
    helpscout: HelpScoutClient,
    form_name: str,
    fields: list[FormField],
    payload: dict[str, FieldValue],
    form_settings: FormSettings,
    identity: Identity | None,
) -> None:
    email = _find_value(
        fields, payload, PrefillKey.EMAIL, lambda f: f.type == FormFieldType.EMAIL
    )
    name = _find_value(
        fields,
        payload,
        PrefillKey.NAME,
        lambda f: f.type == FormFieldType.TEXT and "name" in f.label.lower(),
    )
    body = "".join(
        f"<p><strong>{html.escape(label)}:</strong> {html.escape(value)}</p>"
        for label, value in labeled_values(fields, payload)
    )
    subject = (form_settings.subject or "").strip() or f"[{form_name}] New Submission"
    # Form-entered email wins over the signed-in identity
    await helpscout.create_conversation(
        email or (identity.email if identity else "") or FALLBACK_CUSTOMER_EMAIL,
        name or FALLBACK_CUSTOMER_NAME,
        subject,
        body,
    )


async def _post_webhook(url: str, body: dict) -> None:
    async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS) as client:
        await send_request(client, "webhook", "POST", url, json=body)


async def submit_form(
    db: Session,
    form_id: uuid.UUID,
    values: dict[str, FieldValue],
    identity: Identity | None = None,
    helpscout: HelpScoutClient | None = None,
) -> ActionResult[FormSubmitResponse]:
    """
    Accept a public submission.

    Order: validate, hand off to HelpScout (if that is the form's handler),
    store, notify by email, post the webhook. Notification and webhook
    failures are logged and do not fail the submission.
    """
    form = form_service.get_form(db, form_id)
    if form is None or not form.is_active:
        return ActionResult.fail("Form not found or inactive")

    fields = form_service.parse_fields(form)
    form_settings = form_service.parse_settings(form)

    try:
        validate_submission(fields, values)
    except ValueError as exc:
        return ActionResult.fail(str(exc))

    payload = build_payload(fields, values, form_settings)
    client_id = _submitter_client_id(db, identity)
    submitted_at = datetime.now(timezone.utc)

    if form_settings.type == FormHandlerType.HELPSCOUT:
        if helpscout is None:
            return ActionResult.fail("Support system not configured.")
        try:
            await _create_helpscout_conversation(
                helpscout, form.name, fields, payload, form_settings, identity
            )
        except IntegrationError:
            logger.warning("HelpScout handoff failed", extra={"form_id": str(form.id)})
            return ActionResult.fail("Submission failed. Please try again later.")

    if form_settings.store_submissions:
        submission = FormSubmission(
            form_id=form.id,
            data=payload,
            meta={
                "client_id": str(client_id) if client_id else None,
                "email": identity.email if identity else None,
            },
            status=SubmissionStatus.NEW.value,
        )
        db.add(submission)
        db.commit()

    if form_settings.email_notification and form_settings.email_to:
        body_html = resend_email_service.build_submission_email(
            form_name=form.name,
            fields=labeled_values(fields, payload),
            submitted_at=submitted_at,
            admin_url=f"{settings.FRONTEND_URL}/admin/forms/{form.id}/submissions",
        )
        subject = (form_settings.subject or "").strip() or f"New submission: {form.name}"
        await resend_email_service.send_email(form_settings.email_to, subject, body_html)

    if form_settings.webhook_url:
        try:
            await _post_webhook(
                form_settings.webhook_url,
                {
                    "form_id": str(form.id),
                    "form_name": form.name,
                    "data": payload,
                    "submitted_at": submitted_at.isoformat(),
                    "client_id": str(client_id) if client_id else None,
                },
            )
        except IntegrationError:
            logger.warning("Form webhook failed", extra={"form_id": str(form.id)})

    logger.info(
        "Form submitted",
        extra={"form_id": str(form.id), "client_id": str(client_id) if client_id else None},
    )
    return ActionResult.ok(
        FormSubmitResponse(
            message=form_settings.success_message,
            redirect_url=form_settings.redirect_url,
        )
    )


# =============================================================================
# Staff review
# =============================================================================

def list_submissions(
    db: Session,
    form_id: uuid.UUID,
    status: SubmissionStatus | None = None,
    page: int = 1,
    per_page: int = 25,
) -> tuple[list[FormSubmission], int]:
    query = db.query(FormSubmission).filter(FormSubmission.form_id == form_id)
    if status is not None:
        query = query.filter(FormSubmission.status == status.value)
    total = query.count()
    items = (
        query.order_by(FormSubmission.created_at.desc(), FormSubmission.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return items, total


def get_submission(db: Session, submission_id: uuid.UUID) -> FormSubmission | None:
    """Fetch a submission, marking it READ the first time staff open it."""
    submission = db.query(FormSubmission).filter(FormSubmission.id == submission_id).first()
    if submission is not None and submission.status == SubmissionStatus.NEW.value:
        submission.status = SubmissionStatus.READ.value
        db.commit()
        db.refresh(submission)
    return submission


def update_submission_status(
    db: Session, submission_ids: list[uuid.UUID], status: SubmissionStatus
) -> int:
    updated = (
        db.query(FormSubmission)
        .filter(FormSubmission.id.in_(submission_ids))
        .update({FormSubmission.status: status.value}, synchronize_session=False)
    )
    db.commit()
    return updated


def delete_submissions(db: Session, submission_ids: list[uuid.UUID]) -> int:
    deleted = (
        db.query(FormSubmission)
        .filter(FormSubmission.id.in_(submission_ids))
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
