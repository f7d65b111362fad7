"""
Form submission service tests.

Tests cover:
- Condition operators and multi-value answers
- Validation skips hidden and layout fields
- Hidden values dropped from the stored payload
- Submit flow: storage, HelpScout handoff, notification, webhook
- Staff review: listing, READ on open, bulk status and delete
"""

import uuid

import pytest

from app.db.enums import ConditionOperator, FormFieldType, SubmissionStatus
from app.db.models import FormSubmission
from app.schemas.auth import Identity
from app.schemas.forms import FieldCondition, FormCreate, FormField, FormSettings
from app.services import form_service, form_submission_service, resend_email_service
from app.services.form_submission_service import (
    build_payload,
    evaluate_condition,
    is_visible,
    validate_submission,
)
from app.services.http_service import IntegrationError

from tests.conftest import CLIENT_USER_ID, make_client, make_contact


def _field(field_id, field_type="text", label=None, **kwargs) -> FormField:
    return FormField(id=field_id, type=field_type, label=label or field_id.title(), **kwargs)


CONTACT_FIELDS = [
    _field("name", label="Your name", required=True, order=0, prefill_key="name"),
    _field("email", "email", label="Email", required=True, order=1, prefill_key="email"),
    _field("topic", "select", label="Topic", options=["Billing", "Other"], required=True, order=2),
    _field(
        "details",
        "textarea",
        label="Details",
        required=True,
        order=3,
        conditions=[FieldCondition(field_id="topic", operator="equals", value="Other")],
    ),
    _field("section", "heading", label="Extras", order=4),
]


def _create_form(db, settings: FormSettings | None = None, fields=None, slug="contact"):
    return form_service.create_form(
        db,
        FormCreate(
            name="Contact",
            slug=slug,
            fields=fields if fields is not None else CONTACT_FIELDS,
            settings=settings or FormSettings(email_notification=False),
        ),
    )


# =============================================================================
# Conditions
# =============================================================================


@pytest.mark.parametrize(
    "operator, value, expected, result",
    [
        (ConditionOperator.EQUALS, "Other", "Other", True),
        (ConditionOperator.EQUALS, "other", "Other", False),
        (ConditionOperator.NOT_EQUALS, "Billing", "Other", True),
        (ConditionOperator.NOT_EQUALS, None, "", False),
        (ConditionOperator.CONTAINS, "Need HELP now", "help", True),
        (ConditionOperator.CONTAINS, "", "help", False),
        (ConditionOperator.IS_EMPTY, None, None, True),
        (ConditionOperator.IS_EMPTY, [], None, True),
        (ConditionOperator.IS_NOT_EMPTY, "x", None, True),
        (ConditionOperator.IS_NOT_EMPTY, "", None, False),
    ],
)
def test_evaluate_condition(operator, value, expected, result):
    assert evaluate_condition(operator, value, expected) is result


def test_multi_value_answers_are_joined():
    assert evaluate_condition("equals", ["SEO", "Hosting"], "SEO, Hosting")
    assert evaluate_condition("contains", ["SEO", "Hosting"], "host")


def test_all_conditions_must_hold():
    field = _field(
        "budget",
        conditions=[
            FieldCondition(field_id="topic", operator="equals", value="Other"),
            FieldCondition(field_id="name", operator="is_not_empty"),
        ],
    )
    assert is_visible(field, {"topic": "Other", "name": "Ann"})
    assert not is_visible(field, {"topic": "Other", "name": ""})
    assert is_visible(_field("plain"), {})


# =============================================================================
# Validation and payload
# =============================================================================


def test_hidden_required_field_is_not_enforced():
    validate_submission(
        CONTACT_FIELDS, {"name": "Ann", "email": "ann@test.com", "topic": "Billing"}
    )


def test_visible_required_field_is_enforced():
    with pytest.raises(ValueError, match="Details is required"):
        validate_submission(
            CONTACT_FIELDS,
            {"name": "Ann", "email": "ann@test.com", "topic": "Other", "details": "  "},
        )


@pytest.mark.parametrize(
    "values, message",
    [
        ({"name": "Ann", "email": "not-an-email", "topic": "Billing"}, "valid email"),
        ({"name": "Ann", "email": "ann@test.com", "topic": "Sales"}, "invalid option"),
        ({"name": ["Ann"], "email": "ann@test.com", "topic": "Billing"}, "single value"),
    ],
)
def test_field_value_checks(values, message):
    with pytest.raises(ValueError, match=message):
        validate_submission(CONTACT_FIELDS, values)


def test_checkbox_accepts_multiple_known_options():
    fields = [_field("services", "checkbox", options=["SEO", "Hosting"], required=True)]
    validate_submission(fields, {"services": ["SEO", "Hosting"]})
    with pytest.raises(ValueError):
        validate_submission(fields, {"services": []})
    with pytest.raises(ValueError):
        validate_submission(fields, {"services": ["SEO", "Print"]})


def test_build_payload_drops_hidden_layout_and_unknown_values():
    values = {
        "name": "Ann",
        "email": "ann@test.com",
        "topic": "Billing",
        "details": "stale text",
        "section": "ignored",
        "extra": "not a field",
    }

    payload = build_payload(CONTACT_FIELDS, values, FormSettings())

    assert payload == {"name": "Ann", "email": "ann@test.com", "topic": "Billing"}


def test_build_payload_can_keep_hidden_values():
    values = {"name": "Ann", "email": "ann@test.com", "topic": "Billing", "details": "kept"}

    payload = build_payload(CONTACT_FIELDS, values, FormSettings(discard_hidden_values=False))

    assert payload["details"] == "kept"


# =============================================================================
# Submit flow
# =============================================================================


class FakeHelpScout:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple] = []

    async def create_conversation(self, customer_email, customer_name, subject, body_html):
        if self.fail:
            raise IntegrationError("helpscout", "HTTP 500", status_code=500)
        self.calls.append((customer_email, customer_name, subject, body_html))
        return "https://api.helpscout.net/v2/conversations/1"


@pytest.fixture
def sent(monkeypatch):
    """Capture outgoing notification emails and webhooks."""
    captured = {"emails": [], "webhooks": []}

    async def fake_send_email(to, subject, html, transport=None):
        captured["emails"].append((to, subject, html))
        return True

    async def fake_webhook(url, body):
        captured["webhooks"].append((url, body))

    monkeypatch.setattr(resend_email_service, "send_email", fake_send_email)
    monkeypatch.setattr(form_submission_service, "_post_webhook", fake_webhook)
    return captured


VALID = {"name": "Ann Lee", "email": "ann@test.com", "topic": "Billing"}


@pytest.mark.asyncio
async def test_submit_stores_payload_and_metadata(db, sent):
    client = make_client(db, "Acme")
    make_contact(db, client, CLIENT_USER_ID)
    form = _create_form(db)
    identity = Identity(id=CLIENT_USER_ID, email="owner@acme.com", name="Olive", role="client")

    result = await form_submission_service.submit_form(db, form.id, dict(VALID), identity=identity)

    assert result.success is True
    assert result.data.message == "Thanks! We'll be in touch."
    submission = db.query(FormSubmission).one()
    assert submission.data == VALID
    assert submission.meta == {"client_id": str(client.id), "email": "owner@acme.com"}
    assert submission.status == SubmissionStatus.NEW.value
    assert sent["emails"] == []


@pytest.mark.asyncio
async def test_submit_validation_failure_is_not_stored(db, sent):
    form = _create_form(db)

    result = await form_submission_service.submit_form(db, form.id, {"name": "Ann"})

    assert result.success is False
    assert result.error == "Email is required"
    assert db.query(FormSubmission).count() == 0


@pytest.mark.asyncio
async def test_submit_inactive_or_missing_form(db, sent):
    form = _create_form(db)
    form.is_active = False
    db.commit()

    inactive = await form_submission_service.submit_form(db, form.id, dict(VALID))
    missing = await form_submission_service.submit_form(db, uuid.uuid4(), dict(VALID))

    assert inactive.error == "Form not found or inactive"
    assert missing.error == "Form not found or inactive"


@pytest.mark.asyncio
async def test_submit_without_storage(db, sent):
    form = _create_form(db, FormSettings(store_submissions=False, email_notification=False))

    result = await form_submission_service.submit_form(db, form.id, dict(VALID))

    assert result.success is True
    assert db.query(FormSubmission).count() == 0


@pytest.mark.asyncio
async def test_submit_sends_notification_and_webhook(db, sent):
    form = _create_form(
        db,
        FormSettings(
            email_to="team@agency.com",
            webhook_url="https://hooks.test/forms",
            redirect_url="https://agency.test/thanks",
        ),
    )

    result = await form_submission_service.submit_form(db, form.id, dict(VALID))

    assert result.data.redirect_url == "https://agency.test/thanks"
    to, subject, body = sent["emails"][0]
    assert to == "team@agency.com"
    assert subject == "New submission: Contact"
    assert "Ann Lee" in body
    url, payload = sent["webhooks"][0]
    assert url == "https://hooks.test/forms"
    assert payload["data"] == VALID
    assert payload["form_id"] == str(form.id)


@pytest.mark.asyncio
async def test_webhook_failure_does_not_fail_submission(db, sent, monkeypatch):
    async def failing_webhook(url, body):
        raise IntegrationError("webhook", "HTTP 502", status_code=502)

    monkeypatch.setattr(form_submission_service, "_post_webhook", failing_webhook)
    form = _create_form(db, FormSettings(email_notification=False, webhook_url="https://hooks.test"))

    result = await form_submission_service.submit_form(db, form.id, dict(VALID))

    assert result.success is True
    assert db.query(FormSubmission).count() == 1


@pytest.mark.asyncio
async def test_helpscout_handler_creates_conversation(db, sent):
    form = _create_form(
        db, FormSettings(type="helpscout", email_notification=False, subject="Website request")
    )
    helpscout = FakeHelpScout()

    result = await form_submission_service.submit_form(
        db, form.id, dict(VALID), helpscout=helpscout
    )

    assert result.success is True
    email, name, subject, body = helpscout.calls[0]
    assert (email, name, subject) == ("ann@test.com", "Ann Lee", "Website request")
    assert "<strong>Topic:</strong> Billing" in body
    assert db.query(FormSubmission).count() == 1


@pytest.mark.asyncio
async def test_helpscout_handler_escapes_values_and_defaults_subject(db, sent):
    form = _create_form(db, FormSettings(type="helpscout", email_notification=False))
    helpscout = FakeHelpScout()

    await form_submission_service.submit_form(
        db, form.id, {**VALID, "name": "<b>Ann</b>"}, helpscout=helpscout
    )

    _, _, subject, body = helpscout.calls[0]
    assert subject == "[Contact] New Submission"
    assert "&lt;b&gt;Ann&lt;/b&gt;" in body


@pytest.mark.asyncio
async def test_helpscout_failure_fails_without_storing(db, sent):
    form = _create_form(db, FormSettings(type="helpscout", email_notification=False))

    unconfigured = await form_submission_service.submit_form(db, form.id, dict(VALID))
    failed = await form_submission_service.submit_form(
        db, form.id, dict(VALID), helpscout=FakeHelpScout(fail=True)
    )

    assert unconfigured.error == "Support system not configured."
    assert failed.success is False
    assert db.query(FormSubmission).count() == 0


# =============================================================================
# Review
# =============================================================================


def _store(db, form, status=SubmissionStatus.NEW):
    submission = FormSubmission(form_id=form.id, data={"name": "x"}, meta={}, status=status.value)
    db.add(submission)
    db.commit()
    return submission


def test_list_submissions_filters_and_paginates(db):
    form = _create_form(db)
    for _ in range(3):
        _store(db, form)
    _store(db, form, SubmissionStatus.ARCHIVED)

    items, total = form_submission_service.list_submissions(db, form.id, per_page=2)
    assert total == 4
    assert len(items) == 2

    archived, archived_total = form_submission_service.list_submissions(
        db, form.id, status=SubmissionStatus.ARCHIVED
    )
    assert archived_total == 1
    assert archived[0].status == "ARCHIVED"


def test_opening_marks_read_once(db):
    form = _create_form(db)
    new = _store(db, form)
    archived = _store(db, form, SubmissionStatus.ARCHIVED)

    assert form_submission_service.get_submission(db, new.id).status == "READ"
    assert form_submission_service.get_submission(db, archived.id).status == "ARCHIVED"
    assert form_submission_service.get_submission(db, uuid.uuid4()) is None


def test_bulk_status_and_delete(db):
    form = _create_form(db)
    first, second, third = (_store(db, form) for _ in range(3))

    updated = form_submission_service.update_submission_status(
        db, [first.id, second.id], SubmissionStatus.ARCHIVED
    )
    deleted = form_submission_service.delete_submissions(db, [third.id, uuid.uuid4()])

    assert updated == 2
    assert deleted == 1
    statuses = sorted(s.status for s in db.query(FormSubmission).all())
    assert statuses == ["ARCHIVED", "ARCHIVED"]


# =============================================================================
# Field definitions
# =============================================================================


@pytest.mark.parametrize(
    "fields, message",
    [
        ([_field("a"), _field("a")], "Duplicate field ids"),
        ([FormField(id="t", type=FormFieldType.SELECT, label="T")], "needs at least one option"),
        (
            [_field("a", conditions=[FieldCondition(field_id="a", operator="is_empty")])],
            "cannot depend on itself",
        ),
        (
            [_field("a", conditions=[FieldCondition(field_id="zzz", operator="is_empty")])],
            "unknown field",
        ),
    ],
)
def test_invalid_field_definitions(fields, message):
    with pytest.raises(ValueError, match=message):
        FormCreate(name="Bad", slug="bad", fields=fields)
