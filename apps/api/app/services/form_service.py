"""Form service for builder CRUD and public rendering."""

import uuid

from sqlalchemy.orm import Session

from app.db.enums import PrefillKey
from app.db.models import Form
from app.schemas.auth import Identity
from app.schemas.forms import (
    DEFAULT_FORM_SETTINGS,
    FormCreate,
    FormField,
    FormPublicRead,
    FormSettings,
    FormUpdate,
)
from app.services.client_context_service import ClientContext


def parse_fields(form: Form) -> list[FormField]:
    fields = [FormField.model_validate(f) for f in form.fields or []]
    return sorted(fields, key=lambda f: f.order)


def parse_settings(form: Form) -> FormSettings:
    if not form.settings:
        return DEFAULT_FORM_SETTINGS
    return FormSettings.model_validate(form.settings)


def list_forms(db: Session) -> list[Form]:
    return db.query(Form).order_by(Form.updated_at.desc()).all()


def get_form(db: Session, form_id: uuid.UUID) -> Form | None:
    return db.query(Form).filter(Form.id == form_id).first()


def get_active_form_by_slug(db: Session, slug: str) -> Form | None:
    return db.query(Form).filter(Form.slug == slug, Form.is_active.is_(True)).first()


def _ensure_slug_available(db: Session, slug: str, exclude_id: uuid.UUID | None = None) -> None:
    query = db.query(Form.id).filter(Form.slug == slug)
    if exclude_id is not None:
        query = query.filter(Form.id != exclude_id)
    if query.first() is not None:
        raise ValueError(f"Slug '{slug}' is already in use")


def create_form(db: Session, data: FormCreate) -> Form:
    _ensure_slug_available(db, data.slug)
    form = Form(
        name=data.name,
        slug=data.slug,
        description=data.description,
        fields=[f.model_dump(mode="json") for f in data.fields],
        settings=data.settings.model_dump(mode="json"),
        is_active=data.is_active,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    return form


def update_form(db: Session, form: Form, data: FormUpdate) -> Form:
    """Edit in place. Existing submissions keep the data they were stored with."""
    if data.slug is not None and data.slug != form.slug:
        _ensure_slug_available(db, data.slug, exclude_id=form.id)
        form.slug = data.slug
    if data.name is not None:
        form.name = data.name
    if data.description is not None:
        form.description = data.description
    if data.fields is not None:
        form.fields = [f.model_dump(mode="json") for f in data.fields]
    if data.settings is not None:
        form.settings = data.settings.model_dump(mode="json")
    if data.is_active is not None:
        form.is_active = data.is_active

    db.commit()
    db.refresh(form)
    return form


def delete_form(db: Session, form: Form) -> None:
    db.delete(form)
    db.commit()


def build_prefill(
    fields: list[FormField],
    identity: Identity | None,
    context: ClientContext | None,
) -> dict[str, str]:
    """Initial values for fields tagged with a prefill key."""
    known: dict[PrefillKey, str | None] = {
        PrefillKey.NAME: identity.name if identity else None,
        PrefillKey.EMAIL: identity.email if identity else None,
        PrefillKey.WEBSITE: context.client.website_url if context else None,
        PrefillKey.SERVICE_NAME: (
            context.client.services[0].type if context and context.client.services else None
        ),
    }
    return {
        field.id: known[field.prefill_key]
        for field in fields
        if field.prefill_key and known.get(field.prefill_key)
    }


def to_public(form: Form, prefill: dict[str, str] | None = None) -> FormPublicRead:
    settings = parse_settings(form)
    return FormPublicRead(
        id=form.id,
        name=form.name,
        slug=form.slug,
        description=form.description,
        fields=parse_fields(form),
        submit_button_label=settings.submit_button_label,
        prefill=prefill or {},
    )
