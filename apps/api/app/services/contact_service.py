"""Contact service: admin management of client contacts."""

import logging
import uuid

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import Client, ClientContact
from app.schemas.clients import ContactCreate, ContactUpdate
from app.services.identity_provider import IdentityProvider, IdentityProviderError

logger = logging.getLogger(__name__)

DUPLICATE_CONTACT = "A contact with this email already exists for this client"


def list_contacts(db: Session, client_id: uuid.UUID) -> list[ClientContact]:
    return (
        db.query(ClientContact)
        .filter(ClientContact.client_id == client_id)
        .order_by(ClientContact.created_at.asc(), ClientContact.id.asc())
        .all()
    )


def get_contact(db: Session, contact_id: uuid.UUID) -> ClientContact | None:
    return db.query(ClientContact).filter(ClientContact.id == contact_id).first()


def _email_taken(
    db: Session, client_id: uuid.UUID, email: str, exclude_id: uuid.UUID | None = None
) -> bool:
    query = db.query(ClientContact.id).filter(
        ClientContact.client_id == client_id,
        func.lower(ClientContact.email) == email.lower(),
    )
    if exclude_id is not None:
        query = query.filter(ClientContact.id != exclude_id)
    return query.first() is not None


def _lookup_external_id(
    db: Session, client_id: uuid.UUID, email: str, provider: IdentityProvider
) -> str | None:
    """Provider user id for email, unless that user is already linked to this client."""
    try:
        user = provider.find_user_by_email(email)
    except IdentityProviderError:
        logger.warning("Provider lookup failed while adding contact", exc_info=True)
        return None
    if user is None:
        return None
    already_linked = (
        db.query(ClientContact.id)
        .filter(ClientContact.client_id == client_id, ClientContact.external_user_id == user.id)
        .first()
    )
    return None if already_linked else user.id


def add_contact(
    db: Session,
    client: Client,
    data: ContactCreate,
    provider: IdentityProvider,
) -> ClientContact:
    """
    Add a contact, linking it to an existing provider user with the same email.

    Raises:
        ValueError: Email already used by a contact of this client
    """
    if _email_taken(db, client.id, data.email):
        raise ValueError(DUPLICATE_CONTACT)

    contact = ClientContact(
        client_id=client.id,
        external_user_id=_lookup_external_id(db, client.id, data.email, provider),
        **data.model_dump(),
    )
    db.add(contact)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError(DUPLICATE_CONTACT)
    db.refresh(contact)
    logger.info(
        "Contact added",
        extra={"client_id": str(client.id), "linked": contact.external_user_id is not None},
    )
    return contact


def update_contact(db: Session, contact: ClientContact, data: ContactUpdate) -> ClientContact:
    if data.email and _email_taken(db, contact.client_id, data.email, exclude_id=contact.id):
        raise ValueError(DUPLICATE_CONTACT)
    for field, value in data.model_dump(exclude_unset=True).items():
        # role_label is the only nullable column here
        if value is None and field != "role_label":
            continue
        setattr(contact, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError(DUPLICATE_CONTACT)
    db.refresh(contact)
    return contact


def remove_contact(db: Session, contact: ClientContact) -> None:
    client_id = contact.client_id
    db.delete(contact)
    db.commit()
    logger.info("Contact removed", extra={"client_id": str(client_id)})
