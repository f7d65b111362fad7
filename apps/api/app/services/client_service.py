"""Client service: admin CRUD for tenants and their service tags."""

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.db.enums import ServiceType
from app.db.models import Client, ClientService, SiteCheck
from app.schemas.clients import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


def list_clients(db: Session, include_inactive: bool = True) -> list[Client]:
    query = db.query(Client).options(selectinload(Client.services))
    if not include_inactive:
        query = query.filter(Client.is_active.is_(True))
    return query.order_by(Client.created_at.desc()).all()


def get_client(db: Session, client_id: uuid.UUID) -> Client | None:
    return (
        db.query(Client)
        .options(selectinload(Client.services), selectinload(Client.contacts))
        .filter(Client.id == client_id)
        .first()
    )


def latest_site_check(db: Session, client_id: uuid.UUID) -> SiteCheck | None:
    return (
        db.query(SiteCheck)
        .filter(SiteCheck.client_id == client_id)
        .order_by(SiteCheck.checked_at.desc())
        .first()
    )


def _email_taken(db: Session, email: str, exclude_id: uuid.UUID | None = None) -> bool:
    query = db.query(Client.id).filter(Client.email == email)
    if exclude_id is not None:
        query = query.filter(Client.id != exclude_id)
    return query.first() is not None


def create_client(db: Session, data: ClientCreate) -> Client:
    """
    Raises:
        ValueError: A client with this email already exists
    """
    if _email_taken(db, data.email):
        raise ValueError("A client with this email already exists")
    client = Client(**data.model_dump())
    db.add(client)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("A client with this email already exists")
    db.refresh(client)
    logger.info("Client created", extra={"client_id": str(client.id)})
    return client


def update_client(db: Session, client: Client, data: ClientUpdate) -> Client:
    updates = data.model_dump(exclude_unset=True)
    if "email" in updates and updates["email"] and _email_taken(db, updates["email"], client.id):
        raise ValueError("A client with this email already exists")
    for field, value in updates.items():
        if value is None and field in ("name", "email", "is_active", "hidden_features"):
            continue
        setattr(client, field, value)
    db.commit()
    db.refresh(client)
    return client


def deactivate_client(db: Session, client: Client) -> Client:
    """Soft delete: the client and its contacts drop out of every resolution."""
    client.is_active = False
    db.commit()
    db.refresh(client)
    logger.info("Client deactivated", extra={"client_id": str(client.id)})
    return client


def restore_client(db: Session, client: Client) -> Client:
    client.is_active = True
    db.commit()
    db.refresh(client)
    logger.info("Client restored", extra={"client_id": str(client.id)})
    return client


def set_services(db: Session, client: Client, service_types: list[ServiceType]) -> list[str]:
    """
    Reconcile the client's service tags with service_types.

    Deletes and inserts are committed together, so a failure leaves the
    previous set intact.
    """
    wanted = list(dict.fromkeys(t.value for t in service_types))
    try:
        (
            db.query(ClientService)
            .filter(ClientService.client_id == client.id, ClientService.type.not_in(wanted))
            .delete(synchronize_session=False)
        )
        existing = {
            row.type
            for row in db.query(ClientService.type).filter(ClientService.client_id == client.id)
        }
        for service_type in wanted:
            if service_type not in existing:
                db.add(ClientService(client_id=client.id, type=service_type))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(client)
    return sorted(s.type for s in client.services)
