"""Admin client and contact management endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_request_context, require_admin, require_csrf_header
from app.core.request_context import RequestContext
from app.db.models import Client
from app.schemas.clients import (
    ClientCreate,
    ClientDetail,
    ClientRead,
    ClientUpdate,
    ContactCreate,
    ContactRead,
    ContactUpdate,
    ServicesUpdate,
)
from app.schemas.portal import SiteCheckRead
from app.services import client_service, contact_service

router = APIRouter(prefix="/admin", tags=["clients"], dependencies=[Depends(require_admin)])


def _get_client_or_404(db: Session, client_id: UUID) -> Client:
    client = client_service.get_client(db, client_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


def _client_detail(db: Session, client: Client) -> ClientDetail:
    check = client_service.latest_site_check(db, client.id)
    base = ClientRead.model_validate(client)
    return ClientDetail(
        **base.model_dump(),
        contacts=[ContactRead.model_validate(c) for c in client.contacts],
        latest_site_check=SiteCheckRead.model_validate(check) if check else None,
    )


# =============================================================================
# Clients
# =============================================================================

@router.get("/clients", response_model=list[ClientRead])
def list_clients(
    include_inactive: bool = Query(True),
    db: Session = Depends(get_db),
):
    return client_service.list_clients(db, include_inactive=include_inactive)


@router.post(
    "/clients",
    response_model=ClientRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_client(body: ClientCreate, db: Session = Depends(get_db)):
    try:
        return client_service.create_client(db, body)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/clients/{client_id}", response_model=ClientDetail)
def get_client(client_id: UUID, db: Session = Depends(get_db)):
    return _client_detail(db, _get_client_or_404(db, client_id))


@router.patch(
    "/clients/{client_id}",
    response_model=ClientRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_client(client_id: UUID, body: ClientUpdate, db: Session = Depends(get_db)):
    client = _get_client_or_404(db, client_id)
    try:
        return client_service.update_client(db, client, body)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete(
    "/clients/{client_id}",
    response_model=ClientRead,
    dependencies=[Depends(require_csrf_header)],
)
def deactivate_client(client_id: UUID, db: Session = Depends(get_db)):
    """Soft delete. Contacts lose access until the client is restored."""
    return client_service.deactivate_client(db, _get_client_or_404(db, client_id))


@router.post(
    "/clients/{client_id}/restore",
    response_model=ClientRead,
    dependencies=[Depends(require_csrf_header)],
)
def restore_client(client_id: UUID, db: Session = Depends(get_db)):
    return client_service.restore_client(db, _get_client_or_404(db, client_id))


@router.put(
    "/clients/{client_id}/services",
    response_model=ClientRead,
    dependencies=[Depends(require_csrf_header)],
)
def set_client_services(client_id: UUID, body: ServicesUpdate, db: Session = Depends(get_db)):
    client = _get_client_or_404(db, client_id)
    client_service.set_services(db, client, body.services)
    return client


# =============================================================================
# Contacts
# =============================================================================

@router.get("/clients/{client_id}/contacts", response_model=list[ContactRead])
def list_contacts(client_id: UUID, db: Session = Depends(get_db)):
    _get_client_or_404(db, client_id)
    return contact_service.list_contacts(db, client_id)


@router.post(
    "/clients/{client_id}/contacts",
    response_model=ContactRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_contact(
    client_id: UUID,
    body: ContactCreate,
    ctx: RequestContext = Depends(get_request_context),
):
    client = _get_client_or_404(ctx.db, client_id)
    try:
        return contact_service.add_contact(ctx.db, client, body, ctx.identity_provider)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.patch(
    "/contacts/{contact_id}",
    response_model=ContactRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_contact(contact_id: UUID, body: ContactUpdate, db: Session = Depends(get_db)):
    contact = contact_service.get_contact(db, contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    try:
        return contact_service.update_contact(db, contact, body)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete(
    "/contacts/{contact_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def remove_contact(contact_id: UUID, db: Session = Depends(get_db)):
    contact = contact_service.get_contact(db, contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found")
    contact_service.remove_contact(db, contact)
    return Response(status_code=204)
