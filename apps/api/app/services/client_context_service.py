"""Client-context resolution: which client is this identity acting for, and
with which permissions.

resolve_for_identity is a pure function of (identity, selected client id,
database state). resolve_client_context wires it to the request: effective
identity, signed selector token, per-request memoization.

Resolution order:
1. Selected client (if the selector is valid and an active contact exists
   at an active client)
2. Earliest-linked active contact at an active client
3. None (no client access)
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session, joinedload

from app.core.permissions import PERMISSION_REGISTRY
from app.core.request_context import RequestContext
from app.core.security import create_active_client_token, read_active_client_id
from app.core.structured_logging import build_log_context
from app.db.models import Client, ClientContact
from app.schemas.auth import Identity
from app.schemas.portal import AccessibleClient, PermissionSet
from app.services import impersonation_service

logger = logging.getLogger(__name__)

CLIENT_CONTEXT_CACHE_KEY = "client_context"


class ClientAccessError(Exception):
    """Identity has no active contact at the requested client."""


@dataclass(frozen=True)
class ClientContext:
    client: Client
    contact: ClientContact
    permissions: PermissionSet
    user_email: str


# =============================================================================
# Permission merge
# =============================================================================

def compute_permissions(contact: ClientContact, client: Client) -> PermissionSet:
    """Contact flags with every hidden feature of the client forced off."""
    hidden = set(client.hidden_features or [])
    values = {
        key.value: bool(getattr(contact, definition.contact_attr)) and key.value not in hidden
        for key, definition in PERMISSION_REGISTRY.items()
    }
    return PermissionSet(**values)


# =============================================================================
# Resolution
# =============================================================================

def _active_contacts(db: Session, identity_id: str) -> Query:
    return (
        db.query(ClientContact)
        .join(Client, ClientContact.client_id == Client.id)
        .options(joinedload(ClientContact.client).selectinload(Client.services))
        .filter(
            ClientContact.external_user_id == identity_id,
            ClientContact.is_active.is_(True),
            Client.is_active.is_(True),
        )
    )


def resolve_for_identity(
    db: Session,
    identity: Identity,
    active_client_id: uuid.UUID | None,
) -> ClientContext | None:
    """Resolve the client context for an identity and an optional selection."""
    contact = None
    if active_client_id is not None:
        contact = (
            _active_contacts(db, identity.id)
            .filter(ClientContact.client_id == active_client_id)
            .first()
        )
        if contact is None:
            logger.info(
                "Ignoring client selection without access",
                extra=build_log_context(user_id=identity.id, client_id=str(active_client_id)),
            )

    if contact is None:
        contact = (
            _active_contacts(db, identity.id)
            .order_by(ClientContact.created_at.asc(), ClientContact.id.asc())
            .first()
        )

    if contact is None:
        return None

    return ClientContext(
        client=contact.client,
        contact=contact,
        permissions=compute_permissions(contact, contact.client),
        user_email=identity.email,
    )


def link_contacts_by_email(db: Session, identity: Identity) -> int:
    """
    Attach unlinked contacts whose email matches the identity.

    Links at most one contact per client (the earliest created) and skips
    clients where the identity is already linked, so the
    (client_id, external_user_id) uniqueness holds.
    """
    if not identity.email:
        return 0
    already_linked = select(ClientContact.client_id).where(
        ClientContact.external_user_id == identity.id
    )
    pending = (
        db.query(ClientContact)
        .filter(
            ClientContact.external_user_id.is_(None),
            func.lower(ClientContact.email) == identity.email.lower(),
            ClientContact.client_id.not_in(already_linked),
        )
        .order_by(ClientContact.created_at.asc(), ClientContact.id.asc())
        .all()
    )
    to_link: dict[uuid.UUID, ClientContact] = {}
    for contact in pending:
        to_link.setdefault(contact.client_id, contact)
    if not to_link:
        return 0
    for contact in to_link.values():
        contact.external_user_id = identity.id
    try:
        db.commit()
    except IntegrityError:
        # Concurrent request linked the same identity first
        db.rollback()
        logger.warning("Contact linking conflict", extra=build_log_context(user_id=identity.id))
        return 0
    logger.info(
        "Linked contacts by email",
        extra={**build_log_context(user_id=identity.id), "count": len(to_link)},
    )
    return len(to_link)


def _resolve_client_context(ctx: RequestContext) -> ClientContext | None:
    resolved = impersonation_service.get_effective_identity(ctx)
    if resolved is None:
        return None
    identity = resolved.effective
    link_contacts_by_email(ctx.db, identity)
    active_client_id = read_active_client_id(ctx.active_client_token, identity.id)
    return resolve_for_identity(ctx.db, identity, active_client_id)


def resolve_client_context(ctx: RequestContext) -> ClientContext | None:
    """Client context for the effective identity, memoized per request."""
    return ctx.memo(CLIENT_CONTEXT_CACHE_KEY, lambda: _resolve_client_context(ctx))


# =============================================================================
# Client switcher
# =============================================================================

def get_accessible_clients(ctx: RequestContext) -> list[AccessibleClient]:
    """Active clients the effective identity can switch to, in link order."""
    identity = impersonation_service.require_auth(ctx)
    contacts = (
        _active_contacts(ctx.db, identity.id)
        .order_by(ClientContact.created_at.asc(), ClientContact.id.asc())
        .all()
    )
    return [
        AccessibleClient(id=c.client.id, name=c.client.name, is_primary=c.is_primary)
        for c in contacts
    ]


def switch_active_client(ctx: RequestContext, client_id: uuid.UUID) -> str:
    """
    Select client_id for subsequent requests.

    Returns the signed selector token for the active-client cookie.

    Raises:
        ClientAccessError: No active contact at an active client
    """
    identity = impersonation_service.require_auth(ctx)
    contact = (
        _active_contacts(ctx.db, identity.id)
        .filter(ClientContact.client_id == client_id)
        .first()
    )
    if contact is None:
        raise ClientAccessError("Access denied")
    token = create_active_client_token(identity.id, client_id)
    ctx.active_client_token = token
    ctx.invalidate(CLIENT_CONTEXT_CACHE_KEY)
    return token
