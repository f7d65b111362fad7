"""Identity resolution: session token -> provider user -> normalized Identity.

Role normalization is isolated in normalize_role so it can be tested without
any provider I/O. Legacy values are normalized on read only; nothing here
writes back to the provider.
"""

import logging

import jwt

from app.core.request_context import RequestContext
from app.core.security import decode_session_token
from app.db.enums import LEGACY_ROLE_ALIASES, Role
from app.schemas.auth import Identity
from app.services.identity_provider import (
    IdentityProviderError,
    ProviderUser,
    ProviderUserNotFoundError,
)

logger = logging.getLogger(__name__)

AUTH_USER_CACHE_KEY = "auth_user"


class AuthenticationError(Exception):
    """No valid session for this request."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class PermissionDeniedError(Exception):
    """Authenticated, but the role does not allow the action."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


# =============================================================================
# Pure helpers
# =============================================================================

def normalize_role(raw: object) -> Role:
    """
    Map provider metadata onto a Role.

    "admin" passes through, "employee"/"team_member" become team_member,
    anything else (including missing) is a client.
    """
    if not isinstance(raw, str):
        return Role.CLIENT
    value = raw.strip().lower()
    if value in LEGACY_ROLE_ALIASES:
        return LEGACY_ROLE_ALIASES[value]
    if value == Role.ADMIN.value:
        return Role.ADMIN
    if value == Role.TEAM_MEMBER.value:
        return Role.TEAM_MEMBER
    return Role.CLIENT


def display_name(user: ProviderUser) -> str:
    name = f"{user.first_name or ''} {user.last_name or ''}".strip()
    return name or user.email or "Unknown"


def build_identity(user: ProviderUser) -> Identity:
    """Normalize a provider user into an Identity."""
    return Identity(
        id=user.id,
        email=user.email,
        name=display_name(user),
        role=normalize_role(user.public_metadata.get("role")),
        image_url=user.image_url,
    )


# =============================================================================
# Request-scoped resolution
# =============================================================================

def _resolve_auth_user(ctx: RequestContext) -> Identity | None:
    if not ctx.session_token:
        return None
    try:
        payload = decode_session_token(ctx.session_token)
    except jwt.InvalidTokenError:
        return None

    user_id = payload["sub"]
    try:
        user = ctx.identity_provider.get_user(user_id)
    except ProviderUserNotFoundError:
        logger.info("Session references unknown user", extra={"user_id": user_id})
        return None
    except IdentityProviderError:
        logger.exception("Identity provider lookup failed for session user")
        return None
    return build_identity(user)


def get_auth_user(ctx: RequestContext) -> Identity | None:
    """
    Real (non-impersonated) identity for this request, or None.

    Memoized per request: identity cannot change mid-request.
    """
    return ctx.memo(AUTH_USER_CACHE_KEY, lambda: _resolve_auth_user(ctx))


def require_real_user(ctx: RequestContext) -> Identity:
    user = get_auth_user(ctx)
    if user is None:
        raise AuthenticationError()
    return user


def require_admin(ctx: RequestContext) -> Identity:
    """
    Admin check against the REAL identity.

    An impersonating admin keeps admin rights; an impersonated admin target
    never grants them.
    """
    user = require_real_user(ctx)
    if not user.is_admin:
        raise PermissionDeniedError()
    return user


def require_staff(ctx: RequestContext) -> Identity:
    """Admin or team member, checked against the REAL identity."""
    user = require_real_user(ctx)
    if not user.is_staff:
        raise PermissionDeniedError()
    return user
