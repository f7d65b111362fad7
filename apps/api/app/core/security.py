"""Security utilities for session, impersonation and client-selector tokens."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from app.core.config import settings


IMPERSONATION_TOKEN_TYPE = "impersonation"
ACTIVE_CLIENT_TOKEN_TYPE = "active_client"

PORTAL_ALGORITHM = "HS256"


def _decode_with_keys(token: str, keys: list[str], algorithm: str) -> dict:
    """
    Decode a JWT trying each key in order.

    Raises:
        jwt.InvalidTokenError: If token invalid with all keys
    """
    if not keys:
        raise jwt.InvalidTokenError("No verification key configured")
    last_error = None
    for key in keys:
        try:
            return jwt.decode(token, key, algorithms=[algorithm])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


# =============================================================================
# Provider Session Token
# =============================================================================

def create_session_token(user_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """
    Create an HS256 session token for a provider user id.

    Production sessions are minted by the identity provider; this exists for
    local development, the CLI and tests.
    """
    now = datetime.now(timezone.utc)
    payload = {"sub": user_id, "iat": now, "exp": now + expires_in}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=PORTAL_ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Verify a provider session JWT and return its claims.

    Raises:
        jwt.InvalidTokenError: If signature, expiry or subject are invalid
    """
    payload = _decode_with_keys(token, settings.session_keys, settings.SESSION_JWT_ALGORITHM)
    if not payload.get("sub"):
        raise jwt.InvalidTokenError("Session token has no subject")
    return payload


# =============================================================================
# Impersonation Token (admin -> target user)
# =============================================================================

def create_impersonation_token(admin_id: str, target_id: str) -> str:
    """
    Create signed impersonation token.

    Bound to the admin who started it: a token replayed under another
    identity is rejected on read.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "typ": IMPERSONATION_TOKEN_TYPE,
        "sub": target_id,
        "act": admin_id,
        "iat": now,
        "exp": now + timedelta(hours=settings.IMPERSONATION_TTL_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=PORTAL_ALGORITHM)


def read_impersonation_target(token: str | None, admin_id: str) -> str | None:
    """Return the target user id if the token is valid for this admin, else None."""
    if not token:
        return None
    try:
        payload = _decode_with_keys(token, settings.jwt_secrets, PORTAL_ALGORITHM)
    except jwt.InvalidTokenError:
        return None
    if payload.get("typ") != IMPERSONATION_TOKEN_TYPE:
        return None
    if payload.get("act") != admin_id:
        return None
    return payload.get("sub") or None


# =============================================================================
# Active Client Selector
# =============================================================================

def create_active_client_token(user_id: str, client_id: UUID) -> str:
    """Create signed active-client selector bound to the user it was issued for."""
    now = datetime.now(timezone.utc)
    payload = {
        "typ": ACTIVE_CLIENT_TOKEN_TYPE,
        "sub": user_id,
        "client_id": str(client_id),
        "iat": now,
        "exp": now + timedelta(days=settings.ACTIVE_CLIENT_TTL_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=PORTAL_ALGORITHM)


def read_active_client_id(token: str | None, user_id: str) -> UUID | None:
    """
    Return the selected client id, or None when the selector is absent,
    tampered, expired, or was issued for another user.

    The id is advisory: callers must still confirm access in the database.
    """
    if not token:
        return None
    try:
        payload = _decode_with_keys(token, settings.jwt_secrets, PORTAL_ALGORITHM)
    except jwt.InvalidTokenError:
        return None
    if payload.get("typ") != ACTIVE_CLIENT_TOKEN_TYPE or payload.get("sub") != user_id:
        return None
    try:
        return UUID(payload.get("client_id", ""))
    except (TypeError, ValueError):
        return None
