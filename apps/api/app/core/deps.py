"""FastAPI dependencies for request context, database access and cookies."""

import uuid
from typing import Generator

from fastapi import Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.request_context import RequestContext
from app.db.session import SessionLocal
from app.schemas.auth import Identity
from app.services import auth_service, impersonation_service
from app.services.identity_provider import ClerkIdentityProvider, IdentityProvider


# Cookie and header names
COOKIE_NAME = "__session"
IMPERSONATION_COOKIE = "portal_impersonate"
ACTIVE_CLIENT_COOKIE = "portal_active_client"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"
REQUEST_ID_HEADER = "X-Request-ID"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_identity_provider() -> IdentityProvider:
    return ClerkIdentityProvider()


def _session_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def get_request_context(
    request: Request,
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> RequestContext:
    """
    Build the per-request context from cookies and headers.

    The provider session may arrive as the __session cookie or as a Bearer
    token; portal tokens only ever come from cookies.
    """
    ctx = RequestContext(
        db=db,
        identity_provider=provider,
        session_token=_session_token(request),
        impersonation_token=request.cookies.get(IMPERSONATION_COOKIE),
        active_client_token=request.cookies.get(ACTIVE_CLIENT_COOKIE),
        request_id=request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex,
    )
    request.state.request_context = ctx
    return ctx


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )


def set_portal_cookie(response: Response, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


def clear_portal_cookie(response: Response, key: str) -> None:
    response.delete_cookie(key, path="/")


# =============================================================================
# Identity guards
# =============================================================================

def get_current_identity(ctx: RequestContext = Depends(get_request_context)) -> Identity:
    """Effective identity (the impersonation target while impersonating)."""
    return impersonation_service.require_auth(ctx)


def require_admin(ctx: RequestContext = Depends(get_request_context)) -> Identity:
    """Real identity must be an admin."""
    return auth_service.require_admin(ctx)


def require_staff(ctx: RequestContext = Depends(get_request_context)) -> Identity:
    """Real identity must be an admin or team member."""
    return auth_service.require_staff(ctx)
