"""Admin user management and impersonation endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from app.core.config import settings
from app.core.deps import (
    IMPERSONATION_COOKIE,
    clear_portal_cookie,
    get_request_context,
    require_admin,
    require_csrf_header,
    set_portal_cookie,
)
from app.core.rate_limit import IMPERSONATE_LIMIT, limiter
from app.core.request_context import RequestContext
from app.schemas.auth import Identity, ImpersonationStart, MeResponse, ProviderUserRead, RoleUpdate
from app.routers.auth import build_me_response
from app.services import impersonation_service, user_service

router = APIRouter(prefix="/admin", tags=["admin"])


# =============================================================================
# Users
# =============================================================================

@router.get("/users", response_model=list[ProviderUserRead])
def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: Identity = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
):
    return user_service.list_users(ctx.identity_provider, limit=limit, offset=offset)


@router.patch(
    "/users/{user_id}/role",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def update_user_role(
    user_id: str,
    body: RoleUpdate,
    admin: Identity = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
):
    try:
        user_service.set_role(ctx.identity_provider, admin, user_id, body.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(status_code=204)


# =============================================================================
# Impersonation
# =============================================================================

@router.post(
    "/impersonation",
    response_model=MeResponse,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(IMPERSONATE_LIMIT)
def start_impersonation(
    request: Request,
    response: Response,
    body: ImpersonationStart,
    ctx: RequestContext = Depends(get_request_context),
):
    """Start viewing the portal as another user (admins only)."""
    try:
        token = impersonation_service.start_impersonation(ctx, body.user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    set_portal_cookie(
        response,
        IMPERSONATION_COOKIE,
        token,
        max_age=settings.IMPERSONATION_TTL_HOURS * 3600,
    )
    return build_me_response(ctx)


@router.delete(
    "/impersonation",
    response_model=MeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def stop_impersonation(
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
):
    impersonation_service.stop_impersonation(ctx)
    clear_portal_cookie(response, IMPERSONATION_COOKIE)
    return build_me_response(ctx)
