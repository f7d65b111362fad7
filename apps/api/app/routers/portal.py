"""Client portal context, dashboard and client switcher endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response

from app.core.config import settings
from app.core.deps import (
    ACTIVE_CLIENT_COOKIE,
    get_current_identity,
    get_request_context,
    require_csrf_header,
    set_portal_cookie,
)
from app.core.request_context import RequestContext
from app.schemas.common import ActionResult
from app.schemas.integrations import DashboardData
from app.schemas.portal import (
    AccessibleClient,
    ActiveClientSwitch,
    ClientContextRead,
    PortalClientRead,
    PortalContactRead,
)
from app.services import client_context_service, portal_service
from app.services.client_context_service import ClientAccessError, ClientContext
from app.services.umami_service import UmamiClient, get_umami_client
from app.services.uptime_kuma_service import UptimeKumaClient, get_uptime_kuma_client

router = APIRouter(
    prefix="/portal",
    tags=["portal"],
    dependencies=[Depends(get_current_identity)],
)


def to_context_read(context: ClientContext | None) -> ClientContextRead | None:
    if context is None:
        return None
    return ClientContextRead(
        client=PortalClientRead.model_validate(context.client),
        contact=PortalContactRead.model_validate(context.contact),
        permissions=context.permissions,
        user_email=context.user_email,
    )


@router.get("/context", response_model=ClientContextRead | None)
def get_context(ctx: RequestContext = Depends(get_request_context)):
    """
    Client, contact and permissions for the effective identity.

    Returns null when the identity has no active contact at an active client.
    """
    return to_context_read(client_context_service.resolve_client_context(ctx))


@router.get("/dashboard", response_model=ActionResult[DashboardData])
async def get_dashboard(
    ctx: RequestContext = Depends(get_request_context),
    umami: UmamiClient | None = Depends(get_umami_client),
    uptime: UptimeKumaClient | None = Depends(get_uptime_kuma_client),
):
    context = client_context_service.resolve_client_context(ctx)
    return await portal_service.get_dashboard(ctx.db, context, umami, uptime)


@router.get("/clients", response_model=list[AccessibleClient])
def list_accessible_clients(ctx: RequestContext = Depends(get_request_context)):
    return client_context_service.get_accessible_clients(ctx)


@router.post(
    "/active-client",
    response_model=ClientContextRead | None,
    dependencies=[Depends(require_csrf_header)],
)
def switch_active_client(
    body: ActiveClientSwitch,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
):
    try:
        token = client_context_service.switch_active_client(ctx, body.client_id)
    except ClientAccessError as e:
        raise HTTPException(status_code=403, detail=str(e))
    set_portal_cookie(
        response,
        ACTIVE_CLIENT_COOKIE,
        token,
        max_age=settings.ACTIVE_CLIENT_TTL_DAYS * 24 * 3600,
    )
    return to_context_read(client_context_service.resolve_client_context(ctx))
