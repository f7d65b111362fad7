"""Portal analytics (Umami) and uptime (Uptime Kuma) endpoints."""

from fastapi import APIRouter, Depends, Query

from app.core.deps import get_current_identity, get_request_context
from app.core.request_context import RequestContext
from app.schemas.common import ActionResult
from app.schemas.integrations import AnalyticsPeriod, AnalyticsStats, UptimeStatus
from app.services import client_context_service, portal_service
from app.services.umami_service import UmamiClient, get_umami_client
from app.services.uptime_kuma_service import UptimeKumaClient, get_uptime_kuma_client

router = APIRouter(
    prefix="/portal",
    tags=["analytics"],
    dependencies=[Depends(get_current_identity)],
)


@router.get("/analytics", response_model=ActionResult[AnalyticsStats])
async def get_analytics(
    period: AnalyticsPeriod = Query("30d"),
    ctx: RequestContext = Depends(get_request_context),
    umami: UmamiClient | None = Depends(get_umami_client),
):
    context = client_context_service.resolve_client_context(ctx)
    return await portal_service.get_analytics(context, umami, period)


@router.get("/uptime", response_model=ActionResult[UptimeStatus])
async def get_uptime(
    ctx: RequestContext = Depends(get_request_context),
    uptime: UptimeKumaClient | None = Depends(get_uptime_kuma_client),
):
    context = client_context_service.resolve_client_context(ctx)
    return await portal_service.get_uptime(context, uptime)
