"""Portal data for the active client: dashboard, billing, support, analytics, uptime.

Each call checks the capability for the current client context and turns
missing access, missing integration ids and upstream failures into an
unsuccessful ActionResult rather than an HTTP error.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.orm import Session

from app.core.permissions import PermissionKey
from app.schemas.common import ActionResult
from app.schemas.integrations import (
    AnalyticsPeriod,
    AnalyticsStats,
    BillingOverview,
    DashboardData,
    TicketDetail,
    TicketSummary,
    UptimeStatus,
)
from app.schemas.portal import PortalClientRead, SiteCheckRead
from app.services import client_service, stripe_service
from app.services.client_context_service import ClientContext
from app.services.helpscout_service import HelpScoutClient
from app.services.http_service import IntegrationError
from app.services.umami_service import UmamiClient
from app.services.uptime_kuma_service import UptimeKumaClient

logger = logging.getLogger(__name__)

NO_CLIENT_ACCESS = "No client access."


def _check_access(context: ClientContext | None, key: PermissionKey) -> str | None:
    if context is None:
        return NO_CLIENT_ACCESS
    if not context.permissions.allows(key.value):
        return "This feature is not enabled for your account."
    return None


# =============================================================================
# Billing
# =============================================================================

def get_billing(context: ClientContext | None) -> ActionResult[BillingOverview]:
    error = _check_access(context, PermissionKey.BILLING)
    if error:
        return ActionResult.fail(error)
    if not stripe_service.is_configured():
        return ActionResult.fail("Billing system not configured.")
    customer_id = context.client.stripe_customer_id
    if not customer_id:
        return ActionResult.fail("No billing account linked.")
    try:
        return ActionResult.ok(stripe_service.get_billing_overview(customer_id))
    except stripe_service.BillingUnavailableError as exc:
        return ActionResult.fail(str(exc))


def create_billing_portal_session(
    context: ClientContext | None, return_url: str
) -> ActionResult[str]:
    error = _check_access(context, PermissionKey.BILLING)
    if error:
        return ActionResult.fail(error)
    customer_id = context.client.stripe_customer_id
    if not stripe_service.is_configured() or not customer_id:
        return ActionResult.fail("Billing not available.")
    try:
        return ActionResult.ok(stripe_service.create_portal_session(customer_id, return_url))
    except stripe_service.BillingUnavailableError as exc:
        return ActionResult.fail(str(exc))


# =============================================================================
# Support
# =============================================================================

async def get_tickets(
    context: ClientContext | None, helpscout: HelpScoutClient | None
) -> ActionResult[list[TicketSummary]]:
    """Tickets for the effective identity's own email, not the client's."""
    error = _check_access(context, PermissionKey.SUPPORT)
    if error:
        return ActionResult.fail(error)
    if helpscout is None:
        return ActionResult.fail("Support system not configured.")
    try:
        tickets = await helpscout.list_conversations_by_email(context.user_email)
    except IntegrationError:
        return ActionResult.fail("Support is temporarily unavailable.")
    return ActionResult.ok(tickets)


async def get_ticket(
    context: ClientContext | None,
    helpscout: HelpScoutClient | None,
    conversation_id: int,
) -> ActionResult[TicketDetail]:
    error = _check_access(context, PermissionKey.SUPPORT)
    if error:
        return ActionResult.fail(error)
    if helpscout is None:
        return ActionResult.fail("Support system not configured.")
    try:
        ticket = await helpscout.get_conversation(conversation_id)
    except IntegrationError:
        return ActionResult.fail("Support is temporarily unavailable.")

    owner = (ticket.customer_email or "").lower() if ticket else ""
    if ticket is None or owner != context.user_email.lower():
        if ticket is not None:
            logger.info(
                "Ticket requested by non-owner",
                extra={"client_id": str(context.client.id), "conversation_id": conversation_id},
            )
        return ActionResult.fail("Ticket not found")
    return ActionResult.ok(ticket)


# =============================================================================
# Analytics / uptime
# =============================================================================

async def get_analytics(
    context: ClientContext | None,
    umami: UmamiClient | None,
    period: AnalyticsPeriod = "30d",
) -> ActionResult[AnalyticsStats]:
    error = _check_access(context, PermissionKey.ANALYTICS)
    if error:
        return ActionResult.fail(error)
    site_id = context.client.umami_site_id
    if umami is None or not site_id:
        return ActionResult.fail("Analytics not configured.")
    stats = await umami.fetch_stats(site_id, period)
    if stats is None:
        return ActionResult.fail("Analytics unavailable.")
    return ActionResult.ok(stats)


async def get_uptime(
    context: ClientContext | None, uptime: UptimeKumaClient | None
) -> ActionResult[UptimeStatus]:
    error = _check_access(context, PermissionKey.UPTIME)
    if error:
        return ActionResult.fail(error)
    monitor_id = context.client.uptime_kuma_monitor_id
    if uptime is None or not monitor_id:
        return ActionResult.fail("Uptime monitoring not configured.")
    status = await uptime.fetch_status(monitor_id)
    if status is None:
        return ActionResult.fail("Uptime unavailable.")
    return ActionResult.ok(status)


# =============================================================================
# Dashboard
# =============================================================================

async def _no_data() -> None:
    return None


async def get_dashboard(
    db: Session,
    context: ClientContext | None,
    umami: UmamiClient | None,
    uptime: UptimeKumaClient | None,
) -> ActionResult[DashboardData]:
    """
    Overview card data for the active client.

    Site check, uptime and analytics are each included only when the contact
    may see that feature and the client has it configured. Upstream failures
    leave the card empty instead of failing the dashboard.
    """
    error = _check_access(context, PermissionKey.DASHBOARD)
    if error:
        return ActionResult.fail(error)
    client = context.client
    permissions = context.permissions

    site_check = None
    if permissions.allows(PermissionKey.SITE_HEALTH.value):
        latest = client_service.latest_site_check(db, client.id)
        site_check = SiteCheckRead.model_validate(latest) if latest else None

    show_uptime = (
        permissions.allows(PermissionKey.UPTIME.value)
        and uptime is not None
        and client.uptime_kuma_monitor_id
    )
    show_analytics = (
        permissions.allows(PermissionKey.ANALYTICS.value)
        and umami is not None
        and client.umami_site_id
    )
    uptime_status, stats = await asyncio.gather(
        uptime.fetch_status(client.uptime_kuma_monitor_id) if show_uptime else _no_data(),
        umami.fetch_stats(client.umami_site_id, "30d") if show_analytics else _no_data(),
    )

    return ActionResult.ok(
        DashboardData(
            client=PortalClientRead.model_validate(client),
            site_check=site_check,
            uptime=uptime_status,
            analytics=stats,
        )
    )
