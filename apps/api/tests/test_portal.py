"""
Portal data endpoint tests.

Tests cover:
- Every card checks the capability of the resolved client context
- Missing integration ids and upstream failures are unsuccessful results
- Tickets are scoped to the effective identity's email
- Dashboard cards follow the dashboard and per-feature capabilities
"""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.core.deps import IMPERSONATION_COOKIE
from app.core.security import create_impersonation_token
from app.db.models import SiteCheck
from app.schemas.integrations import AnalyticsStats, BillingOverview, TicketDetail, TicketSummary, UptimeStatus
from app.services import stripe_service
from app.services.http_service import IntegrationError

from tests.conftest import ADMIN_ID, CLIENT_USER_ID, OTHER_USER_ID, login, make_client, make_contact


@pytest.fixture
def acme(db):
    client = make_client(
        db,
        "Acme",
        stripe_customer_id="cus_acme",
        umami_site_id="site-1",
        uptime_kuma_monitor_id="7",
    )
    make_contact(db, client, CLIENT_USER_ID)
    return client


class FakeHelpScout:
    def __init__(self, tickets=None, detail=None, fail=False):
        self.tickets = tickets or []
        self.detail = detail
        self.fail = fail
        self.emails: list[str] = []

    async def list_conversations_by_email(self, email):
        if self.fail:
            raise IntegrationError("helpscout", "HTTP 503", status_code=503)
        self.emails.append(email)
        return self.tickets

    async def get_conversation(self, conversation_id):
        return self.detail


class FakeUmami:
    def __init__(self, stats=None):
        self.stats = stats
        self.calls: list[tuple] = []

    async def fetch_stats(self, site_id, period="30d"):
        self.calls.append((site_id, period))
        return self.stats


class FakeUptime:
    def __init__(self, status=None):
        self.status = status

    async def fetch_status(self, monitor_id):
        return self.status


# =============================================================================
# Billing
# =============================================================================


@pytest.mark.asyncio
async def test_billing_overview(client: AsyncClient, acme, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test")
    seen = []

    def fake_overview(customer_id):
        seen.append(customer_id)
        return BillingOverview(customer_email="billing@acme.com")

    monkeypatch.setattr(stripe_service, "get_billing_overview", fake_overview)
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/billing")

    assert response.json()["success"] is True
    assert response.json()["data"]["customer_email"] == "billing@acme.com"
    assert seen == ["cus_acme"]


@pytest.mark.asyncio
async def test_billing_not_configured(client: AsyncClient, acme, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "")
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/billing")

    assert response.json() == {"success": False, "data": None, "error": "Billing system not configured."}


@pytest.mark.asyncio
async def test_billing_without_customer_id(client: AsyncClient, db, acme, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test")
    acme.stripe_customer_id = None
    db.commit()
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/billing")

    assert response.json()["error"] == "No billing account linked."


@pytest.mark.asyncio
async def test_billing_hidden_feature(client: AsyncClient, db, acme):
    acme.hidden_features = ["billing"]
    db.commit()
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/billing")

    assert response.json()["error"] == "This feature is not enabled for your account."


@pytest.mark.asyncio
async def test_billing_without_client_access(client: AsyncClient):
    login(client, OTHER_USER_ID)

    response = await client.get("/portal/billing")

    assert response.json()["error"] == "No client access."


@pytest.mark.asyncio
async def test_billing_portal_session(client: AsyncClient, acme, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test")
    monkeypatch.setattr(settings, "FRONTEND_URL", "https://portal.agency.com/")
    calls = []

    def fake_session(customer_id, return_url):
        calls.append((customer_id, return_url))
        return "https://billing.stripe.com/session/abc"

    monkeypatch.setattr(stripe_service, "create_portal_session", fake_session)
    login(client, CLIENT_USER_ID)

    response = await client.post("/portal/billing/portal-session", json={"return_path": "invoices"})

    assert response.json()["data"] == "https://billing.stripe.com/session/abc"
    assert calls == [("cus_acme", "https://portal.agency.com/invoices")]


@pytest.mark.asyncio
async def test_billing_requires_session(client: AsyncClient):
    response = await client.get("/portal/billing")
    assert response.status_code == 401


# =============================================================================
# Support
# =============================================================================


TICKET = TicketSummary(id=11, number=101, subject="Site down", status="active", customer_email="owner@acme.com")


@pytest.mark.asyncio
async def test_tickets_use_identity_email(client: AsyncClient, acme, integrations):
    helpscout = FakeHelpScout(tickets=[TICKET])
    integrations["helpscout"] = helpscout
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/support/tickets")

    assert response.json()["data"][0]["subject"] == "Site down"
    assert helpscout.emails == ["owner@acme.com"]


@pytest.mark.asyncio
async def test_tickets_while_impersonating_use_target_email(client: AsyncClient, acme, integrations):
    helpscout = FakeHelpScout(tickets=[])
    integrations["helpscout"] = helpscout
    login(client, ADMIN_ID)
    client.cookies.set(IMPERSONATION_COOKIE, create_impersonation_token(ADMIN_ID, CLIENT_USER_ID))

    response = await client.get("/portal/support/tickets")

    assert response.json()["success"] is True
    assert helpscout.emails == ["owner@acme.com"]


@pytest.mark.asyncio
async def test_tickets_not_configured_or_failing(client: AsyncClient, acme, integrations):
    login(client, CLIENT_USER_ID)

    unconfigured = await client.get("/portal/support/tickets")
    assert unconfigured.json()["error"] == "Support system not configured."

    integrations["helpscout"] = FakeHelpScout(fail=True)
    failing = await client.get("/portal/support/tickets")
    assert failing.json()["error"] == "Support is temporarily unavailable."


@pytest.mark.asyncio
async def test_ticket_detail_for_owner_only(client: AsyncClient, acme, integrations):
    detail = TicketDetail(**TICKET.model_dump(), threads=[])
    integrations["helpscout"] = FakeHelpScout(detail=detail)
    login(client, CLIENT_USER_ID)

    own = await client.get("/portal/support/tickets/11")
    assert own.json()["data"]["id"] == 11

    foreign = TicketDetail(**{**TICKET.model_dump(), "customer_email": "x@other.com"})
    integrations["helpscout"] = FakeHelpScout(detail=foreign)
    response = await client.get("/portal/support/tickets/11")
    assert response.json()["error"] == "Ticket not found"


# =============================================================================
# Analytics / uptime
# =============================================================================


@pytest.mark.asyncio
async def test_analytics(client: AsyncClient, acme, integrations):
    umami = FakeUmami(AnalyticsStats(visitors=10, pageviews=25, bounce_rate=40, total_time=300))
    integrations["umami"] = umami
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/analytics", params={"period": "7d"})

    assert response.json()["data"]["pageviews"] == 25
    assert umami.calls == [("site-1", "7d")]


@pytest.mark.asyncio
async def test_analytics_rejects_unknown_period(client: AsyncClient, acme, integrations):
    integrations["umami"] = FakeUmami()
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/analytics", params={"period": "1y"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_analytics_unavailable(client: AsyncClient, acme, integrations):
    login(client, CLIENT_USER_ID)

    unconfigured = await client.get("/portal/analytics")
    assert unconfigured.json()["error"] == "Analytics not configured."

    integrations["umami"] = FakeUmami(stats=None)
    failing = await client.get("/portal/analytics")
    assert failing.json()["error"] == "Analytics unavailable."


@pytest.mark.asyncio
async def test_uptime(client: AsyncClient, db, acme, integrations):
    integrations["uptime"] = FakeUptime(UptimeStatus(status="up", uptime_24h=99.5))
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/uptime")
    assert response.json()["data"]["status"] == "up"

    acme.uptime_kuma_monitor_id = None
    db.commit()
    response = await client.get("/portal/uptime")
    assert response.json()["error"] == "Uptime monitoring not configured."


@pytest.mark.asyncio
async def test_uptime_respects_contact_flag(client: AsyncClient, db, integrations):
    beta = make_client(db, "Beta", uptime_kuma_monitor_id="3")
    make_contact(db, beta, CLIENT_USER_ID, can_uptime=False)
    integrations["uptime"] = FakeUptime(UptimeStatus(status="up"))
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/uptime")

    assert response.json()["error"] == "This feature is not enabled for your account."


# =============================================================================
# Dashboard
# =============================================================================


@pytest.fixture
def site_checks(db, acme):
    db.add(SiteCheck(client_id=acme.id, performance_score=70, checked_at=datetime(2024, 3, 1, tzinfo=timezone.utc)))
    db.add(SiteCheck(client_id=acme.id, performance_score=92, checked_at=datetime(2024, 4, 1, tzinfo=timezone.utc)))
    db.commit()


@pytest.mark.asyncio
async def test_dashboard(client: AsyncClient, acme, site_checks, integrations):
    integrations["uptime"] = FakeUptime(UptimeStatus(status="up", uptime_24h=100))
    umami = FakeUmami(AnalyticsStats(visitors=3, pageviews=9))
    integrations["umami"] = umami
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/dashboard")

    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["client"]["name"] == "Acme"
    assert data["site_check"]["performance_score"] == 92
    assert data["uptime"]["status"] == "up"
    assert data["analytics"]["pageviews"] == 9
    assert umami.calls == [("site-1", "30d")]


@pytest.mark.asyncio
async def test_dashboard_hides_site_health(client: AsyncClient, db, acme, site_checks, integrations):
    acme.hidden_features = ["site_health", "analytics"]
    db.commit()
    umami = FakeUmami(AnalyticsStats(visitors=3))
    integrations["umami"] = umami
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/dashboard")

    data = response.json()["data"]
    assert data["site_check"] is None
    assert data["analytics"] is None
    assert umami.calls == []


@pytest.mark.asyncio
async def test_dashboard_without_integrations(client: AsyncClient, acme):
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/dashboard")

    data = response.json()["data"]
    assert data["site_check"] is None
    assert data["uptime"] is None
    assert data["analytics"] is None


@pytest.mark.asyncio
async def test_dashboard_hidden_feature(client: AsyncClient, db, acme):
    acme.hidden_features = ["dashboard"]
    db.commit()
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/dashboard")

    assert response.json() == {
        "success": False,
        "data": None,
        "error": "This feature is not enabled for your account.",
    }


@pytest.mark.asyncio
async def test_dashboard_respects_contact_flag(client: AsyncClient, db):
    beta = make_client(db, "Beta")
    make_contact(db, beta, CLIENT_USER_ID, can_dashboard=False)
    login(client, CLIENT_USER_ID)

    response = await client.get("/portal/dashboard")

    assert response.json()["error"] == "This feature is not enabled for your account."


@pytest.mark.asyncio
async def test_dashboard_without_client_access(client: AsyncClient):
    login(client, OTHER_USER_ID)

    response = await client.get("/portal/dashboard")

    assert response.json()["error"] == "No client access."
