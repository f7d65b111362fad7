"""Normalized shapes returned by the billing, support, analytics and uptime adapters."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.portal import PortalClientRead, SiteCheckRead


# =============================================================================
# Billing
# =============================================================================

class SubscriptionSummary(BaseModel):
    id: str
    status: str
    product_name: str | None = None
    amount: int | None = None
    currency: str | None = None
    interval: str | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False


class InvoiceSummary(BaseModel):
    id: str
    number: str | None = None
    status: str | None = None
    amount_due: int = 0
    amount_paid: int = 0
    currency: str | None = None
    created: datetime | None = None
    hosted_invoice_url: str | None = None
    invoice_pdf: str | None = None


class PaymentMethodSummary(BaseModel):
    id: str
    brand: str | None = None
    last4: str | None = None
    exp_month: int | None = None
    exp_year: int | None = None


class BillingOverview(BaseModel):
    customer_email: str | None = None
    subscriptions: list[SubscriptionSummary] = Field(default_factory=list)
    invoices: list[InvoiceSummary] = Field(default_factory=list)
    payment_methods: list[PaymentMethodSummary] = Field(default_factory=list)


class PortalSessionRequest(BaseModel):
    return_path: str = "/billing"


# =============================================================================
# Support
# =============================================================================

class TicketThread(BaseModel):
    id: int
    type: str
    body: str | None = None
    created_at: datetime | None = None
    author_email: str | None = None
    author_name: str | None = None


class TicketSummary(BaseModel):
    id: int
    number: int | None = None
    subject: str | None = None
    status: str
    preview: str | None = None
    customer_email: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TicketDetail(TicketSummary):
    threads: list[TicketThread] = Field(default_factory=list)


# =============================================================================
# Analytics / uptime
# =============================================================================

AnalyticsPeriod = Literal["24h", "7d", "30d"]


class AnalyticsStats(BaseModel):
    visitors: int = 0
    pageviews: int = 0
    bounce_rate: int = 0
    total_time: int = 0


class UptimeStatus(BaseModel):
    status: Literal["up", "down", "pending", "unknown"]
    uptime_24h: float | None = None
    uptime_30d: float | None = None
    response_time: float | None = None
    last_check: str | None = None


class DashboardData(BaseModel):
    """Response for GET /portal/dashboard. Cards the contact may not see are null."""

    client: PortalClientRead
    site_check: SiteCheckRead | None = None
    uptime: UptimeStatus | None = None
    analytics: AnalyticsStats | None = None
