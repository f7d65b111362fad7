"""Stripe billing adapter.

Reads subscriptions, invoices and saved cards for a client's Stripe customer
and opens Customer Portal sessions. The API key is passed per call so nothing
here mutates the library's global state.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import stripe

from app.core.config import settings
from app.schemas.integrations import (
    BillingOverview,
    InvoiceSummary,
    PaymentMethodSummary,
    SubscriptionSummary,
)

logger = logging.getLogger(__name__)

SUBSCRIPTION_LIMIT = 10
INVOICE_LIMIT = 24


class BillingUnavailableError(Exception):
    """Stripe is not configured or the call failed."""


def is_configured() -> bool:
    return bool(settings.STRIPE_SECRET_KEY)


def _timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def parse_subscription(sub: Any) -> SubscriptionSummary:
    items = (sub.get("items") or {}).get("data") or []
    price = (items[0].get("price") if items else None) or {}
    product = price.get("product")
    # Unexpanded products are plain ids
    product_name = product.get("name") if hasattr(product, "get") else None
    recurring = price.get("recurring") or {}
    period_end = sub.get("current_period_end")
    if period_end is None and items:
        period_end = items[0].get("current_period_end")
    return SubscriptionSummary(
        id=sub["id"],
        status=sub.get("status") or "unknown",
        product_name=product_name,
        amount=price.get("unit_amount"),
        currency=price.get("currency"),
        interval=recurring.get("interval"),
        current_period_end=_timestamp(period_end),
        cancel_at_period_end=bool(sub.get("cancel_at_period_end")),
    )


def parse_invoice(invoice: Any) -> InvoiceSummary:
    return InvoiceSummary(
        id=invoice["id"],
        number=invoice.get("number"),
        status=invoice.get("status"),
        amount_due=invoice.get("amount_due") or 0,
        amount_paid=invoice.get("amount_paid") or 0,
        currency=invoice.get("currency"),
        created=_timestamp(invoice.get("created")),
        hosted_invoice_url=invoice.get("hosted_invoice_url"),
        invoice_pdf=invoice.get("invoice_pdf"),
    )


def parse_payment_method(method: Any) -> PaymentMethodSummary:
    card = method.get("card") or {}
    return PaymentMethodSummary(
        id=method["id"],
        brand=card.get("brand"),
        last4=card.get("last4"),
        exp_month=card.get("exp_month"),
        exp_year=card.get("exp_year"),
    )


def get_billing_overview(customer_id: str) -> BillingOverview:
    """
    Subscriptions, invoices and cards for a Stripe customer.

    Raises:
        BillingUnavailableError: Stripe not configured or unreachable
    """
    if not is_configured():
        raise BillingUnavailableError("Billing system not configured.")
    api_key = settings.STRIPE_SECRET_KEY
    try:
        customer = stripe.Customer.retrieve(customer_id, api_key=api_key)
        subscriptions = stripe.Subscription.list(
            customer=customer_id,
            status="all",
            limit=SUBSCRIPTION_LIMIT,
            expand=["data.items.data.price.product"],
            api_key=api_key,
        )
        invoices = stripe.Invoice.list(customer=customer_id, limit=INVOICE_LIMIT, api_key=api_key)
        methods = stripe.PaymentMethod.list(customer=customer_id, type="card", api_key=api_key)
    except stripe.StripeError as exc:
        logger.warning("Stripe billing lookup failed", extra={"customer_id": customer_id}, exc_info=exc)
        raise BillingUnavailableError("Billing is temporarily unavailable.") from exc

    return BillingOverview(
        customer_email=customer.get("email"),
        subscriptions=[parse_subscription(s) for s in subscriptions.data],
        invoices=[parse_invoice(i) for i in invoices.data],
        payment_methods=[parse_payment_method(m) for m in methods.data],
    )


def create_portal_session(customer_id: str, return_url: str) -> str:
    """
    Open a Customer Portal session and return its URL.

    Raises:
        BillingUnavailableError: Stripe not configured or unreachable
    """
    if not is_configured():
        raise BillingUnavailableError("Billing system not configured.")
    try:
        session = stripe.billing_portal.Session.create(
            customer=customer_id,
            return_url=return_url,
            api_key=settings.STRIPE_SECRET_KEY,
        )
    except stripe.StripeError as exc:
        logger.warning("Stripe portal session failed", extra={"customer_id": customer_id}, exc_info=exc)
        raise BillingUnavailableError("Billing is temporarily unavailable.") from exc
    return session.url
