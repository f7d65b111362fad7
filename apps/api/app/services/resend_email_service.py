"""Resend Email Service.

Sends form submission notifications via the Resend API. One attempt per
message; failures are logged and reported to the caller as False.
"""

from __future__ import annotations

import html as html_module
import logging
import re
from datetime import datetime

import httpx

from app.core.config import settings
from app.services.http_service import IntegrationError, send_request

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 20.0
SERVICE_NAME = "resend"


def is_configured() -> bool:
    return bool(settings.RESEND_API_KEY and settings.EMAIL_FROM)


def _html_to_text(content: str) -> str:
    """Convert HTML into readable text for the plain-text alternative."""
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", content, flags=re.DOTALL | re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return html_module.unescape(text)


def build_submission_email(
    form_name: str,
    fields: list[tuple[str, str]],
    submitted_at: datetime,
    admin_url: str,
) -> str:
    """Render a notification body listing each label/value pair."""
    rows = "".join(
        f"<tr><td><strong>{html_module.escape(label)}</strong></td>"
        f"<td>{html_module.escape(value) or '&mdash;'}</td></tr>"
        for label, value in fields
    )
    return (
        f"<h2>New submission: {html_module.escape(form_name)}</h2>"
        f"<p>Received {submitted_at.strftime('%Y-%m-%d %H:%M UTC')}</p>"
        f"<table>{rows}</table>"
        f'<p><a href="{html_module.escape(admin_url)}">View submissions</a></p>'
    )


async def send_email(
    to: str,
    subject: str,
    html: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """Send one email. Returns False when unconfigured or rejected."""
    if not is_configured():
        logger.info("Resend not configured, skipping email")
        return False

    recipients = [addr.strip() for addr in to.split(",") if addr.strip()]
    payload = {
        "from": settings.EMAIL_FROM,
        "to": recipients,
        "subject": subject,
        "html": html,
        "text": _html_to_text(html),
    }
    try:
        async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS, transport=transport) as client:
            await send_request(
                client,
                SERVICE_NAME,
                "POST",
                RESEND_SEND_URL,
                json=payload,
                headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            )
    except IntegrationError:
        logger.warning("Notification email failed", extra={"recipient_count": len(recipients)})
        return False
    return True
