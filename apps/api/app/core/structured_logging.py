"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any

from app.core.config import settings


def build_log_context(
    *,
    user_id: str | None = None,
    client_id: str | None = None,
    impersonator_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict. Opaque ids only, never emails or names."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if client_id:
        context["client_id"] = client_id
    if impersonator_id:
        context["impersonator_id"] = impersonator_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def configure_logging() -> None:
    """Root logger setup, called once at startup."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
