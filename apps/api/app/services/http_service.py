"""HTTP helpers shared by the integration adapters.

Every call is a single attempt. Transport failures and error statuses are
raised as IntegrationError so callers can report "unavailable".
"""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class IntegrationError(Exception):
    """An upstream service could not be reached or rejected the call."""

    def __init__(self, service: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
        self.status_code = status_code


async def send_request(
    client: httpx.AsyncClient,
    service: str,
    method: str,
    url: str,
    **kwargs,
) -> httpx.Response:
    """Send one request, raising IntegrationError on failure."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.RequestError as exc:
        logger.warning("%s request failed", service, exc_info=exc)
        raise IntegrationError(service, "request failed") from exc

    if response.status_code >= 400:
        logger.warning(
            "%s returned %s",
            service,
            response.status_code,
            extra={"url": str(response.request.url)},
        )
        raise IntegrationError(
            service, f"HTTP {response.status_code}", status_code=response.status_code
        )
    return response
