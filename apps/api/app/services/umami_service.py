"""Umami analytics adapter.

Fails closed: any configuration gap or upstream problem yields None.
"""

from __future__ import annotations

import logging
import time

import httpx

from app.core.config import settings
from app.schemas.integrations import AnalyticsPeriod, AnalyticsStats
from app.services.http_service import IntegrationError, send_request

logger = logging.getLogger(__name__)

SERVICE_NAME = "umami"
PERIOD_MS: dict[str, int] = {
    "24h": 24 * 60 * 60 * 1000,
    "7d": 7 * 24 * 60 * 60 * 1000,
    "30d": 30 * 24 * 60 * 60 * 1000,
}


def _metric(data: dict, *keys: str) -> int:
    for key in keys:
        entry = data.get(key)
        if isinstance(entry, dict) and entry.get("value") is not None:
            return int(entry["value"])
        if isinstance(entry, (int, float)):
            return int(entry)
    return 0


def parse_stats(data: dict) -> AnalyticsStats:
    visitors = _metric(data, "visitors", "uniques")
    bounces = _metric(data, "bounces")
    return AnalyticsStats(
        visitors=visitors,
        pageviews=_metric(data, "pageviews"),
        bounce_rate=round(bounces / (visitors or 1) * 100) if bounces else 0,
        total_time=_metric(data, "totaltime"),
    )


class UmamiClient:
    def __init__(
        self,
        base_url: str,
        api_token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport

    async def fetch_stats(
        self, site_id: str, period: AnalyticsPeriod = "30d"
    ) -> AnalyticsStats | None:
        end_at = int(time.time() * 1000)
        start_at = end_at - PERIOD_MS[period]
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await send_request(
                    client,
                    SERVICE_NAME,
                    "GET",
                    f"{self.base_url}/api/websites/{site_id}/stats",
                    params={"startAt": start_at, "endAt": end_at},
                    headers={
                        "Authorization": f"Bearer {self.api_token}",
                        "Accept": "application/json",
                    },
                )
                data = response.json()
        except (IntegrationError, ValueError):
            logger.warning("Umami stats unavailable", extra={"site_id": site_id})
            return None
        return parse_stats(data)


def get_umami_client() -> UmamiClient | None:
    if not (settings.UMAMI_BASE_URL and settings.UMAMI_API_TOKEN):
        return None
    return UmamiClient(
        base_url=settings.UMAMI_BASE_URL,
        api_token=settings.UMAMI_API_TOKEN,
        timeout=settings.INTEGRATION_TIMEOUT_SECONDS,
    )
