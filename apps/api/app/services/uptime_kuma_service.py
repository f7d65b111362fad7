"""Uptime Kuma adapter reading status-page heartbeats for a monitor."""

from __future__ import annotations

import logging

import httpx

from app.core.config import settings
from app.schemas.integrations import UptimeStatus
from app.services.http_service import IntegrationError, send_request

logger = logging.getLogger(__name__)

SERVICE_NAME = "uptime_kuma"
STATUS_UP = 1


def parse_heartbeats(monitor_id: str, data: dict) -> UptimeStatus:
    """Latest beat decides up/down; 24h uptime is the share of up beats."""
    beats = (data.get("heartbeatList") or {}).get(monitor_id) or []
    if not beats:
        return UptimeStatus(status="unknown")

    latest = beats[-1]
    up = sum(1 for beat in beats if beat.get("status") == STATUS_UP)
    return UptimeStatus(
        status="up" if latest.get("status") == STATUS_UP else "down",
        uptime_24h=round(up / len(beats) * 100, 2),
        uptime_30d=(data.get("uptimeList") or data.get("uptime") or {}).get(f"{monitor_id}_720"),
        response_time=latest.get("ping"),
        last_check=latest.get("time"),
    )


class UptimeKumaClient:
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

    async def fetch_status(self, monitor_id: str) -> UptimeStatus | None:
        """Monitor status, or None when the monitor cannot be read."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await send_request(
                    client,
                    SERVICE_NAME,
                    "GET",
                    f"{self.base_url}/api/status-page/heartbeat/{monitor_id}",
                    headers={"Authorization": f"Bearer {self.api_token}"},
                )
                data = response.json()
        except (IntegrationError, ValueError):
            logger.warning("Uptime Kuma status unavailable", extra={"monitor_id": monitor_id})
            return None
        return parse_heartbeats(monitor_id, data)


def get_uptime_kuma_client() -> UptimeKumaClient | None:
    if not (settings.UPTIME_KUMA_BASE_URL and settings.UPTIME_KUMA_API_TOKEN):
        return None
    return UptimeKumaClient(
        base_url=settings.UPTIME_KUMA_BASE_URL,
        api_token=settings.UPTIME_KUMA_API_TOKEN,
        timeout=settings.INTEGRATION_TIMEOUT_SECONDS,
    )
