"""HelpScout Mailbox API adapter for support tickets.

Authenticates with OAuth client credentials; the access token is cached on the
client instance until shortly before it expires.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from app.core.config import settings
from app.schemas.integrations import TicketDetail, TicketSummary, TicketThread
from app.services.http_service import IntegrationError, send_request

logger = logging.getLogger(__name__)

HELPSCOUT_API_BASE = "https://api.helpscout.net/v2"
HELPSCOUT_TOKEN_URL = f"{HELPSCOUT_API_BASE}/oauth2/token"
SERVICE_NAME = "helpscout"
TOKEN_REFRESH_MARGIN_SECONDS = 60
MAX_CONVERSATION_PAGES = 10


def _customer_email(data: dict[str, Any]) -> str | None:
    for key in ("primaryCustomer", "customer"):
        customer = data.get(key) or {}
        if customer.get("email"):
            return customer["email"]
    return None


def parse_conversation(data: dict[str, Any]) -> TicketSummary:
    return TicketSummary(
        id=data["id"],
        number=data.get("number"),
        subject=data.get("subject"),
        status=data.get("status") or "active",
        preview=data.get("preview"),
        customer_email=_customer_email(data),
        created_at=data.get("createdAt"),
        updated_at=data.get("userUpdatedAt"),
    )


def parse_thread(data: dict[str, Any]) -> TicketThread:
    author = data.get("createdBy") or {}
    name = f"{author.get('first') or ''} {author.get('last') or ''}".strip()
    return TicketThread(
        id=data["id"],
        type=data.get("type") or "message",
        body=data.get("body"),
        created_at=data.get("createdAt"),
        author_email=author.get("email"),
        author_name=name or None,
    )


class HelpScoutClient:
    def __init__(
        self,
        app_id: str,
        app_secret: str,
        mailbox_id: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.app_id = app_id
        self.app_secret = app_secret
        self.mailbox_id = mailbox_id
        self.timeout = timeout
        self._transport = transport
        self._token: str | None = None
        self._token_expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        if self._token and self._token_expires_at > time.monotonic() + TOKEN_REFRESH_MARGIN_SECONDS:
            return self._token
        response = await send_request(
            client,
            SERVICE_NAME,
            "POST",
            HELPSCOUT_TOKEN_URL,
            json={
                "grant_type": "client_credentials",
                "client_id": self.app_id,
                "client_secret": self.app_secret,
            },
        )
        data = response.json()
        self._token = data["access_token"]
        self._token_expires_at = time.monotonic() + int(data.get("expires_in", 0))
        return self._token

    async def _get(self, client: httpx.AsyncClient, path: str, params: dict | None = None) -> dict:
        token = await self._access_token(client)
        response = await send_request(
            client,
            SERVICE_NAME,
            "GET",
            f"{HELPSCOUT_API_BASE}{path}",
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.status_code == 204:
            return {}
        return response.json()

    async def list_conversations_by_email(self, email: str) -> list[TicketSummary]:
        """All conversations in the mailbox for a customer email, newest first."""
        conversations: list[TicketSummary] = []
        async with self._client() as client:
            page = 1
            while page <= MAX_CONVERSATION_PAGES:
                data = await self._get(
                    client,
                    "/conversations",
                    params={
                        "mailbox": self.mailbox_id,
                        "query": f'(email:"{email}")',
                        "status": "all",
                        "sortField": "modifiedAt",
                        "sortOrder": "desc",
                        "page": page,
                    },
                )
                items = (data.get("_embedded") or {}).get("conversations") or []
                conversations.extend(parse_conversation(item) for item in items)
                total_pages = (data.get("page") or {}).get("totalPages") or 1
                if page >= total_pages or not items:
                    break
                page += 1
        return conversations

    async def get_conversation(self, conversation_id: int) -> TicketDetail | None:
        async with self._client() as client:
            try:
                data = await self._get(
                    client, f"/conversations/{conversation_id}", params={"embed": "threads"}
                )
            except IntegrationError as exc:
                if exc.status_code == 404:
                    return None
                raise
        if not data:
            return None
        summary = parse_conversation(data)
        threads = (data.get("_embedded") or {}).get("threads") or []
        return TicketDetail(
            **summary.model_dump(),
            threads=[parse_thread(t) for t in threads],
        )

    async def create_conversation(
        self,
        customer_email: str,
        customer_name: str,
        subject: str,
        body_html: str,
    ) -> str | None:
        """Open a customer conversation. Returns the Location of the new resource."""
        first_name, _, last_name = customer_name.partition(" ")
        payload = {
            "subject": subject,
            "type": "email",
            "autoReply": True,
            "mailboxId": int(self.mailbox_id),
            "status": "active",
            "customer": {
                "email": customer_email,
                "firstName": first_name or customer_email,
                "lastName": last_name or "-",
            },
            "threads": [
                {"type": "customer", "customer": {"email": customer_email}, "text": body_html}
            ],
        }
        async with self._client() as client:
            token = await self._access_token(client)
            response = await send_request(
                client,
                SERVICE_NAME,
                "POST",
                f"{HELPSCOUT_API_BASE}/conversations",
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        logger.info("HelpScout conversation created")
        return response.headers.get("Location")


_client: HelpScoutClient | None = None


def get_helpscout_client() -> HelpScoutClient | None:
    """Shared client from settings, or None when HelpScout is not configured."""
    global _client
    if not (settings.HELPSCOUT_APP_ID and settings.HELPSCOUT_APP_SECRET and settings.HELPSCOUT_MAILBOX_ID):
        return None
    if _client is None:
        _client = HelpScoutClient(
            app_id=settings.HELPSCOUT_APP_ID,
            app_secret=settings.HELPSCOUT_APP_SECRET,
            mailbox_id=settings.HELPSCOUT_MAILBOX_ID,
            timeout=settings.INTEGRATION_TIMEOUT_SECONDS,
        )
    return _client
