"""Identity provider adapter.

Users, their emails and their portal role live on the external identity
provider (Clerk). The portal never stores them locally; it only keeps the
provider's opaque user id on ClientContact rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """Provider unreachable, misconfigured, or returned an unexpected response."""


class ProviderUserNotFoundError(IdentityProviderError):
    """The provider has no user with the requested id."""


@dataclass
class ProviderUser:
    """Provider-shaped user, reduced to what the portal reads."""

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None
    last_sign_in_at: int | None = None
    public_metadata: dict[str, Any] = field(default_factory=dict)


class IdentityProvider(Protocol):
    """Operations the portal needs from the identity provider."""

    def get_user(self, user_id: str) -> ProviderUser: ...

    def list_users(self, *, limit: int = 100, offset: int = 0) -> list[ProviderUser]: ...

    def find_user_by_email(self, email: str) -> ProviderUser | None: ...

    def update_role(self, user_id: str, role: str | None) -> None: ...


def _primary_email(data: dict) -> str:
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")
    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address.get("email_address") or ""
    if addresses:
        return addresses[0].get("email_address") or ""
    return ""


def parse_clerk_user(data: dict) -> ProviderUser:
    """Map a Clerk user object onto ProviderUser."""
    return ProviderUser(
        id=data["id"],
        email=_primary_email(data),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
        image_url=data.get("image_url"),
        last_sign_in_at=data.get("last_sign_in_at"),
        public_metadata=data.get("public_metadata") or {},
    )


class ClerkIdentityProvider:
    """Clerk Backend API client (https://clerk.com/docs/reference/backend-api)."""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._secret_key = secret_key if secret_key is not None else settings.CLERK_SECRET_KEY
        self._base_url = (base_url or settings.CLERK_API_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.INTEGRATION_TIMEOUT_SECONDS
        self._transport = transport

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        if not self._secret_key:
            raise IdentityProviderError("Identity provider not configured")
        with httpx.Client(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._secret_key}"},
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            try:
                response = client.request(method, path, **kwargs)
            except httpx.RequestError as exc:
                raise IdentityProviderError(f"Identity provider request failed: {exc}") from exc
        if response.status_code == 404:
            raise ProviderUserNotFoundError(path)
        if response.status_code >= 400:
            raise IdentityProviderError(
                f"Identity provider returned {response.status_code} for {method} {path}"
            )
        return response

    def get_user(self, user_id: str) -> ProviderUser:
        response = self._request("GET", f"/users/{user_id}")
        return parse_clerk_user(response.json())

    def list_users(self, *, limit: int = 100, offset: int = 0) -> list[ProviderUser]:
        response = self._request(
            "GET",
            "/users",
            params={"limit": limit, "offset": offset, "order_by": "-last_sign_in_at"},
        )
        payload = response.json()
        # Older API versions return a bare list, newer ones wrap it in "data"
        items = payload.get("data", []) if isinstance(payload, dict) else payload
        return [parse_clerk_user(item) for item in items]

    def find_user_by_email(self, email: str) -> ProviderUser | None:
        response = self._request("GET", "/users", params={"email_address": [email], "limit": 1})
        payload = response.json()
        items = payload.get("data", []) if isinstance(payload, dict) else payload
        if not items:
            return None
        return parse_clerk_user(items[0])

    def update_role(self, user_id: str, role: str | None) -> None:
        # Clerk merges metadata; null deletes the key.
        self._request(
            "PATCH",
            f"/users/{user_id}/metadata",
            json={"public_metadata": {"role": role}},
        )
        logger.info("Updated provider role", extra={"user_id": user_id, "role": role or "client"})
