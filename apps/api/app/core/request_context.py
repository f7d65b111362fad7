"""Per-request context: raw credentials, collaborators and a memo cache.

Everything resolved for one request (identity, effective identity, client
context) is memoized here and dropped with the request. Nothing is shared
across requests or users.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from sqlalchemy.orm import Session

if TYPE_CHECKING:
    from app.services.identity_provider import IdentityProvider

T = TypeVar("T")

_MISSING = object()


@dataclass
class RequestContext:
    """Explicit replacement for ambient cookie/session access."""

    db: Session
    identity_provider: "IdentityProvider"
    session_token: str | None = None
    impersonation_token: str | None = None
    active_client_token: str | None = None
    request_id: str | None = None
    cache: dict[str, Any] = field(default_factory=dict)

    def memo(self, key: str, factory: Callable[[], T]) -> T:
        """Return the cached value for key, computing it once per request."""
        value = self.cache.get(key, _MISSING)
        if value is _MISSING:
            value = factory()
            self.cache[key] = value
        return value

    def invalidate(self, *keys: str) -> None:
        """Drop memoized values after a mutation within the same request."""
        for key in keys:
            self.cache.pop(key, None)
