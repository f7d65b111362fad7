"""Schemas for the client-facing portal."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator


class PermissionSet(BaseModel):
    """Capabilities for the current client context. Never persisted."""

    model_config = ConfigDict(frozen=True)

    dashboard: bool = False
    billing: bool = False
    analytics: bool = False
    uptime: bool = False
    support: bool = False
    site_health: bool = False

    def allows(self, key: str) -> bool:
        return bool(getattr(self, key, False))


class PortalClientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    company: str | None
    website_url: str | None
    services: list[str]

    @field_validator("services", mode="before")
    @classmethod
    def _service_types(cls, value: list) -> list:
        return [getattr(s, "type", s) for s in value or []]


class PortalContactRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role_label: str | None
    is_primary: bool


class ClientContextRead(BaseModel):
    """Response for GET /portal/context."""

    client: PortalClientRead
    contact: PortalContactRead
    permissions: PermissionSet
    user_email: str


class AccessibleClient(BaseModel):
    id: UUID
    name: str
    is_primary: bool


class ActiveClientSwitch(BaseModel):
    client_id: UUID


class SiteCheckRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    performance_score: int | None
    accessibility_score: int | None
    seo_score: int | None
    best_practices_score: int | None
    ssl_valid: bool | None
    ssl_issuer: str | None
    ssl_expires_at: datetime | None
    checked_at: datetime
