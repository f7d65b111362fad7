"""Schemas for admin client and contact management."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.core.permissions import normalize_hidden_features
from app.db.enums import ServiceType
from app.schemas.portal import SiteCheckRead


class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    company: str | None = None
    website_url: str | None = None
    stripe_customer_id: str | None = None
    umami_site_id: str | None = None
    uptime_kuma_monitor_id: str | None = None
    notes: str | None = None
    is_active: bool = True
    hidden_features: list[str] = Field(default_factory=list)

    @field_validator("hidden_features")
    @classmethod
    def _check_hidden_features(cls, value: list[str]) -> list[str]:
        return normalize_hidden_features(value)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    company: str | None = None
    website_url: str | None = None
    stripe_customer_id: str | None = None
    umami_site_id: str | None = None
    uptime_kuma_monitor_id: str | None = None
    notes: str | None = None
    is_active: bool | None = None
    hidden_features: list[str] | None = None

    @field_validator("hidden_features")
    @classmethod
    def _check_hidden_features(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return normalize_hidden_features(value)


class ClientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    company: str | None
    website_url: str | None
    stripe_customer_id: str | None
    umami_site_id: str | None
    uptime_kuma_monitor_id: str | None
    notes: str | None
    is_active: bool
    hidden_features: list[str]
    services: list[ServiceType] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("services", mode="before")
    @classmethod
    def _service_types(cls, value: list) -> list:
        return [getattr(s, "type", s) for s in value or []]


class ContactCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    role_label: str | None = None
    can_dashboard: bool = True
    can_billing: bool = True
    can_analytics: bool = True
    can_uptime: bool = True
    can_support: bool = True
    can_site_health: bool = True
    is_primary: bool = False
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str | None) -> str | None:
        return value.lower() if value else value


class ContactUpdate(BaseModel):
    email: EmailStr | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    role_label: str | None = None
    can_dashboard: bool | None = None
    can_billing: bool | None = None
    can_analytics: bool | None = None
    can_uptime: bool | None = None
    can_support: bool | None = None
    can_site_health: bool | None = None
    is_primary: bool | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str | None) -> str | None:
        return value.lower() if value else value


class ContactRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    client_id: UUID
    external_user_id: str | None
    email: str
    name: str
    role_label: str | None
    can_dashboard: bool
    can_billing: bool
    can_analytics: bool
    can_uptime: bool
    can_support: bool
    can_site_health: bool
    is_primary: bool
    is_active: bool
    created_at: datetime


class ClientDetail(ClientRead):
    contacts: list[ContactRead] = Field(default_factory=list)
    latest_site_check: SiteCheckRead | None = None


class ServicesUpdate(BaseModel):
    services: list[ServiceType]
