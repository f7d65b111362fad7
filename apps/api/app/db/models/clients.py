"""Client (tenant) models: clients, contacts, services and site checks."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Client(Base):
    """
    A tenant/customer organization in the portal.

    Integration ids (Stripe, Umami, Uptime Kuma) are optional; a missing id
    means that dashboard card is unavailable, not an error.
    """

    __tablename__ = "clients"
    __table_args__ = (Index("idx_clients_active", "is_active"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    umami_site_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uptime_kuma_monitor_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    # Permission keys forced off for every contact of this client
    hidden_features: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    contacts: Mapped[list["ClientContact"]] = relationship(
        back_populates="client",
        cascade="all, delete-orphan",
        order_by="ClientContact.created_at",
    )
    services: Mapped[list["ClientService"]] = relationship(
        back_populates="client", cascade="all, delete-orphan"
    )
    site_checks: Mapped[list["SiteCheck"]] = relationship(
        back_populates="client",
        cascade="all, delete-orphan",
        order_by="SiteCheck.checked_at.desc()",
    )


class ClientContact(Base):
    """
    Links an external identity to a client with per-feature capability flags.

    external_user_id is NULL until the contact signs in for the first time
    (or an admin links them); matching then happens by email.
    """

    __tablename__ = "client_contacts"
    __table_args__ = (
        UniqueConstraint("client_id", "external_user_id", name="uq_client_contacts_client_user"),
        UniqueConstraint("client_id", "email", name="uq_client_contacts_client_email"),
        Index("idx_client_contacts_user", "external_user_id"),
        Index("idx_client_contacts_email", "email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    external_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role_label: Mapped[str | None] = mapped_column(String(100), nullable=True)

    can_dashboard: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False)
    can_billing: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False)
    can_analytics: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False)
    can_uptime: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False)
    can_support: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False)
    can_site_health: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False)

    # Primary contacts get every capability in the UI; not enforced here.
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false(), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_utcnow, onupdate=_utcnow, server_default=func.now(), nullable=False
    )

    client: Mapped["Client"] = relationship(back_populates="contacts")


class ClientService(Base):
    """A service tag attached to a client."""

    __tablename__ = "client_services"
    __table_args__ = (UniqueConstraint("client_id", "type", name="uq_client_services_client_type"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )

    client: Mapped["Client"] = relationship(back_populates="services")


class SiteCheck(Base):
    """Cached page-speed / SSL scan snapshot for a client website."""

    __tablename__ = "site_checks"
    __table_args__ = (Index("idx_site_checks_client_checked", "client_id", "checked_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    performance_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    accessibility_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    seo_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    best_practices_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    ssl_valid: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    ssl_issuer: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ssl_expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    checked_at: Mapped[datetime] = mapped_column(
        default=_utcnow, server_default=func.now(), nullable=False
    )

    client: Mapped["Client"] = relationship(back_populates="site_checks")
