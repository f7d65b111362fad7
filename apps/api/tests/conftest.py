"""
Test configuration and fixtures.

Provides:
- In-memory SQLite schema, recreated for each test
- Fake identity provider holding users in memory
- Session token minting for authenticated tests
- HTTPX AsyncClient with proper headers
"""
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Generator

os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("ENV", "test")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from app.main import app
from app.core.deps import COOKIE_NAME, get_db, get_identity_provider
from app.core.request_context import RequestContext
from app.core.security import create_session_token
from app.db.base import Base
from app.db.models import Client, ClientContact
from app.db.session import SessionLocal, engine
from app.services.helpscout_service import get_helpscout_client
from app.services.identity_provider import ProviderUser, ProviderUserNotFoundError
from app.services.umami_service import get_umami_client
from app.services.uptime_kuma_service import get_uptime_kuma_client


ADMIN_ID = "user_admin"
STAFF_ID = "user_staff"
CLIENT_USER_ID = "user_client"
OTHER_USER_ID = "user_other"


# =============================================================================
# Identity Provider
# =============================================================================

class FakeIdentityProvider:
    """In-memory stand-in for the Clerk backend API."""

    def __init__(self) -> None:
        self.users: dict[str, ProviderUser] = {}
        self.role_updates: list[tuple[str, str | None]] = []

    def add(self, user_id: str, email: str, role: str | None = None, first_name: str | None = None) -> ProviderUser:
        metadata = {"role": role} if role is not None else {}
        user = ProviderUser(
            id=user_id,
            email=email,
            first_name=first_name,
            last_name=None,
            public_metadata=metadata,
        )
        self.users[user_id] = user
        return user

    def get_user(self, user_id: str) -> ProviderUser:
        if user_id not in self.users:
            raise ProviderUserNotFoundError(user_id)
        return self.users[user_id]

    def list_users(self, *, limit: int = 100, offset: int = 0) -> list[ProviderUser]:
        return list(self.users.values())[offset:offset + limit]

    def find_user_by_email(self, email: str) -> ProviderUser | None:
        for user in self.users.values():
            if user.email.lower() == email.lower():
                return user
        return None

    def update_role(self, user_id: str, role: str | None) -> None:
        user = self.get_user(user_id)
        user.public_metadata = {"role": role} if role else {}
        self.role_updates.append((user_id, role))


@pytest.fixture(scope="function")
def provider() -> FakeIdentityProvider:
    fake = FakeIdentityProvider()
    fake.add(ADMIN_ID, "admin@agency.com", role="admin", first_name="Ada")
    fake.add(STAFF_ID, "staff@agency.com", role="employee", first_name="Sam")
    fake.add(CLIENT_USER_ID, "owner@acme.com", first_name="Olive")
    fake.add(OTHER_USER_ID, "someone@else.com")
    return fake


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a fresh schema per test.

    The in-memory engine shares one connection, so create_all/drop_all
    gives each test an empty database.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def ctx_factory(db: Session, provider: FakeIdentityProvider):
    """Build a RequestContext the way get_request_context does."""

    def make(
        user_id: str | None = None,
        impersonation_token: str | None = None,
        active_client_token: str | None = None,
    ) -> RequestContext:
        return RequestContext(
            db=db,
            identity_provider=provider,
            session_token=create_session_token(user_id) if user_id else None,
            impersonation_token=impersonation_token,
            active_client_token=active_client_token,
            request_id="req-test",
        )

    return make


_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_client(db: Session, name: str = "Acme", **kwargs) -> Client:
    client = Client(
        id=uuid.uuid4(),
        name=name,
        email=kwargs.pop("email", f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}@clients.com"),
        **kwargs,
    )
    db.add(client)
    db.commit()
    return client


def make_contact(
    db: Session,
    client: Client,
    user_id: str | None,
    email: str = "owner@acme.com",
    minutes: int = 0,
    **kwargs,
) -> ClientContact:
    """Contact linked at _BASE_TIME + minutes, so link order is explicit."""
    contact = ClientContact(
        id=uuid.uuid4(),
        client_id=client.id,
        external_user_id=user_id,
        email=email,
        name=kwargs.pop("name", "Olive Owner"),
        created_at=_BASE_TIME + timedelta(minutes=minutes),
        **kwargs,
    )
    db.add(contact)
    db.commit()
    return contact


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user_id: str
    token: str
    cookie_name: str = COOKIE_NAME


def login(client: AsyncClient, user_id: str) -> TestAuth:
    """Attach a provider session cookie for user_id to client."""
    auth = TestAuth(user_id=user_id, token=create_session_token(user_id))
    client.cookies.set(auth.cookie_name, auth.token)
    return auth


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def integrations() -> dict:
    """Integration clients handed to routes; tests replace entries as needed."""
    return {"helpscout": None, "umami": None, "uptime": None}


@pytest.fixture(scope="function")
async def client(
    db: Session,
    provider: FakeIdentityProvider,
    integrations: dict,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient with the CSRF header.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: provider
    app.dependency_overrides[get_helpscout_client] = lambda: integrations["helpscout"]
    app.dependency_overrides[get_umami_client] = lambda: integrations["umami"]
    app.dependency_overrides[get_uptime_kuma_client] = lambda: integrations["uptime"]

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(client: AsyncClient) -> AsyncClient:
    """Client signed in as the admin user."""
    login(client, ADMIN_ID)
    return client
