"""
Identity resolution tests.

Tests cover:
- Role normalization (legacy aliases, unknown values, missing role)
- Derived flags always agree with the role
- Session token handling and provider lookups
- /auth/me
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from app.core.security import create_session_token
from app.db.enums import Role
from app.services import auth_service
from app.services.auth_service import AuthenticationError, PermissionDeniedError
from app.services.identity_provider import IdentityProviderError, ProviderUser

from tests.conftest import ADMIN_ID, CLIENT_USER_ID, STAFF_ID, login


# =============================================================================
# normalize_role
# =============================================================================


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("admin", Role.ADMIN),
        ("ADMIN ", Role.ADMIN),
        ("employee", Role.TEAM_MEMBER),
        ("team_member", Role.TEAM_MEMBER),
        ("client", Role.CLIENT),
        ("superuser", Role.CLIENT),
        ("", Role.CLIENT),
        (None, Role.CLIENT),
        (42, Role.CLIENT),
    ],
)
def test_normalize_role(raw, expected):
    assert auth_service.normalize_role(raw) == expected


def test_build_identity_derives_flags_from_role():
    user = ProviderUser(
        id="u1",
        email="u1@test.com",
        first_name="Una",
        last_name="One",
        public_metadata={"role": "employee"},
    )

    identity = auth_service.build_identity(user)

    assert identity.role == Role.TEAM_MEMBER
    assert identity.name == "Una One"
    assert identity.is_team_member is True
    assert identity.is_staff is True
    assert identity.is_admin is False


def test_build_identity_without_name_falls_back_to_email():
    identity = auth_service.build_identity(ProviderUser(id="u2", email="u2@test.com"))

    assert identity.name == "u2@test.com"
    assert identity.role == Role.CLIENT
    assert identity.is_staff is False


# =============================================================================
# Request resolution
# =============================================================================


def test_auth_user_requires_session(ctx_factory):
    ctx = ctx_factory()
    assert auth_service.get_auth_user(ctx) is None
    with pytest.raises(AuthenticationError):
        auth_service.require_real_user(ctx)


def test_auth_user_rejects_expired_token(ctx_factory):
    ctx = ctx_factory()
    ctx.session_token = create_session_token(ADMIN_ID, expires_in=timedelta(seconds=-5))
    assert auth_service.get_auth_user(ctx) is None


def test_auth_user_unknown_provider_user(ctx_factory):
    ctx = ctx_factory("user_deleted")
    assert auth_service.get_auth_user(ctx) is None


def test_auth_user_provider_outage_is_anonymous(ctx_factory, provider, monkeypatch):
    def boom(user_id):
        raise IdentityProviderError("down")

    monkeypatch.setattr(provider, "get_user", boom)
    ctx = ctx_factory(ADMIN_ID)
    assert auth_service.get_auth_user(ctx) is None


def test_auth_user_is_memoized_per_request(ctx_factory, provider, monkeypatch):
    calls = []
    original = provider.get_user

    def counting(user_id):
        calls.append(user_id)
        return original(user_id)

    monkeypatch.setattr(provider, "get_user", counting)
    ctx = ctx_factory(ADMIN_ID)

    first = auth_service.get_auth_user(ctx)
    second = auth_service.get_auth_user(ctx)

    assert first == second
    assert calls == [ADMIN_ID]


def test_require_admin_and_staff(ctx_factory):
    assert auth_service.require_admin(ctx_factory(ADMIN_ID)).id == ADMIN_ID
    assert auth_service.require_staff(ctx_factory(STAFF_ID)).id == STAFF_ID

    with pytest.raises(PermissionDeniedError):
        auth_service.require_admin(ctx_factory(STAFF_ID))
    with pytest.raises(PermissionDeniedError):
        auth_service.require_staff(ctx_factory(CLIENT_USER_ID))


# =============================================================================
# API
# =============================================================================


@pytest.mark.asyncio
async def test_me_requires_session(client: AsyncClient):
    response = await client.get("/auth/me")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_returns_identity(client: AsyncClient):
    login(client, STAFF_ID)

    response = await client.get("/auth/me")

    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == STAFF_ID
    assert data["user"]["role"] == "team_member"
    assert data["user"]["is_staff"] is True
    assert data["impersonating"] is None


@pytest.mark.asyncio
async def test_me_accepts_bearer_token(client: AsyncClient):
    token = create_session_token(CLIENT_USER_ID)

    response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json()["user"]["role"] == "client"
    assert response.headers.get("X-Request-ID")


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    login(client, CLIENT_USER_ID)

    response = await client.get("/auth/me", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
