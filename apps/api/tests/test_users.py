"""Tests for admin user listing and role assignment."""

import pytest
from httpx import AsyncClient

from tests.conftest import ADMIN_ID, CLIENT_USER_ID, STAFF_ID, login


@pytest.mark.asyncio
async def test_list_users_normalizes_roles(authed_client: AsyncClient):
    response = await authed_client.get("/admin/users")

    assert response.status_code == 200
    roles = {u["id"]: u["role"] for u in response.json()}
    assert roles[ADMIN_ID] == "admin"
    assert roles[STAFF_ID] == "team_member"
    assert roles[CLIENT_USER_ID] == "client"


@pytest.mark.asyncio
async def test_promote_and_demote(authed_client: AsyncClient, provider):
    promoted = await authed_client.patch(f"/admin/users/{CLIENT_USER_ID}/role", json={"role": "team_member"})
    assert promoted.status_code == 204

    demoted = await authed_client.patch(f"/admin/users/{STAFF_ID}/role", json={"role": "client"})
    assert demoted.status_code == 204

    # Clients carry no role key at all
    assert provider.role_updates == [(CLIENT_USER_ID, "team_member"), (STAFF_ID, None)]


@pytest.mark.asyncio
async def test_cannot_change_own_role(authed_client: AsyncClient):
    response = await authed_client.patch(f"/admin/users/{ADMIN_ID}/role", json={"role": "client"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_user_or_role(authed_client: AsyncClient):
    missing = await authed_client.patch("/admin/users/user_gone/role", json={"role": "admin"})
    assert missing.status_code == 400

    invalid = await authed_client.patch(f"/admin/users/{STAFF_ID}/role", json={"role": "owner"})
    assert invalid.status_code == 422


@pytest.mark.asyncio
async def test_team_member_cannot_manage_users(client: AsyncClient):
    login(client, STAFF_ID)

    response = await client.get("/admin/users")

    assert response.status_code == 403
