"""
Tests for /api/v1/auth and the role checks behind the payroll endpoints.
"""
import uuid

import pytest

from dcpayroll.core.security import create_access_token, decode_token, token_pair
from tests.conftest import auth_headers


BASE = "/api/v1/auth"


async def login(client, email: str, password: str = "testpass123"):
    return await client.post(f"{BASE}/login", json={"email": email, "password": password})


# ── Tokens ────────────────────────────────────────────────────────────────────

def test_token_pair_carries_role_only_on_access_token():
    user_id = uuid.uuid4()
    access, refresh = token_pair(user_id, "supervisor")

    claims = decode_token(access, expected_type="access")
    assert claims["sub"] == str(user_id)
    assert claims["role"] == "supervisor"
    assert "role" not in decode_token(refresh, expected_type="refresh")
    with pytest.raises(ValueError):
        decode_token(refresh, expected_type="access")


def test_unknown_role_gets_no_token():
    with pytest.raises(ValueError):
        create_access_token(uuid.uuid4(), "accountant")


# ── Login / refresh ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["admin", "manager", "supervisor"])
async def test_login_then_me_reports_role(client, admin_user, manager_user, supervisor_user, role):
    email = f"{role}@example.com"
    resp = await login(client, email)
    assert resp.status_code == 200

    me = await client.get(f"{BASE}/me", headers=auth_headers(resp.json()["access_token"]))
    assert me.status_code == 200
    assert me.json()["email"] == email
    assert me.json()["role"] == role


@pytest.mark.asyncio
async def test_login_rejected(client, db, supervisor_user):
    assert (await login(client, "supervisor@example.com", "wrongpassword")).status_code == 401
    assert (await login(client, "nobody@example.com")).status_code == 401

    supervisor_user.is_active = False
    await db.commit()
    assert (await login(client, "supervisor@example.com")).status_code == 400


@pytest.mark.asyncio
async def test_refresh_picks_up_role_change(client, db, supervisor_user):
    refresh = (await login(client, "supervisor@example.com")).json()["refresh_token"]
    supervisor_user.role = "manager"
    await db.commit()

    resp = await client.post(f"{BASE}/refresh", json={"refresh_token": refresh})
    assert resp.status_code == 200
    assert decode_token(resp.json()["access_token"])["role"] == "manager"


@pytest.mark.asyncio
async def test_refresh_rejects_access_and_garbage_tokens(client, manager_token):
    for token in (manager_token, "invalid.token.here"):
        resp = await client.post(f"{BASE}/refresh", json={"refresh_token": token})
        assert resp.status_code == 401


# ── Roles ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_role_matrix_on_period_endpoints(client, admin_token, manager_token, supervisor_token):
    missing = f"/api/v1/wage-periods/{uuid.uuid4()}"
    expected = {
        "calculate": {"supervisor": 403, "manager": 404, "admin": 404},
        "lock": {"supervisor": 403, "manager": 403, "admin": 404},
    }
    tokens = {"supervisor": supervisor_token, "manager": manager_token, "admin": admin_token}

    for action, by_role in expected.items():
        for role, status in by_role.items():
            resp = await client.post(f"{missing}/{action}", headers=auth_headers(tokens[role]))
            assert resp.status_code == status, (action, role)


@pytest.mark.asyncio
async def test_deactivated_user_token_is_refused(client, db, manager_user, manager_token):
    manager_user.is_active = False
    await db.commit()
    resp = await client.get(f"{BASE}/me", headers=auth_headers(manager_token))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_me_without_token(client):
    resp = await client.get(f"{BASE}/me")
    assert resp.status_code in (401, 403)  # FastAPI answers 403 when the token is missing


# ── Change-Password ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_supervisor_changes_password(client, supervisor_user, supervisor_token):
    headers = auth_headers(supervisor_token)
    wrong = await client.post(
        f"{BASE}/change-password",
        json={"current_password": "wrongpass", "new_password": "newpass456"},
        headers=headers,
    )
    assert wrong.status_code == 400
    short = await client.post(
        f"{BASE}/change-password",
        json={"current_password": "testpass123", "new_password": "short"},
        headers=headers,
    )
    assert short.status_code == 422

    resp = await client.post(
        f"{BASE}/change-password",
        json={"current_password": "testpass123", "new_password": "newpass456"},
        headers=headers,
    )
    assert resp.status_code == 204
    assert (await login(client, "supervisor@example.com")).status_code == 401
    assert (await login(client, "supervisor@example.com", "newpass456")).status_code == 200
