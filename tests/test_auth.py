"""Auth module test suite — login, token rotation, sessions, profile,
role / company assignment and user administration."""

from __future__ import annotations

from sqlalchemy import select

from hrms.auth.models import UserCompany, UserSession
from hrms.auth.security import hash_token
from hrms.common.constants import UserRole
from tests.conftest import (
    DEFAULT_PASSWORD,
    TestSessionFactory,
    auth_headers_for,
    expired_headers,
    make_user,
)


async def _login(client, email: str, password: str = DEFAULT_PASSWORD):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


# ── Login ───────────────────────────────────────────────────────────


async def test_login_returns_token_pair(client, db, staff_user):
    """Valid credentials → 200 with access + refresh tokens and user info."""
    resp = await _login(client, staff_user.email)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["token_type"] == "bearer"
    assert data["expires_in"] > 0
    assert data["user"]["email"] == staff_user.email
    assert data["user"]["roles"] == ["Employee"]


async def test_login_persists_hashed_session(client, db, staff_user):
    resp = await _login(client, staff_user.email)
    token = resp.json()["data"]["access_token"]

    async with TestSessionFactory() as session:
        row = (
            await session.execute(
                select(UserSession).where(UserSession.user_id == staff_user.id)
            )
        ).scalars().one()
    assert row.token_hash == hash_token(token)
    assert row.token_hash != token
    assert row.is_revoked is False


async def test_login_wrong_password(client, db, staff_user):
    resp = await _login(client, staff_user.email, "wrong-password")
    assert resp.status_code == 401
    body = resp.json()
    assert body["detail"] == "Invalid email or password"
    assert body["status"] == 401


async def test_login_inactive_user_rejected(client, db):
    user = await make_user(db, email="gone@hrhub.test", is_active=False)
    resp = await _login(client, user.email)
    assert resp.status_code == 401


async def test_login_unknown_email_same_message(client, db):
    resp = await _login(client, "nobody@hrhub.test")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password"


# ── Token checks ────────────────────────────────────────────────────


async def test_missing_token_is_unauthorized(client):
    resp = await client.get("/api/v1/auth/profile")
    assert resp.status_code == 401
    assert resp.headers["content-type"].startswith("application/problem+json")


async def test_expired_token_is_unauthorized(client, db, staff_user):
    resp = await client.get("/api/v1/auth/profile", headers=expired_headers(staff_user))
    assert resp.status_code == 401
    assert "expired" in resp.json()["detail"].lower()


async def test_token_without_session_is_unauthorized(client, db, staff_user):
    """A well-signed token that was never persisted is refused."""
    from hrms.auth.security import create_access_token

    token, _ = create_access_token(staff_user.id, staff_user.email, ["Employee"])
    resp = await client.get(
        "/api/v1/auth/profile", headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 401


# ── Refresh rotation ────────────────────────────────────────────────


class TestRefreshToken:

    async def test_refresh_rotates_pair(self, client, db, staff_user):
        tokens = (await _login(client, staff_user.email)).json()["data"]

        resp = await client.post(
            "/api/v1/auth/refresh-token",
            json={"refresh_token": tokens["refresh_token"], "access_token": tokens["access_token"]},
        )
        assert resp.status_code == 200
        new = resp.json()["data"]
        assert new["refresh_token"] != tokens["refresh_token"]
        assert new["access_token"] != tokens["access_token"]

        # New access token works
        profile = await client.get(
            "/api/v1/auth/profile",
            headers={"Authorization": f"Bearer {new['access_token']}"},
        )
        assert profile.status_code == 200

    async def test_reused_refresh_token_revokes_everything(self, client, db, staff_user):
        tokens = (await _login(client, staff_user.email)).json()["data"]
        first = await client.post(
            "/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]},
        )
        assert first.status_code == 200
        rotated = first.json()["data"]

        reuse = await client.post(
            "/api/v1/auth/refresh-token", json={"refresh_token": tokens["refresh_token"]},
        )
        assert reuse.status_code == 403
        assert "reuse" in reuse.json()["detail"].lower()

        # The rotated session was revoked as well
        profile = await client.get(
            "/api/v1/auth/profile",
            headers={"Authorization": f"Bearer {rotated['access_token']}"},
        )
        assert profile.status_code == 401

    async def test_garbage_refresh_token(self, client):
        resp = await client.post("/api/v1/auth/refresh-token", json={"refresh_token": "not-a-jwt"})
        assert resp.status_code == 401

    async def test_access_token_of_other_user_rejected(self, client, db, staff_user, hr_user):
        mine = (await _login(client, staff_user.email)).json()["data"]
        theirs = (await _login(client, hr_user.email)).json()["data"]
        resp = await client.post(
            "/api/v1/auth/refresh-token",
            json={"refresh_token": mine["refresh_token"], "access_token": theirs["access_token"]},
        )
        assert resp.status_code == 401


# ── Logout / revoke / validate ──────────────────────────────────────


async def test_logout_revokes_current_session(client, db, staff_user):
    tokens = (await _login(client, staff_user.email)).json()["data"]
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    resp = await client.post("/api/v1/auth/logout", headers=headers)
    assert resp.status_code == 200

    again = await client.get("/api/v1/auth/profile", headers=headers)
    assert again.status_code == 401


async def test_revoke_token_revokes_all_sessions(client, db, staff_user):
    first = (await _login(client, staff_user.email)).json()["data"]
    second = (await _login(client, staff_user.email)).json()["data"]

    resp = await client.post(
        "/api/v1/auth/revoke-token",
        headers={"Authorization": f"Bearer {first['access_token']}"},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["revoked_sessions"] == 2

    other = await client.get(
        "/api/v1/auth/profile", headers={"Authorization": f"Bearer {second['access_token']}"},
    )
    assert other.status_code == 401


async def test_validate_token(client, db, staff_user):
    tokens = (await _login(client, staff_user.email)).json()["data"]

    ok = await client.post("/api/v1/auth/validate-token", json={"token": tokens["access_token"]})
    assert ok.status_code == 200
    assert ok.json()["data"]["is_valid"] is True
    assert ok.json()["data"]["email"] == staff_user.email

    bad = await client.post("/api/v1/auth/validate-token", json={"token": "garbage"})
    assert bad.status_code == 200
    assert bad.json()["data"]["is_valid"] is False


# ── Profile & password ──────────────────────────────────────────────


async def test_profile_roundtrip(client, db, staff_user, staff_headers, company):
    resp = await client.get("/api/v1/auth/profile", headers=staff_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["company_ids"] == [company.id]

    upd = await client.put(
        "/api/v1/auth/profile", headers=staff_headers, json={"position": "Supervisor"},
    )
    assert upd.status_code == 200
    assert upd.json()["data"]["position"] == "Supervisor"


async def test_profile_rejects_null_name(client, db, staff_headers):
    resp = await client.put(
        "/api/v1/auth/profile", headers=staff_headers, json={"first_name": None, "position": None},
    )
    assert resp.status_code == 422
    assert list(resp.json()["errors"]) == ["first_name"]


async def test_change_password(client, db, staff_user, staff_headers):
    wrong = await client.post(
        "/api/v1/auth/change-password",
        headers=staff_headers,
        json={"current_password": "nope", "new_password": "NewPass123"},
    )
    assert wrong.status_code == 400

    ok = await client.post(
        "/api/v1/auth/change-password",
        headers=staff_headers,
        json={"current_password": DEFAULT_PASSWORD, "new_password": "NewPass123"},
    )
    assert ok.status_code == 200
    assert (await _login(client, staff_user.email, "NewPass123")).status_code == 200


# ── Registration & role assignment (Admin) ──────────────────────────


class TestRegistration:

    async def test_admin_registers_user(self, client, db, admin_headers, company):
        resp = await client.post(
            "/api/v1/auth/register",
            headers=admin_headers,
            json={
                "email": "new.hire@hrhub.test",
                "password": "secret123",
                "first_name": "New",
                "last_name": "Hire",
                "company_id": company.id,
                "role": "HR",
            },
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["roles"] == ["HR"]
        assert data["company_ids"] == [company.id]

    async def test_duplicate_email_conflict(self, client, db, admin_headers, staff_user):
        resp = await client.post(
            "/api/v1/auth/register",
            headers=admin_headers,
            json={
                "email": staff_user.email,
                "password": "secret123",
                "first_name": "Dup",
                "last_name": "User",
            },
        )
        assert resp.status_code == 409

    async def test_unknown_role_rejected(self, client, db, admin_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            headers=admin_headers,
            json={
                "email": "x@hrhub.test",
                "password": "secret123",
                "first_name": "X",
                "last_name": "Y",
                "role": "Overlord",
            },
        )
        assert resp.status_code == 400

    async def test_non_admin_cannot_register(self, client, db, hr_headers):
        resp = await client.post(
            "/api/v1/auth/register",
            headers=hr_headers,
            json={
                "email": "x@hrhub.test",
                "password": "secret123",
                "first_name": "X",
                "last_name": "Y",
            },
        )
        assert resp.status_code == 403

    async def test_assign_role_takes_effect_without_relogin(
        self, client, db, admin_headers, staff_user, staff_headers,
    ):
        denied = await client.get("/api/v1/system/health", headers=staff_headers)
        assert denied.status_code == 403

        resp = await client.post(
            "/api/v1/auth/assign-role",
            headers=admin_headers,
            json={"email": staff_user.email, "role": "HR Manager"},
        )
        assert resp.status_code == 200
        assert "HR Manager" in resp.json()["data"]["roles"]

        allowed = await client.get("/api/v1/system/health", headers=staff_headers)
        assert allowed.status_code == 200


# ── Company assignment ──────────────────────────────────────────────


class TestCompanyAssignment:

    async def test_assign_and_remove_company(
        self, client, db, admin_headers, staff_user, company, other_company,
    ):
        resp = await client.post(
            "/api/v1/auth/assign-company",
            headers=admin_headers,
            json={"user_id": str(staff_user.id), "company_id": other_company.id},
        )
        assert resp.status_code == 200
        ids = {c["company_id"] for c in resp.json()["data"]}
        assert ids == {company.id, other_company.id}

        removed = await client.delete(
            f"/api/v1/auth/user/{staff_user.id}/companies/{other_company.id}",
            headers=admin_headers,
        )
        assert removed.status_code == 200

        async with TestSessionFactory() as session:
            link = (
                await session.execute(
                    select(UserCompany).where(
                        UserCompany.user_id == staff_user.id,
                        UserCompany.company_id == other_company.id,
                    )
                )
            ).scalars().one()
        assert link.is_active is False

    async def test_assign_many_companies(self, client, db, admin_headers, it_user, company, other_company):
        resp = await client.post(
            "/api/v1/auth/assign-multiple-companies-to-user",
            headers=admin_headers,
            json={"user_id": str(it_user.id), "company_ids": [company.id, other_company.id, company.id]},
        )
        assert resp.status_code == 200
        assert len(resp.json()["data"]) == 2

    async def test_assign_unknown_company_404(self, client, db, admin_headers, staff_user):
        resp = await client.post(
            "/api/v1/auth/assign-company",
            headers=admin_headers,
            json={"user_id": str(staff_user.id), "company_id": 9999},
        )
        assert resp.status_code == 404

    async def test_user_cannot_view_other_users_companies(
        self, client, db, staff_headers, hr_user,
    ):
        resp = await client.get(f"/api/v1/auth/user/{hr_user.id}/companies", headers=staff_headers)
        assert resp.status_code == 403


# ── User administration ─────────────────────────────────────────────


class TestUserAdministration:

    async def test_list_users_paginated(self, client, db, admin_headers, staff_user, hr_user):
        resp = await client.get("/api/v1/users?page_size=2", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["total"] == 3
        assert body["meta"]["page_size"] == 2
        assert body["meta"]["has_next"] is True
        assert len(body["data"]) == 2

    async def test_filter_users_by_role(self, client, db, admin_headers, staff_user, hr_user):
        resp = await client.get("/api/v1/users?role=HR Manager", headers=admin_headers)
        emails = [u["email"] for u in resp.json()["data"]]
        assert emails == [hr_user.email]

    async def test_deactivate_user_blocks_access(self, client, db, admin_headers, staff_user):
        headers = await auth_headers_for(db, staff_user)
        resp = await client.put(
            f"/api/v1/users/{staff_user.id}/status",
            headers=admin_headers,
            json={"is_active": False},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is False

        blocked = await client.get("/api/v1/auth/profile", headers=headers)
        assert blocked.status_code == 401

    async def test_set_roles_replaces_assignments(self, client, db, admin_headers, staff_user):
        resp = await client.put(
            f"/api/v1/users/{staff_user.id}/roles",
            headers=admin_headers,
            json={"roles": ["HR", "Manager"]},
        )
        assert resp.status_code == 200
        assert sorted(resp.json()["data"]["roles"]) == ["HR", "Manager"]

    async def test_roles_listing_includes_builtins(self, client, db, admin_headers):
        resp = await client.get("/api/v1/users/roles", headers=admin_headers)
        names = {r["name"] for r in resp.json()["data"]}
        assert {r.value for r in UserRole} <= names

    async def test_user_statistics(self, client, db, admin_headers, staff_user):
        resp = await client.get("/api/v1/users/statistics", headers=admin_headers)
        assert resp.status_code == 200

    async def test_unknown_user_404(self, client, db, admin_headers):
        resp = await client.get(
            "/api/v1/users/00000000-0000-0000-0000-000000000000", headers=admin_headers,
        )
        assert resp.status_code == 404
