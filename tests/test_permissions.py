"""Permission tests — catalogue, role and user grants, resolution order and
the ``require_permission`` dependency."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi import Depends

from hrms.common.constants import UserRole
from hrms.permissions.dependencies import require_permission
from hrms.permissions.models import Permission, UserPermission
from tests.conftest import auth_headers_for, make_user


async def _permission(db, code: str, **kwargs) -> Permission:
    module, action = code.split(".", 1)
    permission = Permission(
        name=code.replace(".", " ").title(), code=code, module=module, action=action, **kwargs,
    )
    db.add(permission)
    await db.commit()
    return permission


async def _grant_role(client, headers, role: str, permission: Permission, **extra):
    return await client.post(
        "/api/v1/role-permissions/assign",
        headers=headers,
        json={"role": role, "permission_id": str(permission.id), **extra},
    )


async def _check(client, headers, code: str, user_id=None) -> dict:
    body = {"permission_code": code}
    if user_id is not None:
        body["user_id"] = str(user_id)
    resp = await client.post("/api/v1/permissions/check", headers=headers, json=body)
    assert resp.status_code == 200
    return resp.json()["data"]


# ═════════════════════════════════════════════════════════════════════
# 1. CATALOGUE
# ═════════════════════════════════════════════════════════════════════


class TestCatalogue:

    async def test_seed_is_idempotent(self, client, db, admin_headers):
        first = await client.post("/api/v1/permissions/seed", headers=admin_headers)
        assert first.status_code == 201
        assert first.json()["data"]["created"] == 56

        second = await client.post("/api/v1/permissions/seed", headers=admin_headers)
        assert second.json()["data"]["created"] == 0

        modules = await client.get("/api/v1/permissions/modules", headers=admin_headers)
        assert "roster" in modules.json()["data"]
        assert len(modules.json()["data"]) == 14

    async def test_create_and_fetch_by_code(self, client, db, it_headers):
        resp = await client.post(
            "/api/v1/permissions",
            headers=it_headers,
            json={"name": "Approve Roster", "code": "roster.approve", "module": "roster", "action": "update"},
        )
        assert resp.status_code == 201
        fetched = await client.get("/api/v1/permissions/code/roster.approve", headers=it_headers)
        assert fetched.json()["data"]["name"] == "Approve Roster"

    async def test_duplicate_code_conflicts(self, client, db, admin_headers):
        await _permission(db, "employee.read")
        resp = await client.post(
            "/api/v1/permissions",
            headers=admin_headers,
            json={"name": "Read", "code": "employee.read", "module": "employee", "action": "read"},
        )
        assert resp.status_code == 409
        assert "code" in resp.json()["errors"]

    @pytest.mark.parametrize("code", ["Employee.Read", "employee", "employee read"])
    async def test_code_pattern_enforced(self, client, db, admin_headers, code):
        resp = await client.post(
            "/api/v1/permissions",
            headers=admin_headers,
            json={"name": "Bad", "code": code, "module": "employee", "action": "read"},
        )
        assert resp.status_code == 422

    async def test_filters_by_module_and_action(self, client, db, admin_headers):
        await _permission(db, "employee.read")
        await _permission(db, "employee.delete")
        await _permission(db, "shift.read")

        by_module = await client.get("/api/v1/permissions/module/employee", headers=admin_headers)
        assert [p["code"] for p in by_module.json()["data"]] == ["employee.delete", "employee.read"]

        by_action = await client.get("/api/v1/permissions/action/read", headers=admin_headers)
        assert {p["code"] for p in by_action.json()["data"]} == {"employee.read", "shift.read"}

    async def test_soft_delete(self, client, db, admin_headers):
        permission = await _permission(db, "line.update")
        resp = await client.delete(f"/api/v1/permissions/{permission.id}", headers=admin_headers)
        assert resp.status_code == 200

        listed = await client.get("/api/v1/permissions", headers=admin_headers)
        assert listed.json()["data"] == []
        everything = await client.get("/api/v1/permissions?include_inactive=true", headers=admin_headers)
        assert everything.json()["data"][0]["is_active"] is False

    async def test_update_leaves_is_active_alone(self, client, db, admin_headers):
        permission = await _permission(db, "line.update")
        resp = await client.put(
            f"/api/v1/permissions/{permission.id}",
            headers=admin_headers,
            json={"is_active": False, "description": "Edit production lines"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is True
        assert resp.json()["data"]["description"] == "Edit production lines"

        nulled = await client.put(
            f"/api/v1/permissions/{permission.id}", headers=admin_headers, json={"module": None},
        )
        assert nulled.status_code == 422

    async def test_hr_manager_reads_but_cannot_write(self, client, db, hr_headers):
        assert (await client.get("/api/v1/permissions", headers=hr_headers)).status_code == 200
        resp = await client.post("/api/v1/permissions/seed", headers=hr_headers)
        assert resp.status_code == 403

    async def test_employee_cannot_read_catalogue(self, client, db, staff_headers):
        resp = await client.get("/api/v1/permissions", headers=staff_headers)
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# 2. RESOLUTION
# ═════════════════════════════════════════════════════════════════════


class TestResolution:

    async def test_admin_holds_everything(self, client, db, admin_headers):
        result = await _check(client, admin_headers, "anything.at_all")
        assert result["has_permission"] is True
        assert result["source"] == "Admin"

    async def test_role_grant(self, client, db, admin_headers, hr_headers, hr_user):
        permission = await _permission(db, "employee.read")
        resp = await _grant_role(client, admin_headers, "HR Manager", permission)
        assert resp.status_code == 200
        assert resp.json()["data"][0]["permission_code"] == "employee.read"

        result = await _check(client, hr_headers, "employee.read")
        assert result["has_permission"] is True
        assert result["source"] == "Role"

    async def test_unknown_code_denied(self, client, db, hr_headers):
        result = await _check(client, hr_headers, "employee.read")
        assert result["has_permission"] is False
        assert result["source"] is None

    async def test_user_denial_beats_role_grant(self, client, db, admin_headers, hr_headers, hr_user):
        permission = await _permission(db, "employee.read")
        await _grant_role(client, admin_headers, "HR Manager", permission)
        resp = await client.post(
            "/api/v1/user-permissions/assign",
            headers=admin_headers,
            json={
                "user_id": str(hr_user.id),
                "permission_id": str(permission.id),
                "is_granted": False,
                "reason": "Under review",
            },
        )
        assert resp.status_code == 200
        assert resp.json()["message"] == "Permission denied."

        result = await _check(client, hr_headers, "employee.read")
        assert result["has_permission"] is False

    async def test_direct_grant_source_is_user(self, client, db, admin_headers, staff_headers, staff_user):
        permission = await _permission(db, "roster.read")
        await client.post(
            "/api/v1/user-permissions/assign",
            headers=admin_headers,
            json={"user_id": str(staff_user.id), "permission_id": str(permission.id)},
        )
        resp = await client.get(
            "/api/v1/user-permissions/my-permissions/check/roster.read", headers=staff_headers,
        )
        assert resp.json()["data"]["source"] == "User"

    async def test_expired_user_grant_ignored(self, client, db, staff_headers, staff_user):
        permission = await _permission(db, "roster.read")
        db.add(UserPermission(
            user_id=staff_user.id,
            permission_id=permission.id,
            is_granted=True,
            expires_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
        ))
        await db.commit()
        result = await _check(client, staff_headers, "roster.read")
        assert result["has_permission"] is False

    async def test_inactive_permission_not_granted(self, client, db, admin_headers, hr_headers):
        permission = await _permission(db, "employee.read")
        await _grant_role(client, admin_headers, "HR Manager", permission)
        await client.delete(f"/api/v1/permissions/{permission.id}", headers=admin_headers)
        result = await _check(client, hr_headers, "employee.read")
        assert result["has_permission"] is False

    async def test_my_permissions_lists_sources(self, client, db, admin_headers, hr_headers, hr_user):
        by_role = await _permission(db, "employee.read")
        direct = await _permission(db, "shift.read")
        await _grant_role(client, admin_headers, "HR Manager", by_role)
        await client.post(
            "/api/v1/user-permissions/assign",
            headers=admin_headers,
            json={"user_id": str(hr_user.id), "permission_id": str(direct.id)},
        )
        resp = await client.get("/api/v1/permissions/my-permissions", headers=hr_headers)
        assert resp.json()["data"] == [
            {"code": "employee.read", "source": "Role"},
            {"code": "shift.read", "source": "User"},
        ]

    async def test_cannot_check_another_user(self, client, db, staff_headers, hr_user):
        resp = await client.post(
            "/api/v1/permissions/check",
            headers=staff_headers,
            json={"permission_code": "employee.read", "user_id": str(hr_user.id)},
        )
        assert resp.status_code == 403

    async def test_admin_checks_another_user(self, client, db, admin_headers, hr_user):
        result = await _check(client, admin_headers, "employee.read", user_id=hr_user.id)
        assert result["user_id"] == str(hr_user.id)
        assert result["has_permission"] is False


# ═════════════════════════════════════════════════════════════════════
# 3. ROLE & USER GRANT MANAGEMENT
# ═════════════════════════════════════════════════════════════════════


class TestRoleGrants:

    async def test_sync_replaces_grants(self, client, db, admin_headers):
        keep = await _permission(db, "employee.read")
        drop = await _permission(db, "employee.update")
        add = await _permission(db, "shift.read")
        await client.post(
            "/api/v1/role-permissions/bulk-assign",
            headers=admin_headers,
            json={"role": "Manager", "permission_ids": [str(keep.id), str(drop.id)]},
        )
        resp = await client.post(
            "/api/v1/role-permissions/Manager/sync",
            headers=admin_headers,
            json={"permission_ids": [str(keep.id), str(add.id)]},
        )
        assert resp.json()["data"] == {"granted": 2, "added": 1, "removed": 1}

        listed = await client.get("/api/v1/role-permissions/Manager", headers=admin_headers)
        assert [g["permission_code"] for g in listed.json()["data"]] == ["employee.read", "shift.read"]

    async def test_copy_between_roles(self, client, db, admin_headers):
        permission = await _permission(db, "line.read")
        await _grant_role(client, admin_headers, "HR", permission)
        resp = await client.post("/api/v1/role-permissions/copy/HR/Manager", headers=admin_headers)
        assert resp.json()["data"]["copied"] == 1
        listed = await client.get("/api/v1/role-permissions/Manager", headers=admin_headers)
        assert listed.json()["data"][0]["role_name"] == "Manager"

    async def test_remove_role_permission(self, client, db, admin_headers):
        permission = await _permission(db, "line.read")
        await _grant_role(client, admin_headers, "HR", permission)
        resp = await client.delete(
            f"/api/v1/role-permissions/HR/permission/{permission.id}", headers=admin_headers,
        )
        assert resp.json()["data"]["removed"] == 1

    async def test_unknown_role_rejected(self, client, db, admin_headers):
        resp = await client.get("/api/v1/role-permissions/Janitor", headers=admin_headers)
        assert resp.status_code == 400

    async def test_assign_and_remove_user_role(self, client, db, admin_headers, staff_user):
        assigned = await client.post(
            "/api/v1/role-permissions/user-role/assign",
            headers=admin_headers,
            json={"user_id": str(staff_user.id), "role": "HR"},
        )
        assert assigned.json()["data"]["roles"] == ["Employee", "HR"]

        members = await client.get("/api/v1/role-permissions/HR/users", headers=admin_headers)
        assert [u["email"] for u in members.json()["data"]] == ["staff@hrhub.test"]

        removed = await client.delete(
            f"/api/v1/role-permissions/user-role/{staff_user.id}/HR", headers=admin_headers,
        )
        assert removed.json()["data"]["roles"] == ["Employee"]

    async def test_removing_unassigned_role_is_404(self, client, db, admin_headers, staff_user):
        resp = await client.delete(
            f"/api/v1/role-permissions/user-role/{staff_user.id}/IT", headers=admin_headers,
        )
        assert resp.status_code == 404


class TestUserGrants:

    async def test_summary(self, client, db, admin_headers, hr_user):
        by_role = await _permission(db, "employee.read")
        direct = await _permission(db, "roster.create")
        await _grant_role(client, admin_headers, "HR Manager", by_role)
        await client.post(
            "/api/v1/user-permissions/bulk-assign",
            headers=admin_headers,
            json={"user_id": str(hr_user.id), "permission_ids": [str(direct.id)]},
        )
        resp = await client.get(f"/api/v1/user-permissions/{hr_user.id}/summary", headers=admin_headers)
        data = resp.json()["data"]
        assert data["roles"] == ["HR Manager"]
        assert data["role_permissions"] == ["employee.read"]
        assert [d["permission_code"] for d in data["direct_permissions"]] == ["roster.create"]
        assert data["by_module"] == {"employee": ["employee.read"], "roster": ["roster.create"]}

    async def test_copy_and_sync(self, client, db, admin_headers, hr_user, staff_user):
        first = await _permission(db, "shift.read")
        second = await _permission(db, "shift.update")
        await client.post(
            "/api/v1/user-permissions/bulk-assign",
            headers=admin_headers,
            json={"user_id": str(hr_user.id), "permission_ids": [str(first.id), str(second.id)]},
        )
        copied = await client.post(
            f"/api/v1/user-permissions/copy/{hr_user.id}/{staff_user.id}", headers=admin_headers,
        )
        assert copied.json()["data"]["copied"] == 2

        synced = await client.post(
            f"/api/v1/user-permissions/{staff_user.id}/sync",
            headers=admin_headers,
            json={"permission_ids": [str(first.id)]},
        )
        assert synced.json()["data"] == {"granted": 1, "added": 0, "removed": 1}

        effective = await client.get(
            f"/api/v1/user-permissions/{staff_user.id}/effective", headers=admin_headers,
        )
        assert effective.json()["data"] == [{"code": "shift.read", "source": "User"}]

    async def test_bulk_remove(self, client, db, admin_headers, staff_user):
        permission = await _permission(db, "shift.read")
        await client.post(
            "/api/v1/user-permissions/assign",
            headers=admin_headers,
            json={"user_id": str(staff_user.id), "permission_id": str(permission.id)},
        )
        resp = await client.post(
            f"/api/v1/user-permissions/{staff_user.id}/bulk-remove",
            headers=admin_headers,
            json={"permission_ids": [str(permission.id)]},
        )
        assert resp.json()["data"]["removed"] == 1
        listed = await client.get(f"/api/v1/user-permissions/{staff_user.id}", headers=admin_headers)
        assert listed.json()["data"] == []

    async def test_hr_manager_cannot_grant(self, client, db, hr_headers, staff_user):
        permission = await _permission(db, "shift.read")
        resp = await client.post(
            "/api/v1/user-permissions/assign",
            headers=hr_headers,
            json={"user_id": str(staff_user.id), "permission_id": str(permission.id)},
        )
        assert resp.status_code == 403


# ═════════════════════════════════════════════════════════════════════
# 4. DEPENDENCY
# ═════════════════════════════════════════════════════════════════════


@pytest.fixture
async def guarded_app(app):
    async def _probe():
        return {"data": "ok", "message": "Allowed."}

    app.add_api_route(
        "/api/v1/probe",
        _probe,
        methods=["GET"],
        dependencies=[Depends(require_permission("employee.export"))],
    )
    return app


class TestRequirePermission:

    async def test_missing_permission(self, client, db, guarded_app, hr_headers):
        resp = await client.get("/api/v1/probe", headers=hr_headers)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Missing permission 'employee.export'."

    async def test_role_grant_passes(self, client, db, guarded_app, admin_headers, hr_headers):
        permission = await _permission(db, "employee.export")
        await _grant_role(client, admin_headers, "HR Manager", permission)
        resp = await client.get("/api/v1/probe", headers=hr_headers)
        assert resp.status_code == 200

    async def test_admin_passes(self, client, db, guarded_app, admin_headers):
        resp = await client.get("/api/v1/probe", headers=admin_headers)
        assert resp.json()["data"] == "ok"

    async def test_role_implication_does_not_grant_permissions(self, client, db, guarded_app, admin_headers, company):
        # HR Manager implies HR for route guards, but grants follow literal role names
        permission = await _permission(db, "employee.export")
        await _grant_role(client, admin_headers, "HR", permission)
        manager = await make_user(db, roles=(UserRole.hr_manager,), company=company)
        headers = await auth_headers_for(db, manager)
        resp = await client.get("/api/v1/probe", headers=headers)
        assert resp.status_code == 403
