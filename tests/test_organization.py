"""Organisation test suite — departments, sections, designations, degrees
and lines: CRUD, parent validation, uniqueness, dependants and scope."""

from __future__ import annotations

import pytest

from hrms.organization.models import Degree, Line
from tests.conftest import make_employee, make_org


# ═════════════════════════════════════════════════════════════════════
# 1. DEPARTMENTS
# ═════════════════════════════════════════════════════════════════════


class TestDepartments:

    async def test_create_department(self, client, db, hr_headers, company):
        resp = await client.post(
            "/api/v1/departments",
            headers=hr_headers,
            json={"name": "Finishing", "name_bangla": "ফিনিশিং", "company_id": company.id},
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["name"] == "Finishing"
        assert data["company_name"] == company.name

    async def test_duplicate_name_within_company(self, client, db, hr_headers, company, org):
        resp = await client.post(
            "/api/v1/departments",
            headers=hr_headers,
            json={"name": "production", "company_id": company.id},
        )
        assert resp.status_code == 409

    async def test_same_name_allowed_in_other_company(self, client, db, admin_headers, org, other_company):
        resp = await client.post(
            "/api/v1/departments",
            headers=admin_headers,
            json={"name": "Production", "company_id": other_company.id},
        )
        assert resp.status_code == 201

    async def test_invalid_company_rejected(self, client, db, admin_headers):
        resp = await client.post(
            "/api/v1/departments",
            headers=admin_headers,
            json={"name": "Ghost", "company_id": 999},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid company: 999."

    async def test_out_of_scope_company_forbidden(self, client, db, hr_headers, other_company):
        resp = await client.post(
            "/api/v1/departments",
            headers=hr_headers,
            json={"name": "Cutting", "company_id": other_company.id},
        )
        assert resp.status_code == 403

    async def test_list_is_scoped(self, client, db, hr_headers, company, org, other_company):
        await make_org(db, other_company, suffix=" B")
        resp = await client.get("/api/v1/departments", headers=hr_headers)
        assert [d["name"] for d in resp.json()["data"]] == ["Production"]

    async def test_by_company(self, client, db, admin_headers, company, org, other_company):
        await make_org(db, other_company, suffix=" B")
        resp = await client.get(
            f"/api/v1/departments/by-company/{other_company.id}", headers=admin_headers,
        )
        assert [d["name"] for d in resp.json()["data"]] == ["Production B"]

    async def test_update_department(self, client, db, hr_headers, org):
        department = org["department"]
        resp = await client.put(
            f"/api/v1/departments/{department.id}",
            headers=hr_headers,
            json={"name": "Production Floor"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Production Floor"

    async def test_update_does_not_toggle_is_active(self, client, db, admin_headers, org):
        department = org["department"]
        resp = await client.put(
            f"/api/v1/departments/{department.id}",
            headers=admin_headers,
            json={"is_active": False},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is True

        # Only DELETE deactivates, and it still sees the section
        blocked = await client.delete(f"/api/v1/departments/{department.id}", headers=admin_headers)
        assert blocked.status_code == 409

    @pytest.mark.parametrize("field", ["name", "company_id"])
    async def test_update_rejects_null_required_field(self, client, db, hr_headers, org, field):
        resp = await client.put(
            f"/api/v1/departments/{org['department'].id}", headers=hr_headers, json={field: None},
        )
        assert resp.status_code == 422
        assert field in resp.json()["errors"]

    async def test_move_blocked_by_dependants(self, client, db, admin_headers, org, employee, other_company):
        resp = await client.put(
            f"/api/v1/departments/{org['department'].id}",
            headers=admin_headers,
            json={"company_id": other_company.id},
        )
        assert resp.status_code == 409
        assert resp.json()["detail"].startswith("Cannot move department")

    async def test_move_unreferenced_department(self, client, db, admin_headers, company, other_company):
        created = await client.post(
            "/api/v1/departments",
            headers=admin_headers,
            json={"name": "Finishing", "company_id": company.id},
        )
        resp = await client.put(
            f"/api/v1/departments/{created.json()['data']['id']}",
            headers=admin_headers,
            json={"company_id": other_company.id},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["company_id"] == other_company.id

    async def test_delete_blocked_by_sections(self, client, db, admin_headers, org):
        resp = await client.delete(
            f"/api/v1/departments/{org['department'].id}", headers=admin_headers,
        )
        assert resp.status_code == 409
        assert "section(s)" in resp.json()["detail"]

    async def test_hr_manager_cannot_delete(self, client, db, hr_headers, org):
        resp = await client.delete(
            f"/api/v1/departments/{org['department'].id}", headers=hr_headers,
        )
        assert resp.status_code == 403

    async def test_employee_role_cannot_read(self, client, db, staff_headers, org):
        resp = await client.get("/api/v1/departments", headers=staff_headers)
        assert resp.status_code == 403

    async def test_statistics(self, client, db, admin_headers, company, org, employee):
        resp = await client.get("/api/v1/departments/statistics", headers=admin_headers)
        data = resp.json()["data"]
        assert data["overview"]["total_departments"] == 1
        assert data["employees_by_department"][0]["employee_count"] == 1
        assert data["recent_departments"][0]["name"] == "Production"


# ═════════════════════════════════════════════════════════════════════
# 2. SECTIONS & DESIGNATIONS
# ═════════════════════════════════════════════════════════════════════


class TestSections:

    async def test_create_section_enriched(self, client, db, hr_headers, company, org):
        resp = await client.post(
            "/api/v1/sections",
            headers=hr_headers,
            json={"department_id": org["department"].id, "name": "Cutting"},
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["department_name"] == "Production"
        assert data["company_id"] == company.id

    async def test_unknown_department_rejected(self, client, db, admin_headers):
        resp = await client.post(
            "/api/v1/sections", headers=admin_headers, json={"department_id": 777, "name": "X"},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid department: 777."

    async def test_inactive_department_rejected(self, client, db, admin_headers, company):
        chain = await make_org(db, company, suffix=" Old")
        chain["department"].is_active = False
        await db.commit()
        resp = await client.post(
            "/api/v1/sections",
            headers=admin_headers,
            json={"department_id": chain["department"].id, "name": "Packing"},
        )
        assert resp.status_code == 400

    async def test_by_department(self, client, db, admin_headers, org):
        resp = await client.get(
            f"/api/v1/sections/by-department/{org['department'].id}", headers=admin_headers,
        )
        assert [s["name"] for s in resp.json()["data"]] == ["Sewing"]

    async def test_delete_blocked_by_designations(self, client, db, admin_headers, org):
        resp = await client.delete(f"/api/v1/sections/{org['section'].id}", headers=admin_headers)
        assert resp.status_code == 409
        assert "designation(s)" in resp.json()["detail"]

    async def test_move_blocked_by_designations(self, client, db, admin_headers, company, org):
        target = await client.post(
            "/api/v1/departments",
            headers=admin_headers,
            json={"name": "Finishing", "company_id": company.id},
        )
        resp = await client.put(
            f"/api/v1/sections/{org['section'].id}",
            headers=admin_headers,
            json={"department_id": target.json()["data"]["id"]},
        )
        assert resp.status_code == 409
        assert "designation(s)" in resp.json()["detail"]

    async def test_same_department_is_not_a_move(self, client, db, admin_headers, org):
        resp = await client.put(
            f"/api/v1/sections/{org['section'].id}",
            headers=admin_headers,
            json={"department_id": org["department"].id, "name": "Sewing A"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["name"] == "Sewing A"


class TestDesignations:

    async def test_create_designation(self, client, db, hr_headers, org):
        resp = await client.post(
            "/api/v1/designations",
            headers=hr_headers,
            json={
                "section_id": org["section"].id,
                "name": "Supervisor",
                "grade": "G-3",
                "attendance_bonus": "750.00",
            },
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["section_name"] == "Sewing"
        assert data["department_name"] == "Production"
        assert data["grade"] == "G-3"

    async def test_negative_bonus_rejected(self, client, db, hr_headers, org):
        resp = await client.post(
            "/api/v1/designations",
            headers=hr_headers,
            json={"section_id": org["section"].id, "name": "Helper", "grade": "G-7",
                  "attendance_bonus": "-1"},
        )
        assert resp.status_code == 422

    async def test_filter_by_grade(self, client, db, admin_headers, org):
        resp = await client.get("/api/v1/designations?grade=G-5", headers=admin_headers)
        assert [d["name"] for d in resp.json()["data"]] == ["Operator"]
        resp = await client.get("/api/v1/designations?grade=G-1", headers=admin_headers)
        assert resp.json()["data"] == []

    async def test_delete_blocked_by_employee(self, client, db, admin_headers, org, employee):
        resp = await client.delete(
            f"/api/v1/designations/{org['designation'].id}", headers=admin_headers,
        )
        assert resp.status_code == 409

    async def test_move_blocked_by_employee(self, client, db, admin_headers, company, org, employee):
        other = await make_org(db, company, suffix=" B")
        resp = await client.put(
            f"/api/v1/designations/{org['designation'].id}",
            headers=admin_headers,
            json={"section_id": other["section"].id},
        )
        assert resp.status_code == 409
        assert resp.json()["detail"] == (
            "Cannot move designation: it is still referenced by 1 active employee(s)."
        )

        assert "employee(s)" in resp.json()["detail"]

    async def test_delete_unreferenced(self, client, db, admin_headers, org):
        resp = await client.delete(
            f"/api/v1/designations/{org['designation'].id}", headers=admin_headers,
        )
        assert resp.status_code == 200
        listed = await client.get("/api/v1/designations", headers=admin_headers)
        assert listed.json()["data"] == []

    async def test_statistics_grade_distribution(self, client, db, admin_headers, org):
        resp = await client.get("/api/v1/designations/statistics", headers=admin_headers)
        assert resp.json()["data"]["grade_distribution"] == [{"grade": "G-5", "count": 1}]


# ═════════════════════════════════════════════════════════════════════
# 3. DEGREES & LINES
# ═════════════════════════════════════════════════════════════════════


class TestDegrees:

    async def test_common_degrees_are_public(self, client):
        resp = await client.get("/api/v1/degrees/common")
        assert resp.status_code == 200
        names = [d["name"] for d in resp.json()["data"]]
        assert "Secondary School Certificate" in names
        assert all(d["name_bangla"] for d in resp.json()["data"])

    async def test_hr_can_create_degree(self, client, db, company):
        from hrms.common.constants import UserRole
        from tests.conftest import auth_headers_for, make_user

        hr = await make_user(db, roles=(UserRole.hr,), company=company)
        headers = await auth_headers_for(db, hr)
        resp = await client.post(
            "/api/v1/degrees",
            headers=headers,
            json={"name": "Diploma in Textile", "level": "Diploma", "company_id": company.id},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["company_name"] == company.name

    async def test_filter_by_level(self, client, db, admin_headers, company):
        db.add_all([
            Degree(name="SSC", level="SSC", company_id=company.id),
            Degree(name="BSc", level="Bachelor", company_id=company.id),
        ])
        await db.commit()
        resp = await client.get("/api/v1/degrees?level=Bachelor", headers=admin_headers)
        assert [d["name"] for d in resp.json()["data"]] == ["BSc"]

    async def test_delete_requires_admin(self, client, db, hr_headers, company):
        degree = Degree(name="HSC", level="HSC", company_id=company.id)
        db.add(degree)
        await db.commit()
        resp = await client.delete(f"/api/v1/degrees/{degree.id}", headers=hr_headers)
        assert resp.status_code == 403

    async def test_delete_blocked_by_employee(self, client, db, admin_headers, company, org):
        degree = Degree(name="HSC", level="HSC", company_id=company.id)
        db.add(degree)
        await db.commit()
        await make_employee(db, company, org, degree_id=degree.id)
        resp = await client.delete(f"/api/v1/degrees/{degree.id}", headers=admin_headers)
        assert resp.status_code == 409


class TestLines:

    async def test_line_crud(self, client, db, admin_headers, company):
        created = await client.post(
            "/api/v1/lines", headers=admin_headers, json={"name": "Line 1", "company_id": company.id},
        )
        assert created.status_code == 201
        line_id = created.json()["data"]["id"]

        updated = await client.put(
            f"/api/v1/lines/{line_id}", headers=admin_headers, json={"name_bangla": "লাইন ১"},
        )
        assert updated.json()["data"]["name_bangla"] == "লাইন ১"

        deleted = await client.delete(f"/api/v1/lines/{line_id}", headers=admin_headers)
        assert deleted.status_code == 200

        fetched = await client.get(f"/api/v1/lines/{line_id}", headers=admin_headers)
        assert fetched.json()["data"]["is_active"] is False

    @pytest.mark.parametrize("name", ["Line 2", "LINE 2", " line 2 "])
    async def test_duplicate_line_name(self, client, db, admin_headers, company, name):
        db.add(Line(name="Line 2", company_id=company.id))
        await db.commit()
        resp = await client.post(
            "/api/v1/lines", headers=admin_headers, json={"name": name, "company_id": company.id},
        )
        assert resp.status_code == 409

    async def test_inactive_line_hidden_from_non_admin(self, client, db, hr_headers, company):
        line = Line(name="Retired", company_id=company.id, is_active=False)
        db.add(line)
        await db.commit()
        resp = await client.get(f"/api/v1/lines/{line.id}", headers=hr_headers)
        assert resp.status_code == 404
