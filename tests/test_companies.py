"""Company module test suite — CRUD, uniqueness, soft delete, dependants
and company scoping of non-admin users."""

from __future__ import annotations

from sqlalchemy import select

from hrms.common.audit import AuditTrail
from hrms.companies.models import Company
from tests.conftest import TestSessionFactory, make_company, make_user, auth_headers_for


# ═════════════════════════════════════════════════════════════════════
# 1. COMPANY CRUD
# ═════════════════════════════════════════════════════════════════════


class TestCompanyCRUD:

    async def test_create_company(self, client, db, admin_headers):
        resp = await client.post(
            "/api/v1/companies",
            headers=admin_headers,
            json={"name": "Sylhet Tea Co", "company_code": "STC", "country": "Bangladesh"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Company created successfully."
        assert body["data"]["name"] == "Sylhet Tea Co"
        assert body["data"]["is_active"] is True

    async def test_create_writes_audit_entry(self, client, db, admin_headers, admin_user):
        resp = await client.post(
            "/api/v1/companies", headers=admin_headers, json={"name": "Audit Me Ltd"},
        )
        company_id = resp.json()["data"]["id"]

        async with TestSessionFactory() as session:
            entry = (
                await session.execute(
                    select(AuditTrail).where(
                        AuditTrail.entity_type == "company",
                        AuditTrail.entity_id == str(company_id),
                    )
                )
            ).scalars().one()
        assert entry.action == "create"
        assert entry.actor_id == admin_user.id
        assert entry.new_values["name"] == "Audit Me Ltd"

    async def test_duplicate_name_case_insensitive(self, client, db, admin_headers, company):
        resp = await client.post(
            "/api/v1/companies",
            headers=admin_headers,
            json={"name": company.name.upper()},
        )
        assert resp.status_code == 409
        assert "name" in resp.json()["errors"]

    async def test_duplicate_code(self, client, db, admin_headers, company):
        resp = await client.post(
            "/api/v1/companies",
            headers=admin_headers,
            json={"name": "Something Else", "company_code": "dgl"},
        )
        assert resp.status_code == 409

    async def test_update_company(self, client, db, admin_headers, company):
        resp = await client.put(
            f"/api/v1/companies/{company.id}",
            headers=admin_headers,
            json={"city": "Gazipur"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["city"] == "Gazipur"
        # Unsupplied fields untouched
        assert resp.json()["data"]["name"] == company.name

    async def test_update_to_existing_name_conflicts(self, client, db, admin_headers, company, other_company):
        resp = await client.put(
            f"/api/v1/companies/{other_company.id}",
            headers=admin_headers,
            json={"name": company.name},
        )
        assert resp.status_code == 409

    async def test_get_missing_company_404(self, client, db, admin_headers):
        resp = await client.get("/api/v1/companies/4242", headers=admin_headers)
        assert resp.status_code == 404
        body = resp.json()
        assert body["title"] == "Company Not Found"
        assert body["instance"] == "/api/v1/companies/4242"

    async def test_non_admin_cannot_create(self, client, db, hr_headers):
        resp = await client.post("/api/v1/companies", headers=hr_headers, json={"name": "Nope"})
        assert resp.status_code == 403

    async def test_validation_error_is_problem_json(self, client, db, admin_headers):
        resp = await client.post("/api/v1/companies", headers=admin_headers, json={"name": ""})
        assert resp.status_code == 422
        body = resp.json()
        assert body["title"] == "Validation Error"
        assert "name" in body["errors"]

    async def test_update_rejects_null_name(self, client, db, admin_headers, company):
        resp = await client.put(
            f"/api/v1/companies/{company.id}", headers=admin_headers, json={"name": None},
        )
        assert resp.status_code == 422
        assert "name" in resp.json()["errors"]

        # Nullable columns may still be cleared
        cleared = await client.put(
            f"/api/v1/companies/{company.id}", headers=admin_headers, json={"company_code": None},
        )
        assert cleared.status_code == 200
        assert cleared.json()["data"]["company_code"] is None


# ═════════════════════════════════════════════════════════════════════
# 2. SOFT DELETE
# ═════════════════════════════════════════════════════════════════════


class TestCompanyDelete:

    async def test_delete_is_soft(self, client, db, admin_headers, other_company):
        resp = await client.delete(f"/api/v1/companies/{other_company.id}", headers=admin_headers)
        assert resp.status_code == 200

        async with TestSessionFactory() as session:
            row = await session.get(Company, other_company.id)
        assert row is not None
        assert row.is_active is False

        listed = await client.get("/api/v1/companies", headers=admin_headers)
        assert other_company.id not in [c["id"] for c in listed.json()["data"]]

        with_inactive = await client.get(
            "/api/v1/companies?include_inactive=true", headers=admin_headers,
        )
        assert other_company.id in [c["id"] for c in with_inactive.json()["data"]]

    async def test_delete_blocked_by_active_employees(self, client, db, admin_headers, company, employee):
        resp = await client.delete(f"/api/v1/companies/{company.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert "employee" in resp.json()["detail"]

    async def test_delete_blocked_by_active_users(self, client, db, admin_headers, company, staff_user):
        resp = await client.delete(f"/api/v1/companies/{company.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert "user" in resp.json()["detail"]

    async def test_update_cannot_deactivate(self, client, db, admin_headers, company, employee):
        resp = await client.put(
            f"/api/v1/companies/{company.id}", headers=admin_headers, json={"is_active": False},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is True

        async with TestSessionFactory() as session:
            row = await session.get(Company, company.id)
        assert row.is_active is True

    async def test_update_cannot_reactivate(self, client, db, admin_headers, other_company):
        await client.delete(f"/api/v1/companies/{other_company.id}", headers=admin_headers)
        resp = await client.put(
            f"/api/v1/companies/{other_company.id}",
            headers=admin_headers,
            json={"is_active": True, "city": "Khulna"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["is_active"] is False
        assert resp.json()["data"]["city"] == "Khulna"


# ═════════════════════════════════════════════════════════════════════
# 3. COMPANY SCOPE
# ═════════════════════════════════════════════════════════════════════


class TestCompanyScope:

    async def test_admin_sees_all(self, client, db, admin_headers, company, other_company):
        resp = await client.get("/api/v1/companies", headers=admin_headers)
        assert {c["id"] for c in resp.json()["data"]} == {company.id, other_company.id}

    async def test_non_admin_sees_only_accessible(self, client, db, hr_headers, company, other_company):
        resp = await client.get("/api/v1/companies", headers=hr_headers)
        assert [c["id"] for c in resp.json()["data"]] == [company.id]

    async def test_non_admin_forbidden_on_other_company(self, client, db, hr_headers, other_company):
        resp = await client.get(f"/api/v1/companies/{other_company.id}", headers=hr_headers)
        assert resp.status_code == 403

    async def test_linked_company_becomes_visible(self, client, db, company, other_company):
        user = await make_user(db, company=company, extra_companies=(other_company,))
        headers = await auth_headers_for(db, user)
        resp = await client.get("/api/v1/companies/my", headers=headers)
        assert {c["id"] for c in resp.json()["data"]} == {company.id, other_company.id}

    async def test_user_without_companies_sees_nothing(self, client, db, company):
        user = await make_user(db)
        headers = await auth_headers_for(db, user)
        resp = await client.get("/api/v1/companies", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"] == []

    async def test_non_admin_never_sees_inactive(self, client, db, company):
        dormant = await make_company(db, name="Dormant Ltd", is_active=False)
        user = await make_user(db, company=company, extra_companies=(dormant,))
        headers = await auth_headers_for(db, user)

        resp = await client.get("/api/v1/companies?include_inactive=true", headers=headers)
        assert [c["id"] for c in resp.json()["data"]] == [company.id]

        direct = await client.get(f"/api/v1/companies/{dormant.id}", headers=headers)
        assert direct.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# 4. STATISTICS
# ═════════════════════════════════════════════════════════════════════


async def test_company_statistics(client, db, admin_headers, company, other_company):
    resp = await client.get("/api/v1/companies/statistics", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["overview"]["total_companies"] == 2
    assert data["overview"]["active_companies"] == 2
    assert data["companies_by_country"] == [{"country": "Bangladesh", "count": 2}]
    assert len(data["recent_companies"]) == 2


async def test_company_search(client, db, admin_headers, company, other_company):
    resp = await client.get("/api/v1/companies?search=chittagong", headers=admin_headers)
    assert [c["id"] for c in resp.json()["data"]] == [other_company.id]
