"""Import / export tests — file exports, history, JSON and CSV imports,
validation, preview and company scope."""

from __future__ import annotations

import pytest

from hrms.common.constants import UserRole
from hrms.data_transfer import codecs
from hrms.organization.models import Department
from tests.conftest import TestSessionFactory, auth_headers_for, make_org, make_user


async def _export(client, headers, **body):
    body.setdefault("table_name", "departments")
    return await client.post("/api/v1/import-export/export", headers=headers, json=body)


@pytest.fixture
async def it_company_headers(db, company) -> dict[str, str]:
    """IT login scoped to ``company``."""
    user = await make_user(db, email="it.scoped@hrhub.test", roles=(UserRole.it,), company=company)
    return await auth_headers_for(db, user)


# ═════════════════════════════════════════════════════════════════════
# 1. COLUMN MATCHING (pure functions)
# ═════════════════════════════════════════════════════════════════════


class TestColumnNames:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("CompanyId", "company_id"),
            ("company id", "company_id"),
            ("Company-ID", "company_id"),
            ("emp_id", "emp_id"),
            ("  Name ", "name"),
        ],
    )
    def test_normalise_name(self, raw, expected):
        assert codecs.normalise_name(raw) == expected

    def test_map_columns_marks_unknown(self):
        mapping = codecs.map_columns(["Name", "Colour"], ["id", "name", "company_id"])
        assert mapping == {"Name": "name", "Colour": None}

    def test_csv_decoding_strips_bom(self):
        rows = codecs.decode_rows("\ufeffname,company_id\nLine 1,3\n".encode(), codecs.TransferFormat.csv)
        assert rows == [{"name": "Line 1", "company_id": "3"}]


# ═════════════════════════════════════════════════════════════════════
# 2. EXPORT
# ═════════════════════════════════════════════════════════════════════


class TestExport:

    async def test_export_csv_and_download(self, client, db, admin_headers, org):
        resp = await _export(client, admin_headers, format="csv")
        assert resp.status_code == 201
        job = resp.json()["data"]
        assert job["table_name"] == "departments"
        assert job["row_count"] == 1
        assert job["file_name"].startswith("departments_")
        assert job["file_name"].endswith(".csv")
        assert job["status"] == "Completed"

        download = await client.get(
            f"/api/v1/import-export/export/{job['id']}/download", headers=admin_headers,
        )
        assert download.status_code == 200
        assert download.headers["content-type"].startswith("text/csv")
        header, first = download.text.splitlines()[:2]
        assert {"id", "name", "company_id"} <= set(header.split(","))
        assert "Production" in first

    async def test_export_selected_columns_as_json(self, client, db, admin_headers, employee):
        resp = await _export(
            client, admin_headers,
            table_name="employees", format="json", columns=["emp_id", "name"],
            filters={"emp_id": "E-0001"},
        )
        job = resp.json()["data"]
        download = await client.get(
            f"/api/v1/import-export/export/{job['id']}/download", headers=admin_headers,
        )
        assert download.json() == [{"emp_id": "E-0001", "name": "Rahim Uddin"}]

    async def test_export_is_scoped(self, client, db, hr_headers, org, other_company):
        await make_org(db, other_company, suffix=" B")
        resp = await _export(client, hr_headers)
        assert resp.json()["data"]["row_count"] == 1

    async def test_export_hides_inactive_rows(self, client, db, admin_headers, company, org):
        retired = await make_org(db, company, suffix=" Old")
        retired["department"].is_active = False
        await db.commit()
        active_only = await _export(client, admin_headers)
        assert active_only.json()["data"]["row_count"] == 1
        everything = await _export(client, admin_headers, include_inactive=True)
        assert everything.json()["data"]["row_count"] == 2

    async def test_unlisted_table_rejected(self, client, db, admin_headers):
        resp = await _export(client, admin_headers, table_name="users")
        assert resp.status_code == 400
        assert "table_name" in resp.json()["errors"]

    async def test_unknown_column_rejected(self, client, db, admin_headers):
        resp = await _export(client, admin_headers, columns=["name", "colour"])
        assert resp.status_code == 400
        assert "colour" in resp.json()["detail"]

    async def test_invalid_filter_value_rejected(self, client, db, admin_headers, org):
        resp = await _export(client, admin_headers, filters={"company_id": "abc"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid value for filter 'company_id': 'abc' is not a valid integer"

    async def test_employee_role_forbidden(self, client, db, staff_headers):
        resp = await _export(client, staff_headers)
        assert resp.status_code == 403


class TestExportJobs:

    async def test_history_limited_to_own_jobs(self, client, db, admin_headers, hr_headers, org):
        await _export(client, admin_headers)
        await _export(client, hr_headers, table_name="shifts")

        mine = await client.get("/api/v1/import-export/export/history", headers=hr_headers)
        assert [j["table_name"] for j in mine.json()["data"]] == ["shifts"]

        everyone = await client.get("/api/v1/import-export/export/history", headers=admin_headers)
        assert len(everyone.json()["data"]) == 2

    async def test_other_users_export_forbidden(self, client, db, admin_headers, hr_headers, org):
        job = (await _export(client, admin_headers)).json()["data"]
        resp = await client.get(
            f"/api/v1/import-export/export/{job['id']}/download", headers=hr_headers,
        )
        assert resp.status_code == 403

    async def test_delete_removes_file(self, client, db, admin_headers, org):
        job = (await _export(client, admin_headers)).json()["data"]
        resp = await client.delete(f"/api/v1/import-export/export/{job['id']}", headers=admin_headers)
        assert resp.status_code == 200
        gone = await client.get(
            f"/api/v1/import-export/export/{job['id']}/download", headers=admin_headers,
        )
        assert gone.status_code == 404


# ═════════════════════════════════════════════════════════════════════
# 3. IMPORT
# ═════════════════════════════════════════════════════════════════════


class TestImport:

    async def test_json_import_with_row_errors(self, client, db, admin_headers, company):
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=admin_headers,
            json={
                "table_name": "departments",
                "rows": [
                    {"Name": "Cutting", "CompanyId": company.id},
                    {"name": "Packing"},
                ],
            },
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["imported_rows"] == 1
        assert data["failed_rows"] == 1
        assert data["status"] == "CompletedWithErrors"
        assert data["errors"] == [
            {"row": 2, "column": "company_id", "message": "Required value missing"},
        ]

        errors = await client.get(f"/api/v1/import-export/import/{data['id']}/errors", headers=admin_headers)
        assert errors.json()["data"][0]["row"] == 2

        departments = await client.get("/api/v1/departments", headers=admin_headers)
        assert [d["name"] for d in departments.json()["data"]] == ["Cutting"]

    async def test_multipart_csv_import(self, client, db, admin_headers, company):
        content = f"name,company_id\nLine 1,{company.id}\nLine 2,{company.id}\n".encode()
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=admin_headers,
            files={"file": ("lines.csv", content, "text/csv")},
            data={"table_name": "lines"},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["imported_rows"] == 2
        assert data["format"] == "csv"
        assert data["file_name"] == "lines.csv"
        assert data["status"] == "Completed"

        lines = await client.get("/api/v1/lines", headers=admin_headers)
        assert len(lines.json()["data"]) == 2

    async def test_duplicate_row_rolls_back_only_itself(self, client, db, admin_headers):
        await client.post("/api/v1/permissions/seed", headers=admin_headers)
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=admin_headers,
            json={
                "table_name": "permissions",
                "rows": [
                    {"name": "Read Employee", "code": "employee.read", "module": "employee", "action": "read"},
                    {"name": "Approve Roster", "code": "roster.approve", "module": "roster", "action": "update"},
                ],
            },
        )
        data = resp.json()["data"]
        assert data["imported_rows"] == 1
        assert data["errors"][0]["row"] == 1
        assert data["errors"][0]["message"].startswith("Database error")

        created = await client.get("/api/v1/permissions/code/roster.approve", headers=admin_headers)
        assert created.status_code == 200

    async def test_upsert_updates_existing_row(self, client, db, admin_headers, org):
        department = org["department"]
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=admin_headers,
            json={
                "table_name": "departments",
                "mode": "upsert",
                "rows": [{"id": department.id, "name_bangla": "উৎপাদন"}],
            },
        )
        assert resp.json()["data"]["imported_rows"] == 1
        fetched = await client.get(f"/api/v1/departments/{department.id}", headers=admin_headers)
        assert fetched.json()["data"]["name_bangla"] == "উৎপাদন"
        assert fetched.json()["data"]["name"] == "Production"

    async def test_rows_outside_scope_rejected(self, client, db, it_company_headers, company, other_company):
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=it_company_headers,
            json={
                "table_name": "departments",
                "rows": [
                    {"name": "Cutting", "company_id": company.id},
                    {"name": "Cutting", "company_id": other_company.id},
                ],
            },
        )
        data = resp.json()["data"]
        assert data["imported_rows"] == 1
        assert data["errors"] == [{"row": 2, "column": None, "message": "No access to the row's company"}]

    async def test_upsert_cannot_take_over_other_company_row(
        self, client, db, it_company_headers, company, other_company,
    ):
        foreign = (await make_org(db, other_company, suffix=" B"))["department"]
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=it_company_headers,
            json={
                "table_name": "departments",
                "mode": "upsert",
                "rows": [{"id": foreign.id, "company_id": company.id, "name": "Taken Over"}],
            },
        )
        data = resp.json()["data"]
        assert data["imported_rows"] == 0
        assert data["errors"] == [{"row": 1, "column": None, "message": "No access to the row's company"}]

        async with TestSessionFactory() as session:
            stored = await session.get(Department, foreign.id)
        assert stored.name == "Production B"
        assert stored.company_id == other_company.id

    async def test_scoped_upsert_of_own_row(self, client, db, it_company_headers, org):
        department = org["department"]
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=it_company_headers,
            json={
                "table_name": "departments",
                "mode": "upsert",
                "rows": [{"id": department.id, "name_bangla": "উৎপাদন"}],
            },
        )
        assert resp.json()["data"]["imported_rows"] == 1

    async def test_company_import_needs_admin(self, client, db, it_company_headers):
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=it_company_headers,
            json={"table_name": "companies", "rows": [{"name": "New Co"}]},
        )
        assert resp.status_code == 403

    async def test_validate_only_writes_nothing(self, client, db, admin_headers, company):
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=admin_headers,
            json={
                "table_name": "departments",
                "validate_only": True,
                "rows": [{"name": "Cutting", "company_id": company.id}],
            },
        )
        assert resp.json()["data"]["valid_rows"] == 1
        history = await client.get("/api/v1/import-export/import/history", headers=admin_headers)
        assert history.json()["data"] == []

    async def test_empty_rows_rejected(self, client, db, admin_headers):
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=admin_headers,
            json={"table_name": "departments", "rows": []},
        )
        assert resp.status_code == 422
        assert "rows" in resp.json()["errors"]

    async def test_body_must_be_json(self, client, db, admin_headers):
        resp = await client.post(
            "/api/v1/import-export/import",
            headers={**admin_headers, "Content-Type": "application/json"},
            content=b"name,company_id",
        )
        assert resp.status_code == 400

    async def test_hr_manager_cannot_import(self, client, db, hr_headers, company):
        resp = await client.post(
            "/api/v1/import-export/import",
            headers=hr_headers,
            json={"table_name": "departments", "rows": [{"name": "X", "company_id": company.id}]},
        )
        assert resp.status_code == 403


class TestValidateAndPreview:

    async def test_validate_reports_each_problem(self, client, db, admin_headers, company):
        resp = await client.post(
            "/api/v1/import-export/validate",
            headers=admin_headers,
            json={
                "table_name": "departments",
                "rows": [
                    {"name": "Cutting", "company_id": str(company.id)},
                    {"name": "Packing", "company_id": "abc", "colour": "red"},
                ],
            },
        )
        data = resp.json()["data"]
        assert (data["total_rows"], data["valid_rows"], data["invalid_rows"]) == (2, 1, 1)
        problems = {(e["column"], e["message"]) for e in data["errors"]}
        assert ("colour", "Unknown column") in problems
        assert ("company_id", "'abc' is not a valid integer") in problems
        assert all(e["row"] == 2 for e in data["errors"])

    async def test_preview_limits_rows(self, client, db, admin_headers):
        rows = [{"Name": f"Line {n}", "Colour": "blue"} for n in range(12)]
        resp = await client.post(
            "/api/v1/import-export/preview",
            headers=admin_headers,
            json={"table_name": "lines", "rows": rows},
        )
        data = resp.json()["data"]
        assert data["total_rows"] == 12
        assert len(data["rows"]) == 10
        assert data["column_mapping"] == {"Name": "name", "Colour": None}


async def test_import_history_scoped_to_caller(client, db, admin_headers, it_company_headers, company):
    await client.post(
        "/api/v1/import-export/import",
        headers=admin_headers,
        json={"table_name": "lines", "rows": [{"name": "Line 1", "company_id": company.id}]},
    )
    resp = await client.get("/api/v1/import-export/import/history", headers=it_company_headers)
    assert resp.json()["data"] == []


async def test_formats(client, db, staff_headers, employee):
    resp = await client.get("/api/v1/import-export/formats", headers=staff_headers)
    data = resp.json()["data"]
    assert set(data["formats"]) == {"csv", "json"}
    assert "employees" in data["tables"]
    assert data["import_modes"] == ["insert", "upsert"]
