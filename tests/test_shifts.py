"""Shift tests — time-window validation, computed hours, CRUD and dependants."""

from __future__ import annotations

from datetime import date, time

import pytest

from hrms.common.exceptions import BadRequestException
from hrms.roster.models import RosterSchedule
from hrms.shifts.service import validate_shift_times
from tests.conftest import make_shift


# ═════════════════════════════════════════════════════════════════════
# 1. TIME VALIDATION (pure function)
# ═════════════════════════════════════════════════════════════════════


class TestValidateShiftTimes:

    def test_valid_window_with_break(self):
        validate_shift_times(time(8), time(17), time(13), time(14))

    def test_valid_window_without_break(self):
        validate_shift_times(time(6), time(14), None, None)

    @pytest.mark.parametrize(
        "start, end, break_start, break_end, message",
        [
            (time(17), time(8), None, None, "Start time must be before end time"),
            (time(8), time(8), None, None, "Start time must be before end time"),
            (time(8), time(17), time(14), time(13), "Break start time must be before break end time"),
            (time(8), time(17), time(7), time(9), "Break times must be within shift hours"),
            (time(8), time(17), time(16), time(18), "Break times must be within shift hours"),
        ],
    )
    def test_invalid_windows(self, start, end, break_start, break_end, message):
        with pytest.raises(BadRequestException) as exc_info:
            validate_shift_times(start, end, break_start, break_end)
        assert exc_info.value.detail == message


# ═════════════════════════════════════════════════════════════════════
# 2. SHIFT API
# ═════════════════════════════════════════════════════════════════════


class TestShiftAPI:

    async def test_create_reports_hours(self, client, db, hr_headers, company):
        resp = await client.post(
            "/api/v1/shifts",
            headers=hr_headers,
            json={
                "name": "Morning",
                "start_time": "06:00:00",
                "end_time": "14:30:00",
                "break_start_time": "10:00:00",
                "break_end_time": "10:30:00",
                "company_id": company.id,
            },
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["duration_hours"] == 8.5
        assert data["break_duration_hours"] == 0.5
        assert data["working_hours"] == 8.0
        assert data["company_name"] == company.name

    async def test_create_rejects_inverted_times(self, client, db, hr_headers, company):
        resp = await client.post(
            "/api/v1/shifts",
            headers=hr_headers,
            json={"name": "Night", "start_time": "22:00", "end_time": "06:00", "company_id": company.id},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Start time must be before end time"

    async def test_duplicate_name(self, client, db, hr_headers, company, shift):
        resp = await client.post(
            "/api/v1/shifts",
            headers=hr_headers,
            json={"name": "DAY", "start_time": "09:00", "end_time": "18:00", "company_id": company.id},
        )
        assert resp.status_code == 409

    async def test_update_validates_merged_window(self, client, db, hr_headers, shift):
        # Break 13-14 stays, so ending at 12:00 leaves it outside the shift
        resp = await client.put(
            f"/api/v1/shifts/{shift.id}", headers=hr_headers, json={"end_time": "12:00"},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Break times must be within shift hours"

    async def test_update_name(self, client, db, hr_headers, shift):
        resp = await client.put(
            f"/api/v1/shifts/{shift.id}", headers=hr_headers, json={"name_bangla": "দিন"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["name_bangla"] == "দিন"
        assert resp.json()["data"]["working_hours"] == 8.0

    @pytest.mark.parametrize("field", ["start_time", "end_time", "name"])
    async def test_update_rejects_null_required_field(self, client, db, hr_headers, shift, field):
        resp = await client.put(
            f"/api/v1/shifts/{shift.id}", headers=hr_headers, json={field: None},
        )
        assert resp.status_code == 422
        assert field in resp.json()["errors"]

    async def test_break_can_be_cleared(self, client, db, hr_headers, shift):
        resp = await client.put(
            f"/api/v1/shifts/{shift.id}",
            headers=hr_headers,
            json={"break_start_time": None, "break_end_time": None},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["working_hours"] == 9.0

    async def test_list_ordered_by_start_time(self, client, db, staff_headers, company, shift):
        await make_shift(db, company, name="Early", start=time(6), end=time(13, 30))
        resp = await client.get("/api/v1/shifts", headers=staff_headers)
        assert [s["name"] for s in resp.json()["data"]] == ["Early", "Day"]

    async def test_other_company_shift_forbidden(self, client, db, hr_headers, other_company):
        foreign = await make_shift(db, other_company, name="Foreign")
        resp = await client.get(f"/api/v1/shifts/{foreign.id}", headers=hr_headers)
        assert resp.status_code == 403


class TestShiftDelete:

    async def test_delete_requires_admin(self, client, db, hr_headers, shift):
        resp = await client.delete(f"/api/v1/shifts/{shift.id}", headers=hr_headers)
        assert resp.status_code == 403

    async def test_delete_blocked_by_employee(self, client, db, admin_headers, shift, employee):
        resp = await client.delete(f"/api/v1/shifts/{shift.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert "employee(s)" in resp.json()["detail"]

    async def test_delete_blocked_by_roster(self, client, db, admin_headers, company, org, employee):
        spare = await make_shift(db, company, name="Spare")
        db.add(RosterSchedule(
            employee_id=employee.id,
            shift_id=spare.id,
            schedule_date=date(2025, 3, 2),
            company_id=company.id,
        ))
        await db.commit()
        resp = await client.delete(f"/api/v1/shifts/{spare.id}", headers=admin_headers)
        assert resp.status_code == 409
        assert "roster schedule(s)" in resp.json()["detail"]

    async def test_move_blocked_by_employee(self, client, db, admin_headers, shift, employee, other_company):
        resp = await client.put(
            f"/api/v1/shifts/{shift.id}", headers=admin_headers, json={"company_id": other_company.id},
        )
        assert resp.status_code == 409
        assert resp.json()["detail"].startswith("Cannot move shift")

    async def test_move_unused_shift(self, client, db, admin_headers, shift, other_company):
        resp = await client.put(
            f"/api/v1/shifts/{shift.id}", headers=admin_headers, json={"company_id": other_company.id},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["company_id"] == other_company.id

    async def test_delete_unused_shift(self, client, db, admin_headers, shift):
        resp = await client.delete(f"/api/v1/shifts/{shift.id}", headers=admin_headers)
        assert resp.status_code == 200
        stats = await client.get("/api/v1/shifts/statistics", headers=admin_headers)
        assert stats.json()["data"]["total_active_shifts"] == 0


async def test_shift_statistics_counts_employees(client, db, admin_headers, shift, employee):
    resp = await client.get("/api/v1/shifts/statistics", headers=admin_headers)
    data = resp.json()["data"]
    assert data["total_active_shifts"] == 1
    assert data["shifts"][0]["employee_count"] == 1
    assert data["shifts"][0]["working_hours"] == 8.0
