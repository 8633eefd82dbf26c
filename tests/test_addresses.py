"""Bangladesh address reference data tests."""

from __future__ import annotations

import pytest

from hrms.addresses.models import BangladeshAddress


@pytest.fixture
async def addresses(db) -> list[BangladeshAddress]:
    rows = [
        BangladeshAddress(
            division="Dhaka", division_bangla="ঢাকা",
            district="Gazipur", district_bangla="গাজীপুর",
            upazila="Tongi", upazila_bangla="টঙ্গী",
            union="Tongi Paurashava", area="Cherag Ali",
            postal_code="1711",
        ),
        BangladeshAddress(
            division="Dhaka", division_bangla="ঢাকা",
            district="Gazipur", district_bangla="গাজীপুর",
            upazila="Kaliakair", upazila_bangla="কালিয়াকৈর",
            postal_code="1750",
            latitude="24.0667000", longitude="90.2167000",
        ),
        BangladeshAddress(
            division="Chattogram", division_bangla="চট্টগ্রাম",
            district="Chattogram", district_bangla="চট্টগ্রাম",
            upazila="Patenga", upazila_bangla="পতেঙ্গা",
            postal_code="4204",
        ),
    ]
    db.add_all(rows)
    await db.commit()
    return rows


class TestAddressLookups:

    async def test_list_requires_auth(self, client, addresses):
        resp = await client.get("/api/v1/bangladesh-addresses")
        assert resp.status_code == 401

    async def test_list_paginated(self, client, db, staff_headers, addresses):
        resp = await client.get("/api/v1/bangladesh-addresses?page_size=2", headers=staff_headers)
        body = resp.json()
        assert body["meta"]["total"] == 3
        # Ordered by division, district, upazila
        assert [a["upazila"] for a in body["data"]] == ["Patenga", "Kaliakair"]

    async def test_filter_matches_bangla_names(self, client, db, staff_headers, addresses):
        resp = await client.get(
            "/api/v1/bangladesh-addresses", headers=staff_headers, params={"district": "গাজীপুর"},
        )
        assert {a["postal_code"] for a in resp.json()["data"]} == {"1711", "1750"}

    async def test_postal_code_prefix_filter(self, client, db, staff_headers, addresses):
        resp = await client.get("/api/v1/bangladesh-addresses?postal_code=17", headers=staff_headers)
        assert resp.json()["meta"]["total"] == 2

    async def test_full_address(self, client, db, staff_headers, addresses):
        resp = await client.get(
            f"/api/v1/bangladesh-addresses/{addresses[0].id}", headers=staff_headers,
        )
        data = resp.json()["data"]
        assert data["full_address"] == "Cherag Ali, Tongi Paurashava, Tongi, Gazipur, Dhaka - 1711"
        assert data["full_address_bangla"] == "টঙ্গী, গাজীপুর, ঢাকা"

    async def test_by_postal_code(self, client, db, staff_headers, addresses):
        resp = await client.get("/api/v1/bangladesh-addresses/postal-code/4204", headers=staff_headers)
        assert resp.json()["data"]["upazila"] == "Patenga"

    async def test_unknown_postal_code(self, client, db, staff_headers, addresses):
        resp = await client.get("/api/v1/bangladesh-addresses/postal-code/0000", headers=staff_headers)
        assert resp.status_code == 404


class TestAddressHierarchy:

    async def test_divisions(self, client, db, staff_headers, addresses):
        resp = await client.get("/api/v1/bangladesh-addresses/divisions", headers=staff_headers)
        data = resp.json()["data"]
        assert [d["name"] for d in data] == ["Chattogram", "Dhaka"]
        dhaka = data[1]
        assert dhaka["name_bangla"] == "ঢাকা"
        assert dhaka["child_count"] == 1
        assert dhaka["address_count"] == 2

    async def test_districts_of_division(self, client, db, staff_headers, addresses):
        resp = await client.get(
            "/api/v1/bangladesh-addresses/districts?division=Dhaka", headers=staff_headers,
        )
        assert [(d["name"], d["parent"], d["child_count"]) for d in resp.json()["data"]] == [
            ("Gazipur", "Dhaka", 2),
        ]

    async def test_upazilas_of_district(self, client, db, staff_headers, addresses):
        resp = await client.get(
            "/api/v1/bangladesh-addresses/upazilas?district=Gazipur", headers=staff_headers,
        )
        assert [u["name"] for u in resp.json()["data"]] == ["Kaliakair", "Tongi"]

    async def test_statistics(self, client, db, staff_headers, addresses):
        resp = await client.get("/api/v1/bangladesh-addresses/statistics", headers=staff_headers)
        data = resp.json()["data"]
        assert data["total_addresses"] == 3
        assert data["total_divisions"] == 2
        assert data["addresses_with_coordinates"] == 1
        assert data["division_counts"] == {"Chattogram": 1, "Dhaka": 2}
        assert data["top_districts"][0] == {"district": "Gazipur", "count": 2}


class TestAddressWrites:

    async def test_admin_creates_address(self, client, db, admin_headers):
        resp = await client.post(
            "/api/v1/bangladesh-addresses",
            headers=admin_headers,
            json={"division": "Khulna", "district": "Jessore", "postal_code": "7400"},
        )
        assert resp.status_code == 201
        assert resp.json()["data"]["full_address"] == "Jessore, Khulna - 7400"

    async def test_duplicate_location_conflicts(self, client, db, admin_headers, addresses):
        resp = await client.post(
            "/api/v1/bangladesh-addresses",
            headers=admin_headers,
            json={"division": "Dhaka", "district": "Gazipur", "upazila": "Kaliakair", "postal_code": "1750"},
        )
        assert resp.status_code == 409

    async def test_latitude_out_of_range(self, client, db, admin_headers):
        resp = await client.post(
            "/api/v1/bangladesh-addresses",
            headers=admin_headers,
            json={"division": "Sylhet", "district": "Sylhet", "postal_code": "3100", "latitude": "120"},
        )
        assert resp.status_code == 422

    async def test_non_admin_cannot_create(self, client, db, hr_headers):
        resp = await client.post(
            "/api/v1/bangladesh-addresses",
            headers=hr_headers,
            json={"division": "Khulna", "district": "Jessore", "postal_code": "7400"},
        )
        assert resp.status_code == 403

    async def test_soft_delete_hides_from_lookups(self, client, db, admin_headers, addresses):
        target = addresses[2]
        resp = await client.delete(f"/api/v1/bangladesh-addresses/{target.id}", headers=admin_headers)
        assert resp.status_code == 200

        gone = await client.get("/api/v1/bangladesh-addresses/postal-code/4204", headers=admin_headers)
        assert gone.status_code == 404

        listed = await client.get(
            "/api/v1/bangladesh-addresses?include_inactive=true", headers=admin_headers,
        )
        assert listed.json()["meta"]["total"] == 3
