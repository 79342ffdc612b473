"""API endpoint tests.

Exercises the FastAPI adapter end to end against the SQLite test database.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient

from tests.conftest import actor

pytestmark = pytest.mark.asyncio


async def submit_leave(client: AsyncClient, employee_id, start="2024-03-04", end="2024-03-06", category="CL"):
    response = await client.post(
        "/api/v1/leave-requests",
        headers=actor(employee_id),
        json={"category": category, "start_date": start, "end_date": end, "reason": "family"},
    )
    assert response.status_code == 201, response.text
    return response.json()["request_id"]


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestActorHeader:
    async def test_missing_actor_is_unauthorized(self, client: AsyncClient):
        response = await client.get("/api/v1/leave-requests/pending")
        assert response.status_code == 401

    async def test_malformed_actor_is_bad_request(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/leave-requests/pending", headers={"X-Actor-ID": "not-a-uuid"}
        )
        assert response.status_code == 400


class TestLeaveFlow:
    async def test_submit_approve_and_read_back(self, client: AsyncClient, org):
        request_id = await submit_leave(client, org.alice_id)

        pending = await client.get("/api/v1/leave-requests/pending", headers=actor(org.manager_id))
        assert pending.status_code == 200
        assert [item["leave_request_id"] for item in pending.json()["items"]] == [request_id]

        decision = await client.put(
            f"/api/v1/leave-requests/{request_id}/decision",
            headers=actor(org.manager_id),
            json={"status": "approved"},
        )
        assert decision.status_code == 200, decision.text
        assert decision.json()["days_applied"] == 3

        detail = await client.get(f"/api/v1/leave-requests/{request_id}", headers=actor(org.alice_id))
        assert detail.status_code == 200
        assert detail.json()["status"] == "approved"
        assert detail.json()["approver_id"] == str(org.manager_id)

        balances = await client.get(
            f"/api/v1/leave-balances/{org.alice_id}", headers=actor(org.alice_id)
        )
        assert balances.status_code == 200
        cl = next(b for b in balances.json()["items"] if b["category"] == "CL")
        assert (cl["allocated"], cl["used"], cl["remaining"]) == (12, 3, 9)

        attendance = await client.get(
            f"/api/v1/attendance/{org.alice_id}",
            headers=actor(org.alice_id),
            params={"from": "2024-03-01", "to": "2024-03-31"},
        )
        assert attendance.status_code == 200
        assert [d["work_date"] for d in attendance.json()["items"]] == [
            "2024-03-06",
            "2024-03-05",
            "2024-03-04",
        ]
        assert {d["status"] for d in attendance.json()["items"]} == {"leave"}

    async def test_my_requests(self, client: AsyncClient, org):
        request_id = await submit_leave(client, org.bob_id, category="SL")
        response = await client.get("/api/v1/leave-requests/mine", headers=actor(org.bob_id))
        assert response.status_code == 200
        assert [item["leave_request_id"] for item in response.json()["items"]] == [request_id]

    async def test_second_decision_is_not_found(self, client: AsyncClient, org):
        request_id = await submit_leave(client, org.alice_id)
        url = f"/api/v1/leave-requests/{request_id}/decision"

        first = await client.put(url, headers=actor(org.manager_id), json={"status": "rejected"})
        assert first.status_code == 200

        second = await client.put(url, headers=actor(org.manager_id), json={"status": "approved"})
        assert second.status_code == 404
        assert second.json()["code"] == "NOT_FOUND"

    async def test_invalid_decision_is_bad_request(self, client: AsyncClient, org):
        request_id = await submit_leave(client, org.alice_id)
        response = await client.put(
            f"/api/v1/leave-requests/{request_id}/decision",
            headers=actor(org.manager_id),
            json={"status": "maybe"},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_peer_cannot_decide(self, client: AsyncClient, org):
        request_id = await submit_leave(client, org.alice_id)
        response = await client.put(
            f"/api/v1/leave-requests/{request_id}/decision",
            headers=actor(org.bob_id),
            json={"status": "approved"},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    async def test_invalid_dates_are_bad_request(self, client: AsyncClient, org):
        response = await client.post(
            "/api/v1/leave-requests",
            headers=actor(org.alice_id),
            json={"category": "CL", "start_date": "2024-03-06", "end_date": "2024-03-04"},
        )
        assert response.status_code == 400

    async def test_peer_cannot_read_request(self, client: AsyncClient, org):
        request_id = await submit_leave(client, org.alice_id)
        response = await client.get(f"/api/v1/leave-requests/{request_id}", headers=actor(org.bob_id))
        assert response.status_code == 403

    async def test_unknown_request(self, client: AsyncClient, org):
        response = await client.get(f"/api/v1/leave-requests/{uuid4()}", headers=actor(org.alice_id))
        assert response.status_code == 404


class TestAttendanceEndpoints:
    async def test_upsert_requires_hr_manage(self, client: AsyncClient, org):
        response = await client.put(
            f"/api/v1/attendance/{org.alice_id}/2024-03-04",
            headers=actor(org.manager_id),
            json={"status": "present", "source": "gps", "geofence_ok": True},
        )
        assert response.status_code == 403

    async def test_upsert_overwrites(self, client: AsyncClient, org):
        url = f"/api/v1/attendance/{org.alice_id}/2024-03-04"
        for status in ("present", "wfh"):
            response = await client.put(
                url,
                headers=actor(org.director_id),
                json={"status": status, "source": "web", "geofence_ok": False},
            )
            assert response.status_code == 200, response.text
        assert response.json()["status"] == "wfh"

        listing = await client.get(
            f"/api/v1/attendance/{org.alice_id}", headers=actor(org.manager_id)
        )
        assert len(listing.json()["items"]) == 1

    async def test_upsert_beyond_horizon(self, client: AsyncClient, org):
        response = await client.put(
            f"/api/v1/attendance/{org.alice_id}/2030-01-01",
            headers=actor(org.director_id),
            json={"status": "present", "source": "web"},
        )
        assert response.status_code == 400

    async def test_team_attendance(self, client: AsyncClient, org):
        for employee_id in (org.alice_id, org.bob_id):
            await client.put(
                f"/api/v1/attendance/{employee_id}/2024-03-04",
                headers=actor(org.director_id),
                json={"status": "present", "source": "gps", "geofence_ok": True},
            )

        response = await client.get(
            f"/api/v1/attendance/team/{org.manager_id}", headers=actor(org.manager_id)
        )
        assert response.status_code == 200
        assert len(response.json()["items"]) == 2

        forbidden = await client.get(
            f"/api/v1/attendance/team/{org.manager_id}", headers=actor(org.alice_id)
        )
        assert forbidden.status_code == 403

    async def test_peer_cannot_read_attendance(self, client: AsyncClient, org):
        response = await client.get(f"/api/v1/attendance/{org.alice_id}", headers=actor(org.bob_id))
        assert response.status_code == 403


class TestPayrollEndpoint:
    async def test_summary(self, client: AsyncClient, org):
        request_id = await submit_leave(client, org.alice_id, "2024-03-25", "2024-03-26")
        await client.put(
            f"/api/v1/leave-requests/{request_id}/decision",
            headers=actor(org.manager_id),
            json={"status": "approved"},
        )
        for day in range(1, 25):
            await client.put(
                f"/api/v1/attendance/{org.alice_id}/2024-03-{day:02d}",
                headers=actor(org.director_id),
                json={"status": "present", "source": "gps", "geofence_ok": True},
            )

        response = await client.get(
            "/api/v1/payroll/summary", params={"month": "2024-03"}, headers=actor(org.director_id)
        )
        assert response.status_code == 200, response.text

        data = response.json()
        assert data["month"] == "2024-03"
        assert data["working_days_per_month"] == 26
        alice = next(r for r in data["rows"] if r["employee_code"] == "E003")
        assert (alice["presents"], alice["leaves"], alice["absents"]) == (24, 2, 0)
        assert Decimal(alice["payable"]) == Decimal("30000")

    async def test_summary_requires_hr_view(self, client: AsyncClient, org):
        response = await client.get(
            "/api/v1/payroll/summary", params={"month": "2024-03"}, headers=actor(org.manager_id)
        )
        assert response.status_code == 403

    async def test_malformed_month(self, client: AsyncClient, org):
        response = await client.get(
            "/api/v1/payroll/summary", params={"month": "2024-13"}, headers=actor(org.director_id)
        )
        assert response.status_code == 400
