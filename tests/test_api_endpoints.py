"""API endpoint tests.

Tests the FastAPI endpoints for period and record operations.
"""

from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

PERIOD_PAYLOAD = {
    "start_date": "2026-01-01",
    "end_date": "2026-01-15",
    "pay_date": "2026-01-20",
    "period_type": "semi-monthly",
}


async def _create_period(client: AsyncClient) -> dict:
    response = await client.post("/api/v1/periods", json=PERIOD_PAYLOAD)
    assert response.status_code == 201, response.text
    return response.json()


async def _computed_record(client: AsyncClient, seed) -> dict:
    employee = await seed.employee()
    await seed.attendance_days(employee, date(2026, 1, 5), 5)
    period = await _create_period(client)
    response = await client.post(
        f"/api/v1/periods/{period['id']}/employees/{employee.id}/compute"
    )
    assert response.status_code == 200, response.text
    return response.json()


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        """Readiness endpoint should return 200."""
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        """Liveness endpoint should return 200."""
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestPeriodEndpoints:
    """Test payroll period endpoints."""

    async def test_create_period(self, client: AsyncClient):
        """POST /api/v1/periods should create an open period."""
        data = await _create_period(client)

        assert data["status"] == "open"
        assert data["name"] == "semi-monthly Jan 1 - Jan 15, 2026"
        assert Decimal(data["total_net_pay"]) == Decimal("0")

    async def test_create_invalid_period(self, client: AsyncClient):
        """Reversed dates should return 422 with every error listed."""
        response = await client.post(
            "/api/v1/periods",
            json={**PERIOD_PAYLOAD, "start_date": "2026-01-31"},
        )
        assert response.status_code == 422

        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert data["retryable"] is False
        assert "start_date must be on or before end_date" in data["errors"]

    async def test_get_period_not_found(self, client: AsyncClient):
        """GET unknown period should return 404."""
        response = await client.get("/api/v1/periods/999")
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_list_and_filter_periods(self, client: AsyncClient):
        await _create_period(client)

        response = await client.get("/api/v1/periods")
        assert response.status_code == 200
        assert len(response.json()) == 1

        response = await client.get("/api/v1/periods", params={"status": "closed"})
        assert response.json() == []

    async def test_suggest_next_period(self, client: AsyncClient):
        await _create_period(client)

        response = await client.get("/api/v1/periods/next")
        assert response.status_code == 200

        data = response.json()
        assert data["start_date"] == "2026-01-16"
        assert data["end_date"] == "2026-01-31"
        assert data["pay_date"] == "2026-02-05"

    async def test_suggest_next_period_unknown_type(self, client: AsyncClient):
        response = await client.get("/api/v1/periods/next", params={"period_type": "bogus"})
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_update_period(self, client: AsyncClient):
        period = await _create_period(client)

        response = await client.patch(
            f"/api/v1/periods/{period['id']}",
            json={"notes": "first cycle", "working_days": 11},
        )
        assert response.status_code == 200, response.text
        assert response.json()["notes"] == "first cycle"
        assert response.json()["working_days"] == 11

    async def test_delete_period(self, client: AsyncClient):
        period = await _create_period(client)

        response = await client.delete(f"/api/v1/periods/{period['id']}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/periods/{period['id']}")
        assert response.status_code == 404

    async def test_lock_empty_period_conflicts(self, client: AsyncClient):
        period = await _create_period(client)

        response = await client.post(f"/api/v1/periods/{period['id']}/lock")
        assert response.status_code == 409
        assert response.json()["code"] == "NOT_ALL_COMPUTED"


class TestComputationEndpoints:
    """Test computation endpoints."""

    async def test_compute_employee(self, client: AsyncClient, seed):
        data = await _computed_record(client, seed)

        assert Decimal(data["basic_pay"]) == Decimal("5000")
        assert Decimal(data["tax_deduction"]) == Decimal("500")
        assert Decimal(data["net_pay"]) == Decimal("4500")
        assert data["payment_status"] == "unpaid"

    async def test_compute_with_earnings(self, client: AsyncClient, seed):
        employee = await seed.employee()
        period = await _create_period(client)

        response = await client.post(
            f"/api/v1/periods/{period['id']}/employees/{employee.id}/compute",
            json={"allowance": "1000.00"},
        )
        assert response.status_code == 200, response.text

        data = response.json()
        assert Decimal(data["allowance"]) == Decimal("1000")
        assert Decimal(data["gross_pay"]) == Decimal("1000")

    async def test_compute_unknown_employee(self, client: AsyncClient):
        period = await _create_period(client)

        response = await client.post(f"/api/v1/periods/{period['id']}/employees/999/compute")
        assert response.status_code == 404

    async def test_compute_batch(self, client: AsyncClient, seed):
        first = await seed.employee()
        second = await seed.employee()
        await seed.attendance_days(first, date(2026, 1, 5), 3)
        period = await _create_period(client)

        response = await client.post(f"/api/v1/periods/{period['id']}/compute")
        assert response.status_code == 200, response.text

        data = response.json()
        assert data["period_id"] == period["id"]
        assert sorted(r["employee_id"] for r in data["succeeded"]) == [first.id, second.id]
        assert data["failed"] == []

        response = await client.get(f"/api/v1/periods/{period['id']}/records")
        assert len(response.json()) == 2

        response = await client.get(f"/api/v1/periods/{period['id']}")
        assert response.json()["status"] == "processing"
        assert Decimal(response.json()["total_gross_pay"]) == Decimal("3000")


class TestRecordEndpoints:
    """Test record, deduction and payment endpoints."""

    async def test_add_and_remove_deduction(self, client: AsyncClient, seed):
        record = await _computed_record(client, seed)

        response = await client.post(
            f"/api/v1/records/{record['id']}/deductions",
            json={"type": "loan", "amount": "250.00", "code": "LN-7"},
        )
        assert response.status_code == 201, response.text
        assert Decimal(response.json()["net_pay"]) == Decimal("4250")

        response = await client.get(f"/api/v1/records/{record['id']}/deductions")
        deductions = response.json()
        assert sorted(d["type"] for d in deductions) == ["loan", "tax"]
        loan = next(d for d in deductions if d["type"] == "loan")
        assert loan["source"] == "manual"

        response = await client.delete(f"/api/v1/deductions/{loan['id']}")
        assert response.status_code == 200
        assert Decimal(response.json()["net_pay"]) == Decimal("4500")

    async def test_invalid_deduction(self, client: AsyncClient, seed):
        record = await _computed_record(client, seed)

        response = await client.post(
            f"/api/v1/records/{record['id']}/deductions",
            json={"type": "fine", "amount": "-5"},
        )
        assert response.status_code == 422
        assert len(response.json()["errors"]) == 2

    async def test_pay_lock_and_close(self, client: AsyncClient, seed):
        record = await _computed_record(client, seed)
        period_id = record["period_id"]

        response = await client.post(f"/api/v1/periods/{period_id}/lock")
        assert response.status_code == 200
        assert response.json()["status"] == "locked"

        response = await client.post(f"/api/v1/periods/{period_id}/close")
        assert response.status_code == 409
        assert response.json()["code"] == "UNPAID_RECORDS_EXIST"

        response = await client.post(
            f"/api/v1/records/{record['id']}/pay",
            json={"payment_method": "cash"},
            headers={"X-Actor": "cashier"},
        )
        assert response.status_code == 200, response.text
        assert response.json()["payment_status"] == "paid"
        assert response.json()["payment_method"] == "cash"

        response = await client.post(f"/api/v1/records/{record['id']}/pay")
        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_PAID"

        response = await client.post(f"/api/v1/periods/{period_id}/close")
        assert response.status_code == 200
        assert response.json()["status"] == "closed"
        assert response.json()["paid_employees"] == 1

        response = await client.post(f"/api/v1/periods/{period_id}/reopen")
        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_CLOSED"

    async def test_cancel_record(self, client: AsyncClient, seed):
        record = await _computed_record(client, seed)

        response = await client.post(
            f"/api/v1/records/{record['id']}/cancel",
            json={"reason": "left the company"},
            headers={"X-Actor": "hr"},
        )
        assert response.status_code == 200, response.text
        assert response.json()["payment_status"] == "cancelled"
        assert response.json()["remarks"] == "left the company"

        response = await client.post(f"/api/v1/records/{record['id']}/pay")
        assert response.status_code == 409
        assert response.json()["code"] == "RECORD_CANCELLED"

        response = await client.get(f"/api/v1/periods/{record['period_id']}")
        assert Decimal(response.json()["total_net_pay"]) == Decimal("0")

    async def test_delete_record(self, client: AsyncClient, seed):
        record = await _computed_record(client, seed)

        response = await client.delete(f"/api/v1/records/{record['id']}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/records/{record['id']}")
        assert response.status_code == 404

    async def test_audit_trail_records_actor(self, client: AsyncClient, seed):
        record = await _computed_record(client, seed)
        await client.post(f"/api/v1/records/{record['id']}/pay", headers={"X-Actor": "cashier"})

        response = await client.get(f"/api/v1/records/{record['id']}/audit")
        assert response.status_code == 200

        events = response.json()
        assert [e["action"] for e in events] == ["created", "payment_status:unpaid:paid"]
        assert events[0]["actor"] == "system"
        assert events[1]["actor"] == "cashier"
        assert events[1]["after_json"]["payment_status"] == "paid"
