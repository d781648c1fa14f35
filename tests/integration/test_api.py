"""Integration tests for API endpoints"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient


@pytest.fixture
def registered(client: TestClient) -> dict:
    """Customer with one vehicle registered through the API"""
    response = client.post(
        "/v1/customers",
        json={
            "first_name": "Dana",
            "last_name": "Levi",
            "national_id": "123456782",
            "vehicles": [{"plate_number": "12-345-67", "vehicle_type": "private"}],
        },
        headers={"X-Actor": "clerk"},
    )
    assert response.status_code == 201
    data = response.json()
    return {"customer_id": data["id"], "vehicle_id": data["vehicles"][0]["id"]}


@pytest.fixture
def policy_url(client: TestClient, registered: dict) -> str:
    base = f"/v1/customers/{registered['customer_id']}/vehicles/{registered['vehicle_id']}/policies"
    response = client.post(
        base,
        json={
            "insurance_type": "comprehensive",
            "insurance_company": "Harel",
            "insurance_amount_cents": 1200,
            "insurance_start": "2024-01-01T00:00:00Z",
            "insurance_end": "2025-01-01T00:00:00Z",
        },
    )
    assert response.status_code == 201
    return f"{base}/{response.json()['id']}"


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "agency_payments_total" in response.text


def test_request_id_header(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_duplicate_customer_returns_409(client: TestClient, registered: dict):
    response = client.post(
        "/v1/customers",
        json={"first_name": "Other", "last_name": "Person", "national_id": "123456782"},
    )
    assert response.status_code == 409


def test_unknown_customer_returns_404(client: TestClient):
    response = client.get("/v1/customers/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json()["resource"] == "Customer"


def test_list_customers_with_search(client: TestClient, registered: dict):
    response = client.get("/v1/customers", params={"search": "lev"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["customers"][0]["national_id"] == "123456782"


@patch("agency_ledger.api.v1.policies.dispatch_notification", new_callable=AsyncMock)
def test_payment_flow(mock_dispatch: AsyncMock, client: TestClient, policy_url: str):
    """Cash then cheque settles the policy; a further payment is a 400 with the field"""
    response = client.post(f"{policy_url}/payments", json={"amount_cents": 400, "method": "cash"})
    assert response.status_code == 201
    assert response.json()["policy"]["remaining_debt_cents"] == 800
    assert response.json()["payment"]["recorded_by"] == "system"

    response = client.post(
        f"{policy_url}/payments",
        json={"amount_cents": 800, "method": "cheque", "cheque_number": "C1", "cheque_date": "2024-06-01"},
        headers={"X-Actor": "clerk"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["policy"]["paid_amount_cents"] == 1200
    assert data["policy"]["remaining_debt_cents"] == 0
    assert data["payment"]["cheque_id"] is not None
    assert data["payment"]["recorded_by"] == "clerk"

    response = client.post(f"{policy_url}/payments", json={"amount_cents": 1, "method": "cash"})
    assert response.status_code == 400
    assert response.json()["field"] == "amount_cents"
    assert "already fully paid" in response.json()["detail"]

    assert mock_dispatch.call_count == 2


def test_invalid_payment_method_returns_field(client: TestClient, policy_url: str):
    response = client.post(f"{policy_url}/payments", json={"amount_cents": 100, "method": "bitcoin"})
    assert response.status_code == 400
    assert response.json()["field"] == "method"


def test_remove_payment_endpoint(client: TestClient, policy_url: str):
    payment = client.post(f"{policy_url}/payments", json={"amount_cents": 300, "method": "cash"}).json()["payment"]

    response = client.delete(f"{policy_url}/payments/{payment['id']}")
    assert response.status_code == 200
    assert response.json()["paid_amount_cents"] == 0
    assert response.json()["remaining_debt_cents"] == 1200


def test_cheque_lifecycle_endpoints(client: TestClient, policy_url: str):
    payment = client.post(
        f"{policy_url}/payments",
        json={"amount_cents": 500, "method": "cheque", "cheque_number": "C9", "cheque_date": "2024-06-01"},
    ).json()["payment"]
    cheque_id = payment["cheque_id"]

    detail = client.get(f"/v1/cheques/{cheque_id}").json()
    assert detail["customer_name"] == "Dana Levi"
    assert detail["insurance_company"] == "Harel"

    response = client.patch(f"/v1/cheques/{cheque_id}/status", json={"status": "returned", "returned_reason": "No funds"})
    assert response.status_code == 200
    assert response.json()["status"] == "returned"

    response = client.patch(f"/v1/cheques/{cheque_id}/status", json={"status": "bounced"})
    assert response.status_code == 400
    assert response.json()["field"] == "status"

    stats = client.get("/v1/cheques/statistics").json()
    assert stats["by_status"]["returned"] == {"count": 1, "amount_cents": 500}

    assert client.delete(f"/v1/cheques/{cheque_id}").status_code == 204
    policy = client.get(policy_url).json()
    assert policy["paid_amount_cents"] == 0


def test_due_items_endpoint(client: TestClient, policy_url: str):
    client.post(f"{policy_url}/payments", json={"amount_cents": 400, "method": "cash"})

    response = client.get("/v1/reports/due-items", params={"type": "insurances"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["amount_cents"] == 800
    assert data["summary"]["insurances"]["count"] == 1

    response = client.get("/v1/reports/due-items", params={"sort_by": "name"})
    assert response.status_code == 400
    assert response.json()["field"] == "sort_by"


def test_dashboard_endpoint(client: TestClient, policy_url: str):
    client.post(f"{policy_url}/payments", json={"amount_cents": 1000, "method": "card"})
    client.post("/v1/expenses", json={"title": "Rent", "amount_cents": 300, "paid_by": "Office"})

    data = client.get("/v1/reports/dashboard").json()
    assert data["net_profit_cents"] == 1000 + 1000 - 300
    assert data["income_by_method"]["visa"] == 1000


def test_pricing_upsert_and_quote(client: TestClient):
    rules = {
        "matrix": [
            {"vehicle_type": "private", "driver_age_group": "above_24", "offer_amount_min": 0, "price": 2500},
        ]
    }
    response = client.put("/v1/pricing/Harel/comprehensive", json={"rules": rules})
    assert response.status_code == 201
    response = client.put("/v1/pricing/Harel/comprehensive", json={"rules": rules})
    assert response.status_code == 200

    quote = client.get(
        "/v1/pricing/Harel/comprehensive/quote",
        params={"vehicle_type": "private", "driver_age_group": "above_24", "offer_amount": 1000},
    ).json()
    assert quote["price_cents"] == 2500
    assert quote["automatic"] is True

    response = client.put("/v1/pricing/Harel/accident_fee_waiver", json={"rules": {}})
    assert response.status_code == 400
    assert response.json()["field"] == "rules.fixed_amount"

    assert client.get("/v1/pricing/Harel/road_service").status_code == 404


def test_list_payments_endpoint(client: TestClient, registered: dict, policy_url: str):
    client.post(f"{policy_url}/payments", json={"amount_cents": 400, "method": "cash", "paid_at": "2024-02-01T10:00:00Z"})
    client.post(f"{policy_url}/payments", json={"amount_cents": 300, "method": "card", "paid_at": "2024-03-01T10:00:00Z"})

    response = client.get("/v1/payments", params={"customer_id": registered["customer_id"], "sort_by": "amount"})
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [p["amount_cents"] for p in data["payments"]] == [400, 300]
    assert data["payments"][0]["customer_name"] == "Dana Levi"
    assert data["summary"]["by_method"]["card"] == 300
    assert data["summary"]["method_counts"]["cash"] == 1

    march = client.get("/v1/payments", params={"start_date": "2024-03-01", "end_date": "2024-03-31"}).json()
    assert [p["method"] for p in march["payments"]] == ["card"]

    response = client.get("/v1/payments", params={"method": "paypal"})
    assert response.status_code == 400
    assert response.json()["field"] == "method"


def test_debts_endpoint_filters(client: TestClient, policy_url: str):
    client.post(f"{policy_url}/payments", json={"amount_cents": 400, "method": "cash"})

    debts = client.get("/v1/reports/debts", params={"active_only": "true"}).json()
    assert debts[0]["total_debt_cents"] == 800

    assert client.get("/v1/reports/debts", params={"agent_name": "Gil"}).json() == []
