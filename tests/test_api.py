"""
Tests for the HTTP surface in `api/`.

Runs the FastAPI app against the in-memory store. Covers identity headers,
status codes for failed results, and the purchase -> receive -> sell flow end
to end.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from api.main import app

HEADERS = {"X-Tenant-Id": "tenant-1", "X-Branch-Id": "branch-1", "X-User-Id": "user-1"}


@pytest.fixture
def client(store) -> TestClient:
    return TestClient(app)


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_identity_is_unauthorized(client: TestClient) -> None:
    response = client.get("/api/v1/purchases", headers={"X-Tenant-Id": "tenant-1"})

    assert response.status_code == 401
    assert "branch_id" in response.json()["detail"]


def test_purchase_receive_and_sell_flow(client: TestClient, store, seed_product) -> None:
    product_id = seed_product(stock=2)

    created = client.post(
        "/api/v1/purchases",
        headers=HEADERS,
        json={
            "supplier_id": "sup-1",
            "payment_method": "bank_transfer",
            "items": [
                {"product_id": product_id, "product_name": "Paracetamol 500mg", "quantity": 10, "unit_cost": "50"},
                {"product_name": "Bandages", "quantity": 5, "unit_cost": "100"},
            ],
        },
    )
    assert created.status_code == 201, created.text
    order = created.json()
    assert Decimal(order["total_amount"]) == Decimal("1180")
    assert order["status"] == "pending"

    received = client.post(
        f"/api/v1/purchases/{order['id']}/receive",
        headers=HEADERS,
        json={"items": [{"product_id": product_id, "received_quantity": 10}]},
    )
    assert received.status_code == 200, received.text
    assert received.json()["status"] == "received"

    sold = client.post(
        "/api/v1/sales",
        headers=HEADERS,
        json={
            "customer_id": "cust-1",
            "payment_method": "cash",
            "items": [{"product_id": product_id, "quantity": 3, "unit_price": "80"}],
        },
    )
    assert sold.status_code == 201, sold.text
    assert sold.json()["warnings"] == []
    assert Decimal(sold.json()["sale"]["final_amount"]) == Decimal("240")

    assert store.rows("products", id=product_id)[0]["stock_quantity"] == 9


def test_update_purchase_status(client: TestClient, store) -> None:
    order = client.post(
        "/api/v1/purchases",
        headers=HEADERS,
        json={"supplier_id": "sup-1", "items": [{"product_name": "Gauze", "quantity": 1, "unit_cost": "10"}]},
    ).json()

    response = client.patch(f"/api/v1/purchases/{order['id']}", headers=HEADERS, json={"status": "returned"})

    assert response.status_code == 400
    assert "pending" in response.json()["detail"]


def test_unknown_purchase_is_404(client: TestClient) -> None:
    assert client.get("/api/v1/purchases/nope", headers=HEADERS).status_code == 404
    assert client.delete("/api/v1/purchases/nope", headers=HEADERS).status_code == 404


def test_store_failure_is_502(client: TestClient, store) -> None:
    store.fail_on("sales", "select", "upstream unavailable")

    response = client.get("/api/v1/sales", headers=HEADERS)

    assert response.status_code == 502


def test_invalid_payload_is_422(client: TestClient, store) -> None:
    response = client.post(
        "/api/v1/purchases",
        headers=HEADERS,
        json={"supplier_id": "sup-1", "items": [{"product_name": "Gauze", "quantity": 0, "unit_cost": "10"}]},
    )

    assert response.status_code == 422
    assert store.writes() == []


def test_refund_endpoint(client: TestClient, store, seed_product) -> None:
    product_id = seed_product(stock=5)
    sale = client.post(
        "/api/v1/sales",
        headers=HEADERS,
        json={
            "customer_id": "cust-1",
            "payment_method": "card",
            "items": [{"product_id": product_id, "quantity": 1, "unit_price": "30"}],
        },
    ).json()["sale"]

    refund = client.post(
        "/api/v1/refunds",
        headers=HEADERS,
        json={"sale_id": sale["id"], "refund_amount": "30", "refund_reason": "Wrong strength", "refund_method": "card"},
    )

    assert refund.status_code == 201, refund.text
    assert client.get(f"/api/v1/sales/{sale['id']}", headers=HEADERS).json()["payment_status"] == "refunded"
    assert [r["refund_reason"] for r in client.get("/api/v1/refunds", headers=HEADERS).json()] == ["Wrong strength"]


def test_sales_stats(client: TestClient, store) -> None:
    response = client.get("/api/v1/sales/stats", headers=HEADERS)

    assert response.status_code == 200
    assert response.json()["total_sales"] == 0


def test_navigation_for_role(client: TestClient) -> None:
    menu = client.get("/api/v1/navigation", headers={"X-User-Role": "cashier"}).json()
    access = client.get(
        "/api/v1/navigation/access",
        params={"path": "/branch/purchases"},
        headers={"X-User-Role": "cashier"},
    ).json()

    assert menu[0]["path"] == "/branch/sales/pos"
    assert access == {"path": "/branch/purchases", "role": "cashier", "allowed": False}


@pytest.fixture
def recorded_refund(client: TestClient, store, seed_product) -> None:
    product_id = seed_product(stock=5)
    client.post(
        "/api/v1/purchases",
        headers=HEADERS,
        json={"supplier_id": "sup-1", "items": [{"product_name": "Gauze", "quantity": 1, "unit_cost": "10"}]},
    )
    sale = client.post(
        "/api/v1/sales",
        headers=HEADERS,
        json={
            "customer_id": "cust-1",
            "payment_method": "cash",
            "items": [{"product_id": product_id, "quantity": 1, "unit_price": "30"}],
        },
    ).json()["sale"]
    client.post(
        "/api/v1/refunds",
        headers=HEADERS,
        json={"sale_id": sale["id"], "refund_amount": "30", "refund_reason": "Wrong strength", "refund_method": "cash"},
    )


@pytest.mark.parametrize("path", ["/api/v1/purchases", "/api/v1/sales", "/api/v1/refunds", "/api/v1/stock/movements"])
@pytest.mark.parametrize(
    "params,expected",
    [
        ({"date_from": "2000-01-01T00:00:00"}, 1),
        ({"date_from": "2000-01-01T00:00:00+02:00"}, 1),
        ({"date_to": "2000-01-01T00:00:00"}, 0),
        ({"date_to": "2000-01-01T00:00:00+02:00"}, 0),
        ({"date_from": "2999-01-01T00:00:00+02:00", "date_to": "2999-12-31T00:00:00"}, 0),
    ],
)
def test_list_date_bounds_accept_naive_and_offset_values(
    client: TestClient, recorded_refund, path: str, params, expected: int
) -> None:
    response = client.get(path, headers=HEADERS, params=params)

    assert response.status_code == 200, response.text
    assert len(response.json()) == expected


def test_stock_movement_endpoints(client: TestClient, store, seed_product) -> None:
    product_id = seed_product(stock=10)

    created = client.post(
        "/api/v1/stock/movements",
        headers=HEADERS,
        json={"product_id": product_id, "movement_type": "transfer", "quantity": 4, "reason": "Sent to branch 2"},
    )

    assert created.status_code == 201, created.text
    movement = created.json()
    assert movement["movement_type"] == "transfer"
    assert (movement["previous_quantity"], movement["new_quantity"]) == (10, 6)
    assert movement["user_id"] == "user-1"
    assert store.rows("products", id=product_id)[0]["stock_quantity"] == 6

    listed = client.get(
        "/api/v1/stock/movements",
        headers=HEADERS,
        params={"product_id": product_id, "movement_type": "transfer"},
    )
    assert [m["id"] for m in listed.json()] == [movement["id"]]


def test_invalid_stock_movement_is_400(client: TestClient, store, seed_product) -> None:
    product_id = seed_product(stock=10)

    response = client.post(
        "/api/v1/stock/movements",
        headers=HEADERS,
        json={"product_id": product_id, "movement_type": "out", "quantity": 0, "reason": "Expired"},
    )

    assert response.status_code == 400
    assert store.rows("stock_movements") == []


def test_stock_movement_for_unknown_product_is_404(client: TestClient, store) -> None:
    response = client.post(
        "/api/v1/stock/movements",
        headers=HEADERS,
        json={"product_id": "nope", "movement_type": "in", "quantity": 1, "reason": "Found"},
    )

    assert response.status_code == 404
