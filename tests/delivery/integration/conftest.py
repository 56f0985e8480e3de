import pytest
from delivery.api import ROUTERS
from delivery.api.errors import register_error_handlers
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture()
def client():
    app = FastAPI()
    for router in ROUTERS:
        app.include_router(router)
    register_error_handlers(app)
    return TestClient(app)


LINES = [
    {"product_id": "prod-apples", "unit_price": 1000, "quantity": 3},
    {"product_id": "prod-bread", "unit_price": 2000, "quantity": 2},
]


class ApiFlows:
    """Drives orders through the HTTP API."""

    def __init__(self, client):
        self.client = client

    def place_order(self, customer_id="cust-api-001", lines=None, **extra):
        response = self.client.post(
            "/orders",
            json={"customer_id": customer_id, "lines": lines or LINES, "delivery_date": "2024-01-05", **extra},
        )
        assert response.status_code == 201, response.json()
        return response.json()["order_id"]

    def collect(self, driver_id="drv-api-001", customer_id="cust-api-001", reports=None):
        order_id = self.place_order(customer_id=customer_id)
        self.client.put(f"/orders/{order_id}/driver", json={"driver_id": driver_id})
        self.client.put(f"/orders/{order_id}/status", json={"status": "processing"})
        response = self.client.put(
            f"/orders/{order_id}/collection",
            json={
                "driver_id": driver_id,
                "reports": reports
                or [{"product_id": line["product_id"], "available_quantity": line["quantity"]} for line in LINES],
            },
        )
        assert response.status_code == 200, response.json()
        return order_id

    def deliver(self, driver_id="drv-api-001", customer_id="cust-api-001"):
        order_id = self.collect(driver_id=driver_id, customer_id=customer_id)
        response = self.client.put(f"/orders/{order_id}/status", json={"status": "completed"})
        assert response.status_code == 200, response.json()
        return order_id


@pytest.fixture()
def api(client):
    return ApiFlows(client)
