"""Integration tests for the order endpoints via TestClient."""

SHORT_BREAD = [
    {"product_id": "prod-apples", "available_quantity": 3},
    {"product_id": "prod-bread", "available_quantity": 1, "reason": "out_of_stock"},
]


class TestPlaceOrderAPI:
    def test_place_returns_201(self, client):
        response = client.post(
            "/orders",
            json={
                "customer_id": "cust-api-p1",
                "lines": [{"product_id": "prod-1", "unit_price": 1500, "quantity": 2}],
                "service_fee": 500,
            },
        )
        assert response.status_code == 201
        assert "order_id" in response.json()

    def test_get_order_renders_money(self, client, api):
        order_id = api.place_order(service_fee=500)
        response = client.get(f"/orders/{order_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["total"] == {"amount": 7500, "currency": "ZAR", "display": "R75.00"}
        assert data["adjusted_total"]["amount"] == 7500
        assert len(data["lines"]) == 2

    def test_bad_quantity_is_400(self, client):
        response = client.post(
            "/orders",
            json={"customer_id": "cust-api-p2", "lines": [{"product_id": "prod-1", "unit_price": 100, "quantity": 0}]},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["code"] == "InvalidQuantity"

    def test_unknown_order_is_404(self, client):
        response = client.get("/orders/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestStatusAPI:
    def test_transition_returns_updated_order(self, client, api):
        order_id = api.place_order()
        response = client.put(f"/orders/{order_id}/status", json={"status": "processing"})
        assert response.status_code == 200
        assert response.json()["status"] == "processing"

    def test_bypassing_collection_is_409(self, client, api):
        order_id = api.place_order()
        client.put(f"/orders/{order_id}/status", json={"status": "processing"})
        response = client.put(f"/orders/{order_id}/status", json={"status": "in_transit"})
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "state_conflict"
        assert body["code"] == "InvalidTransition"
        assert body["detail"]["current_state"] == ["processing"]

    def test_terminal_order_is_409(self, client, api):
        order_id = api.place_order()
        client.put(f"/orders/{order_id}/status", json={"status": "cancelled"})
        response = client.put(f"/orders/{order_id}/status", json={"status": "processing"})
        assert response.status_code == 409
        assert response.json()["code"] == "AlreadyTerminal"

    def test_repeat_completion_is_200(self, client, api):
        order_id = api.deliver(driver_id="drv-api-s1")
        response = client.put(f"/orders/{order_id}/status", json={"status": "completed"})
        assert response.status_code == 200
        assert response.json()["status"] == "completed"


class TestDriverAPI:
    def test_assign_driver(self, client, api):
        order_id = api.place_order()
        response = client.put(f"/orders/{order_id}/driver", json={"driver_id": "drv-api-a1"})
        assert response.status_code == 200
        assert response.json()["driver_id"] == "drv-api-a1"

    def test_unassign_driver(self, client, api):
        order_id = api.place_order()
        client.put(f"/orders/{order_id}/driver", json={"driver_id": "drv-api-a2"})
        response = client.put(f"/orders/{order_id}/driver", json={"driver_id": None})
        assert response.status_code == 200
        assert response.json()["driver_id"] is None


class TestCollectionAPI:
    def test_shortfall_reduces_adjusted_total(self, client, api):
        order_id = api.collect(driver_id="drv-api-c1", reports=SHORT_BREAD)
        data = client.get(f"/orders/{order_id}").json()
        assert data["status"] == "in_transit"
        assert data["refund_amount"]["amount"] == 2000
        assert data["adjusted_total"]["display"] == "R50.00"
        assert data["refund_status"] == "pending"
        assert data["missing_items"][0]["reason"] == "out_of_stock"

    def test_missing_reason_is_400(self, client, api):
        order_id = api.place_order()
        client.put(f"/orders/{order_id}/driver", json={"driver_id": "drv-api-c2"})
        client.put(f"/orders/{order_id}/status", json={"status": "processing"})
        response = client.put(
            f"/orders/{order_id}/collection",
            json={
                "driver_id": "drv-api-c2",
                "reports": [
                    {"product_id": "prod-apples", "available_quantity": 3},
                    {"product_id": "prod-bread", "available_quantity": 1},
                ],
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "ReasonRequired"
        assert "reason" in response.json()["detail"]

    def test_wrong_driver_is_409(self, client, api):
        order_id = api.place_order()
        client.put(f"/orders/{order_id}/driver", json={"driver_id": "drv-api-c3"})
        client.put(f"/orders/{order_id}/status", json={"status": "processing"})
        response = client.put(
            f"/orders/{order_id}/collection",
            json={"driver_id": "drv-api-other", "reports": SHORT_BREAD},
        )
        assert response.status_code == 409
        assert response.json()["code"] == "DriverMismatch"


class TestRefundAPI:
    def test_settle_refund(self, client, api):
        order_id = api.collect(driver_id="drv-api-r1", reports=SHORT_BREAD)
        response = client.put(f"/orders/{order_id}/refund", json={"outcome": "credited"})
        assert response.status_code == 200
        assert response.json()["refund_status"] == "credited"

    def test_no_pending_refund_is_409(self, client, api):
        order_id = api.collect(driver_id="drv-api-r2")
        response = client.put(f"/orders/{order_id}/refund", json={"outcome": "processed"})
        assert response.status_code == 409
        assert response.json()["code"] == "RefundNotPending"
