"""Application tests for dashboard statistics.

Covers:
- cancelled and pre-cutoff orders are excluded from every figure but status counts
- top products by quantity
- driver progress counts in_transit and completed orders
"""

from datetime import UTC, datetime

from delivery.dashboard.stats import dashboard_stats, driver_progress, is_countable_order, top_products

APPLES_ONLY = [{"product_id": "prod-apples", "unit_price": 1000, "quantity": 5}]


class TestCountableOrders:
    def test_cancelled_is_not_countable(self):
        assert is_countable_order("cancelled", datetime.now(UTC)) is False

    def test_before_cutoff_is_not_countable(self):
        assert is_countable_order("completed", datetime(2023, 12, 31, tzinfo=UTC)) is False

    def test_recent_order_is_countable(self):
        assert is_countable_order("pending", datetime(2024, 6, 1, tzinfo=UTC)) is True

    def test_naive_timestamps_are_treated_as_utc(self):
        assert is_countable_order("pending", datetime(2024, 6, 1)) is True

    def test_missing_timestamp(self):
        assert is_countable_order("pending", None) is False


class TestDashboardStats:
    def test_figures_exclude_cancelled_and_test_orders(self, flows):
        flows.place_order(service_fee=500)
        flows.place_order(service_fee=500)
        cancelled = flows.place_order(service_fee=500)
        flows.transition(cancelled, "cancelled")
        flows.place_order(service_fee=500, placed_at=datetime(2023, 6, 1, tzinfo=UTC))

        stats = dashboard_stats()

        assert stats["order_count"] == 2
        assert stats["subtotals"] == 14000
        assert stats["service_fees"] == 1000
        assert stats["revenue"] == 15000
        assert stats["status_counts"] == {"pending": 2, "cancelled": 1}

    def test_refunds(self, flows):
        order_id = flows.place_order()
        flows.assign(order_id, "drv-ds-1")
        flows.transition(order_id, "processing")
        flows.verify(
            order_id,
            "drv-ds-1",
            [
                {"product_id": "prod-apples", "available_quantity": 3},
                {"product_id": "prod-bread", "available_quantity": 1, "reason": "damaged"},
            ],
        )
        assert dashboard_stats()["refunds"] == 2000

    def test_zero_day_window_is_empty(self, flows):
        flows.place_order()

        assert dashboard_stats(days=0)["order_count"] == 0
        assert dashboard_stats()["order_count"] == 1

    def test_empty(self):
        stats = dashboard_stats(days=7)
        assert stats["order_count"] == 0
        assert stats["revenue"] == 0
        assert stats["status_counts"] == {}
        assert stats["top_products"] == []


class TestTopProducts:
    def test_ranked_by_quantity(self, flows):
        flows.place_order()
        flows.place_order(lines=APPLES_ONLY)

        ranked = top_products()
        assert ranked[0] == {"product_id": "prod-apples", "quantity": 8}
        assert ranked[1] == {"product_id": "prod-bread", "quantity": 2}

    def test_cancelled_orders_do_not_count(self, flows):
        cancelled = flows.place_order(lines=APPLES_ONLY)
        flows.transition(cancelled, "cancelled")
        flows.place_order()

        assert top_products()[0] == {"product_id": "prod-apples", "quantity": 3}

    def test_limit(self, flows):
        flows.place_order()
        assert len(top_products(top=1)) == 1


class TestDriverProgress:
    def test_counts_collected_and_delivered(self, flows):
        flows.collect(driver_id="drv-ds-2")
        flows.deliver(driver_id="drv-ds-2")
        processing = flows.place_order()
        flows.assign(processing, "drv-ds-2")
        flows.transition(processing, "processing")

        assert driver_progress("drv-ds-2") == 2

    def test_unknown_driver(self):
        assert driver_progress("drv-nobody") == 0
