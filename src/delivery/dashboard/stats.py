"""Dashboard statistics — read-only figures over the order projections.

Every figure is computed server-side from the same predicates so that two
screens never disagree on the same number.
"""

from collections import Counter, defaultdict
from datetime import UTC, datetime, timedelta

from delivery.order.order import OrderStatus
from delivery.projections.order_lines import OrderLineView
from delivery.projections.order_summary import OrderSummary
from delivery.settings import stats_cutoff
from delivery.utils.queries import fetch_all

DASHBOARD_TOP_PRODUCTS = 3

# Orders a driver has progressed: collected and on the way, or delivered
DRIVER_PROGRESSED_STATUSES = frozenset({OrderStatus.IN_TRANSIT.value, OrderStatus.COMPLETED.value})


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_countable_order(status: str, created_at: datetime | None) -> bool:
    """Whether an order counts toward statistics.

    Cancelled orders and orders created before the test-data cutoff do not.
    """
    if status == OrderStatus.CANCELLED.value:
        return False
    created_at = _aware(created_at)
    return created_at is not None and created_at >= stats_cutoff()


def _window_start(days: int | None, now: datetime | None = None) -> datetime | None:
    if days is None:
        return None
    return (now or datetime.now(UTC)) - timedelta(days=days)


def _in_window(created_at: datetime | None, start: datetime | None) -> bool:
    return start is None or (created_at is not None and _aware(created_at) >= start)


def countable_orders(days: int | None = None) -> list[OrderSummary]:
    start = _window_start(days)
    return [
        order
        for order in fetch_all(OrderSummary)
        if is_countable_order(order.status, order.created_at) and _in_window(order.created_at, start)
    ]


def top_products(days: int | None = None, top: int = DASHBOARD_TOP_PRODUCTS) -> list[dict]:
    """Products by quantity ordered across countable orders, highest first."""
    start = _window_start(days)
    quantities = defaultdict(int)
    for line in fetch_all(OrderLineView):
        if is_countable_order(line.order_status, line.created_at) and _in_window(line.created_at, start):
            quantities[str(line.product_id)] += line.quantity

    ranked = sorted(quantities.items(), key=lambda item: (-item[1], item[0]))
    return [{"product_id": product_id, "quantity": quantity} for product_id, quantity in ranked[:top]]


def driver_progress(driver_id: str, days: int | None = None) -> int:
    """Number of countable orders the driver has progressed."""
    return sum(
        1
        for order in countable_orders(days)
        if str(order.driver_id or "") == str(driver_id) and order.status in DRIVER_PROGRESSED_STATUSES
    )


def dashboard_stats(days: int | None = None, top: int = DASHBOARD_TOP_PRODUCTS) -> dict:
    """Revenue, refunds, status counts and top products for the window."""
    start = _window_start(days)
    cutoff = stats_cutoff()
    # Status counts include cancelled orders; every other figure does not
    recent = [
        order
        for order in fetch_all(OrderSummary)
        if order.created_at is not None and _aware(order.created_at) >= cutoff and _in_window(order.created_at, start)
    ]
    orders = [order for order in recent if is_countable_order(order.status, order.created_at)]
    service_fees = sum(order.service_fee or 0 for order in orders)
    subtotals = sum(order.subtotal or 0 for order in orders)

    return {
        "days": days,
        "order_count": len(orders),
        "revenue": service_fees + subtotals,
        "service_fees": service_fees,
        "subtotals": subtotals,
        "refunds": sum(order.refund_amount or 0 for order in orders),
        "status_counts": dict(Counter(order.status for order in recent)),
        "top_products": top_products(days, top),
    }
