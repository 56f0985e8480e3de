"""FastAPI routes for the delivery domain.

Mutating endpoints dispatch commands through `delivery.dispatch.process`,
which serializes work per order, driver, discount key or customer, and
answer with the updated entity.
"""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from delivery import dispatch
from delivery.api.schemas import (
    AssignDriverRequest,
    CashoutOut,
    CreditResponse,
    DashboardStatsResponse,
    DemandOut,
    DiscountAnalyticsResponse,
    DiscountOut,
    DriverProgressResponse,
    EarningsResponse,
    MarkCashoutPaidRequest,
    OrderIdResponse,
    OrderResponse,
    PayoutResponse,
    PlaceOrderRequest,
    RedeemCreditRequest,
    SaveDiscountRequest,
    SettleRefundRequest,
    TransitionStatusRequest,
    VerifyCollectionRequest,
)
from delivery.credit.customer_credit import CustomerCredit
from delivery.credit.redemption import RedeemCredit
from delivery.dashboard.stats import DASHBOARD_TOP_PRODUCTS, dashboard_stats, driver_progress
from delivery.errors import NotFound
from delivery.ledger.cashout import MarkCashoutPaid, RequestCashout
from delivery.ledger.queries import (
    cashout_history,
    cashout_owner,
    cashout_queue,
    driver_earnings,
    payout_attribution,
)
from delivery.order.assignment import AssignDriver
from delivery.order.collection import VerifyCollection
from delivery.order.lifecycle import TransitionOrderStatus
from delivery.order.order import Order
from delivery.order.placement import PlaceOrder
from delivery.order.refunds import SettleRefund
from delivery.procurement.analytics import discount_analytics, discounts_by_date
from delivery.procurement.commit import SaveDiscount
from delivery.procurement.demand import aggregate_demand
from delivery.procurement.discount import ProcurementDiscount
from delivery.projections.cashouts import CashoutRequestView
from delivery.utils.queries import load


def _order_response(order_id: str) -> OrderResponse:
    return OrderResponse.from_order(load(Order, order_id))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    """Accept a priced order from checkout."""
    command = PlaceOrder(
        customer_id=body.customer_id,
        lines=json.dumps([line.model_dump() for line in body.lines]),
        service_fee=body.service_fee,
        delivery_date=body.delivery_date,
        placed_at=body.placed_at,
    )
    result = dispatch.process(command)
    return OrderIdResponse(order_id=result)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(order_id)


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def transition_status(order_id: str, body: TransitionStatusRequest) -> OrderResponse:
    """Move the order along its lifecycle. Repeating the current status is a no-op."""
    command = TransitionOrderStatus(order_id=order_id, status=body.status)
    dispatch.process(command, lock=(dispatch.order_key(order_id),))
    return _order_response(order_id)


@order_router.put("/{order_id}/driver", response_model=OrderResponse)
async def assign_driver(order_id: str, body: AssignDriverRequest) -> OrderResponse:
    """Assign, reassign or unassign (null driver) the order's driver."""
    command = AssignDriver(order_id=order_id, driver_id=body.driver_id)
    dispatch.process(command, lock=(dispatch.order_key(order_id),))
    return _order_response(order_id)


@order_router.put("/{order_id}/collection", response_model=OrderResponse)
async def verify_collection(order_id: str, body: VerifyCollectionRequest) -> OrderResponse:
    """Driver reports what was available at pickup; moves the order in transit."""
    command = VerifyCollection(
        order_id=order_id,
        driver_id=body.driver_id,
        reports=json.dumps([report.model_dump() for report in body.reports]),
        note=body.note,
    )
    dispatch.process(command, lock=(dispatch.order_key(order_id),))
    return _order_response(order_id)


@order_router.put("/{order_id}/refund", response_model=OrderResponse)
async def settle_refund(order_id: str, body: SettleRefundRequest) -> OrderResponse:
    command = SettleRefund(order_id=order_id, outcome=body.outcome)
    dispatch.process(command, lock=(dispatch.order_key(order_id),))
    return _order_response(order_id)


@order_router.get("/{order_id}/payout", response_model=PayoutResponse)
async def get_order_payout(order_id: str) -> PayoutResponse:
    """Whether the order's delivery fee is unaccrued, accrued, pending or paid."""
    return PayoutResponse.from_attribution(payout_attribution(order_id))


# ---------------------------------------------------------------------------
# Driver Router
# ---------------------------------------------------------------------------
driver_router = APIRouter(prefix="/drivers", tags=["drivers"])


@driver_router.post("/{driver_id}/cashouts", status_code=201, response_model=CashoutOut)
async def request_cashout(driver_id: str) -> CashoutOut:
    """Claim every unclaimed delivery fee in a single pending cashout."""
    cashout_id = dispatch.process(
        RequestCashout(driver_id=driver_id),
        lock=(dispatch.driver_key(driver_id),),
    )
    return CashoutOut.from_record(current_domain.repository_for(CashoutRequestView).get(cashout_id))


@driver_router.get("/{driver_id}/cashouts", response_model=list[CashoutOut])
async def list_driver_cashouts(driver_id: str) -> list[CashoutOut]:
    return [CashoutOut.from_record(record) for record in cashout_history(driver_id)]


@driver_router.get("/{driver_id}/earnings", response_model=EarningsResponse)
async def get_driver_earnings(driver_id: str) -> EarningsResponse:
    return EarningsResponse.from_earnings(driver_earnings(driver_id))


# ---------------------------------------------------------------------------
# Cashout Router (admin)
# ---------------------------------------------------------------------------
cashout_router = APIRouter(prefix="/cashouts", tags=["cashouts"])


@cashout_router.get("", response_model=list[CashoutOut])
async def list_cashouts(status: str | None = None) -> list[CashoutOut]:
    """Cashout queue across drivers, optionally filtered by status."""
    return [CashoutOut.from_record(record) for record in cashout_queue(status)]


@cashout_router.put("/{cashout_id}/paid", response_model=CashoutOut)
async def mark_cashout_paid(cashout_id: str, body: MarkCashoutPaidRequest) -> CashoutOut:
    """Confirm a pending cashout was paid. A second call answers 409."""
    driver_id = cashout_owner(cashout_id)
    dispatch.process(
        MarkCashoutPaid(driver_id=driver_id, cashout_id=cashout_id, paid_by=body.paid_by),
        lock=(dispatch.driver_key(driver_id),),
    )
    return CashoutOut.from_record(current_domain.repository_for(CashoutRequestView).get(cashout_id))


# ---------------------------------------------------------------------------
# Procurement Router
# ---------------------------------------------------------------------------
procurement_router = APIRouter(prefix="/procurement", tags=["procurement"])


@procurement_router.get("/demand", response_model=list[DemandOut])
async def get_demand(date: str | None = None) -> list[DemandOut]:
    """Quantities to buy per delivery date and product."""
    return [DemandOut.from_demand(entry) for entry in aggregate_demand(date)]


@procurement_router.post("/discounts", status_code=201, response_model=DiscountOut)
async def save_discount(body: SaveDiscountRequest) -> DiscountOut:
    """Record the price actually paid; the first record for a date and product stands."""
    key = dispatch.process(
        SaveDiscount(
            date=body.date,
            product_id=body.product_id,
            paid_unit_price=body.paid_unit_price,
            recorded_by=body.recorded_by,
        ),
        lock=(dispatch.discount_key(body.date, body.product_id),),
    )
    return DiscountOut.from_discount(current_domain.repository_for(ProcurementDiscount).get(key))


@procurement_router.get("/discounts/{date}", response_model=dict[str, DiscountOut])
async def get_discounts_by_date(date: str) -> dict[str, DiscountOut]:
    return {product_id: DiscountOut.from_discount(d) for product_id, d in discounts_by_date(date).items()}


@procurement_router.get("/analytics", response_model=DiscountAnalyticsResponse)
async def get_discount_analytics(
    start_date: str | None = None,
    end_date: str | None = None,
    top: int = 10,
) -> DiscountAnalyticsResponse:
    return DiscountAnalyticsResponse.from_analytics(discount_analytics(start_date, end_date, top))


# ---------------------------------------------------------------------------
# Credit Router
# ---------------------------------------------------------------------------
credit_router = APIRouter(prefix="/credits", tags=["credits"])


@credit_router.get("/{customer_id}", response_model=CreditResponse)
async def get_credit(customer_id: str) -> CreditResponse:
    try:
        account = load(CustomerCredit, customer_id, label="Customer credit")
    except NotFound:
        return CreditResponse.empty(customer_id)
    return CreditResponse.from_account(account)


@credit_router.post("/{customer_id}/redemptions", response_model=CreditResponse)
async def redeem_credit(customer_id: str, body: RedeemCreditRequest) -> CreditResponse:
    """Spend store credit against one of the customer's orders."""
    dispatch.process(
        RedeemCredit(customer_id=customer_id, order_id=body.order_id, amount=body.amount),
        lock=(dispatch.order_key(body.order_id), dispatch.customer_key(customer_id)),
    )
    return CreditResponse.from_account(load(CustomerCredit, customer_id))


# ---------------------------------------------------------------------------
# Dashboard Router
# ---------------------------------------------------------------------------
dashboard_router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@dashboard_router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(days: int | None = None, top: int = DASHBOARD_TOP_PRODUCTS) -> DashboardStatsResponse:
    """Revenue, refunds, status counts and top-K products, all time or the last `days`."""
    return DashboardStatsResponse.from_stats(dashboard_stats(days, top))


@dashboard_router.get("/drivers/{driver_id}/progress", response_model=DriverProgressResponse)
async def get_driver_progress(driver_id: str, days: int | None = None) -> DriverProgressResponse:
    """Countable orders the driver has collected or delivered."""
    return DriverProgressResponse(driver_id=driver_id, days=days, progressed_orders=driver_progress(driver_id, days))
