"""Read side of the driver ledger."""

from delivery.errors import NotFound
from delivery.ledger.driver_account import DriverAccount
from delivery.projections.cashouts import CashoutRequestView
from delivery.projections.order_payouts import OrderPayoutView, PayoutStatus
from delivery.utils.queries import fetch_all, fetch_one, load


def driver_earnings(driver_id: str) -> dict:
    """Accrued, pending and paid totals for a driver; zeros for an unknown driver."""
    try:
        account = load(DriverAccount, driver_id, label="Driver")
    except NotFound:
        return {
            "driver_id": str(driver_id),
            "accrued": 0,
            "pending_payout": 0,
            "paid_total": 0,
            "completed_deliveries": 0,
            "last_cashout_at": None,
        }

    return {
        "driver_id": str(account.driver_id),
        "accrued": account.accrued,
        "pending_payout": account.pending_payout,
        "paid_total": account.paid_total,
        "completed_deliveries": account.completed_deliveries,
        "last_cashout_at": account.last_cashout_at,
    }


def cashout_history(driver_id: str) -> list[CashoutRequestView]:
    """All cashouts of a driver, newest first."""
    records = fetch_all(CashoutRequestView, driver_id=str(driver_id))
    return sorted(records, key=lambda r: r.created_at, reverse=True)


def cashout_queue(status: str | None = None) -> list[CashoutRequestView]:
    """Cashouts across drivers for admin review, oldest first."""
    filters = {"status": status} if status else {}
    records = fetch_all(CashoutRequestView, **filters)
    return sorted(records, key=lambda r: r.created_at)


def cashout_owner(cashout_id: str) -> str:
    """The driver a cashout belongs to."""
    record = fetch_one(CashoutRequestView, cashout_id=str(cashout_id))
    if record is None:
        raise NotFound({"cashout_id": [f"Cashout {cashout_id} does not exist"]})
    return str(record.driver_id)


def payout_attribution(order_id: str) -> dict:
    """Where an order's delivery fee stands: unaccrued, accrued, pending or paid."""
    record = fetch_one(OrderPayoutView, order_id=str(order_id))
    if record is None:
        return {
            "order_id": str(order_id),
            "status": PayoutStatus.UNACCRUED.value,
            "driver_id": None,
            "amount": 0,
            "cashout_id": None,
            "paid_at": None,
        }
    return {
        "order_id": str(record.order_id),
        "status": record.status,
        "driver_id": str(record.driver_id),
        "amount": record.amount,
        "cashout_id": str(record.cashout_id) if record.cashout_id else None,
        "paid_at": record.paid_at,
    }
