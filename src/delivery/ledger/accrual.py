"""Delivery fee accrual — command and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.ledger.driver_account import DriverAccount

logger = structlog.get_logger(__name__)


@delivery.command(part_of="DriverAccount")
class AccrueDeliveryFee:
    driver_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Integer(min_value=0)  # defaults to the configured per-delivery fee


def accrue_delivery_fee(driver_id: str, order_id: str, amount: int | None = None) -> bool:
    """Accrue the fee for `order_id` in the active unit of work.

    Opens the driver's account on first use. Returns False when the order
    was already accrued.
    """
    repo = current_domain.repository_for(DriverAccount)
    try:
        account = repo.get(driver_id)
    except ObjectNotFoundError:
        account = DriverAccount.open(driver_id)

    if not account.accrue(order_id, amount):
        logger.info(
            "Delivery fee already accrued",
            driver_id=driver_id,
            order_id=order_id,
        )
        return False

    repo.add(account)
    logger.info(
        "Delivery fee accrued",
        driver_id=driver_id,
        order_id=order_id,
        accrued=account.accrued,
    )
    return True


@delivery.command_handler(part_of=DriverAccount)
class AccrualHandler:
    @handle(AccrueDeliveryFee)
    def accrue(self, command):
        return accrue_delivery_fee(command.driver_id, command.order_id, command.amount)
