"""Driver cashouts — commands and handler.

Drivers request a cashout of everything accrued; an operator marks it paid
once the money has been transferred.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.errors import NotFound, NothingToCashOut
from delivery.ledger.driver_account import DriverAccount
from delivery.utils.queries import load

logger = structlog.get_logger(__name__)


@delivery.command(part_of="DriverAccount")
class RequestCashout:
    driver_id = Identifier(required=True)


@delivery.command(part_of="DriverAccount")
class MarkCashoutPaid:
    driver_id = Identifier(required=True)
    cashout_id = Identifier(required=True)
    paid_by = String(max_length=255)


@delivery.command_handler(part_of=DriverAccount)
class CashoutHandler:
    @handle(RequestCashout)
    def request_cashout(self, command):
        repo = current_domain.repository_for(DriverAccount)
        try:
            account = load(DriverAccount, command.driver_id, label="Driver")
        except NotFound:
            # A driver without an account has never completed a delivery
            raise NothingToCashOut(command.driver_id) from None

        cashout = account.request_cashout()
        repo.add(account)
        logger.info(
            "Cashout requested",
            driver_id=command.driver_id,
            cashout_id=str(cashout.id),
            order_count=cashout.order_count,
            amount=cashout.amount,
        )
        return str(cashout.id)

    @handle(MarkCashoutPaid)
    def mark_paid(self, command):
        repo = current_domain.repository_for(DriverAccount)
        account = load(DriverAccount, command.driver_id, label="Driver")
        cashout = account.mark_paid(command.cashout_id, paid_by=command.paid_by)
        repo.add(account)
        logger.info(
            "Cashout paid",
            driver_id=command.driver_id,
            cashout_id=command.cashout_id,
            amount=cashout.amount,
            paid_by=command.paid_by,
        )
