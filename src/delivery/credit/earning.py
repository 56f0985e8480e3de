"""Earning customer credit — command and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from delivery.credit.customer_credit import CreditSource, CustomerCredit
from delivery.domain import delivery

logger = structlog.get_logger(__name__)


@delivery.command(part_of="CustomerCredit")
class EarnCredit:
    customer_id = Identifier(required=True)
    source = String(required=True, max_length=20, choices=CreditSource)
    reference = String(required=True, max_length=255)
    order_id = Identifier()
    amount = Integer(required=True, min_value=0)


@delivery.command_handler(part_of=CustomerCredit)
class EarnCreditHandler:
    @handle(EarnCredit)
    def earn(self, command):
        repo = current_domain.repository_for(CustomerCredit)
        try:
            account = repo.get(command.customer_id)
        except ObjectNotFoundError:
            account = CustomerCredit.open(command.customer_id)

        if account.earn(
            source=command.source,
            reference=command.reference,
            amount=command.amount,
            order_id=command.order_id,
        ):
            repo.add(account)
            logger.info(
                "Customer credit earned",
                customer_id=command.customer_id,
                source=command.source,
                reference=command.reference,
                amount=command.amount,
            )
