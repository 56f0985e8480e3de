"""Saving a procurement discount — command and handler."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from delivery.domain import delivery
from delivery.errors import AlreadyRecorded, NotFound
from delivery.procurement.demand import demand_for
from delivery.procurement.discount import ProcurementDiscount

logger = structlog.get_logger(__name__)


@delivery.command(part_of="ProcurementDiscount")
class SaveDiscount:
    date = String(required=True, max_length=10)
    product_id = Identifier(required=True)
    paid_unit_price = Integer(required=True)
    recorded_by = String(max_length=255)


@delivery.command_handler(part_of=ProcurementDiscount)
class SaveDiscountHandler:
    @handle(SaveDiscount)
    def save_discount(self, command):
        repo = current_domain.repository_for(ProcurementDiscount)
        key = ProcurementDiscount.key_for(command.date, command.product_id)

        try:
            existing = repo.get(key)
        except ObjectNotFoundError:
            existing = None
        if existing is not None:
            raise AlreadyRecorded(
                f"A discount for {command.product_id} on {command.date} is already recorded",
                current_state="recorded",
                paid_unit_price=existing.paid_unit_price,
            )

        demand = demand_for(command.date, command.product_id)
        if demand is None:
            raise NotFound({"product_id": [f"No open demand for {command.product_id} on {command.date}"]})

        discount = ProcurementDiscount.record(
            demand,
            paid_unit_price=command.paid_unit_price,
            recorded_by=command.recorded_by,
        )
        repo.add(discount)
        logger.info(
            "Procurement discount committed",
            discount_id=key,
            total_discount=discount.total_discount,
            customer_share=discount.customer_share,
            business_share=discount.business_share,
        )
        return key
