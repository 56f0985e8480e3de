"""Delivery bounded context — Order Fulfillment and Driver Settlement.

Tracks orders from placement through collection and delivery, reconciles
what drivers actually collected against what was ordered, accrues and settles
per-delivery driver pay, and allocates procurement-discount savings between
the business and its customers.
"""

from protean.domain import Domain

from delivery.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

delivery = Domain(name="delivery")
