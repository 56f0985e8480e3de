"""Business constants read from the active domain's `[custom]` configuration."""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

DEFAULTS = {
    "CURRENCY": "ZAR",
    "PER_DELIVERY_FEE": 4000,
    "CUSTOMER_SHARE_PERCENT": 75,
    "TEST_DATA_CUTOFF": "2024-01-01T00:00:00+00:00",
}


def _custom(key):
    custom = {}
    if current_domain:
        custom = current_domain.config.get("custom", {}) or {}
    return custom.get(key, DEFAULTS[key])


def currency() -> str:
    return str(_custom("CURRENCY"))


def per_delivery_fee() -> int:
    """Flat fee paid to a driver for each completed delivery, in cents."""
    return int(_custom("PER_DELIVERY_FEE"))


def customer_share_percent() -> int:
    return int(_custom("CUSTOMER_SHARE_PERCENT"))


def stats_cutoff() -> datetime:
    """Orders created before this instant are test data and excluded from stats."""
    value = _custom("TEST_DATA_CUTOFF")
    if isinstance(value, datetime):
        cutoff = value
    else:
        cutoff = datetime.fromisoformat(str(value))
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=UTC)
    return cutoff
