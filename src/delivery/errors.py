"""Error taxonomy for the delivery domain.

Every business failure falls into one of five kinds, all recoverable by the
caller:

    validation_error     bad input shape or range (retry with corrected input)
    state_conflict       operation not valid from the entity's current state
    not_found            unknown identifier
    nothing_to_cash_out  valid call with nothing to do
    storage_unavailable  persistence outage; the write did not happen, retry

The classes extend Protean's exceptions so that domain code raising them is
caught wherever Protean's own `ValidationError`, `InvalidStateError`,
`ObjectNotFoundError` or `InvalidOperationError` are.
"""

from contextlib import contextmanager

from protean.exceptions import (
    DatabaseError,
    InvalidOperationError,
    InvalidStateError,
    ObjectNotFoundError,
    TransactionError,
    ValidationError,
)
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

VALIDATION_ERROR = "validation_error"
STATE_CONFLICT = "state_conflict"
NOT_FOUND = "not_found"
NOTHING_TO_CASH_OUT = "nothing_to_cash_out"
STORAGE_UNAVAILABLE = "storage_unavailable"


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------
class InvalidQuantity(ValidationError):
    kind = VALIDATION_ERROR


class InvalidPrice(ValidationError):
    kind = VALIDATION_ERROR


class PriceInconsistency(ValidationError):
    kind = VALIDATION_ERROR


class ReasonRequired(ValidationError):
    kind = VALIDATION_ERROR


class IncompleteAvailabilityReport(ValidationError):
    kind = VALIDATION_ERROR


class InsufficientCredit(ValidationError):
    kind = VALIDATION_ERROR


class CreditExceedsOrder(ValidationError):
    kind = VALIDATION_ERROR


# ---------------------------------------------------------------------------
# State conflicts
# ---------------------------------------------------------------------------
class StateConflict(InvalidStateError):
    """The operation is not valid from the entity's current state."""

    kind = STATE_CONFLICT

    def __init__(self, message: str, current_state: str | None = None, **details):
        super().__init__(message)
        self.message = message
        self.current_state = current_state
        self.details = details
        self.messages = {"state": [message]}
        if current_state is not None:
            self.messages["current_state"] = [current_state]
        for key, value in details.items():
            self.messages[key] = [str(value)]

    def __str__(self) -> str:
        return self.message


class InvalidTransition(StateConflict):
    pass


class AlreadyTerminal(StateConflict):
    pass


class AlreadyPaid(StateConflict):
    pass


class AlreadyRecorded(StateConflict):
    pass


class DriverRequired(StateConflict):
    pass


class DriverMismatch(StateConflict):
    pass


class RefundNotPending(StateConflict):
    pass


# ---------------------------------------------------------------------------
# Lookups, no-op results and infrastructure
# ---------------------------------------------------------------------------
class NotFound(ObjectNotFoundError):
    kind = NOT_FOUND


class NothingToCashOut(InvalidOperationError):
    """The driver has no completed, unclaimed deliveries to settle."""

    kind = NOTHING_TO_CASH_OUT

    def __init__(self, driver_id: str):
        super().__init__(f"Driver {driver_id} has no unclaimed deliveries to cash out")
        self.driver_id = driver_id
        self.messages = {"driver_id": [f"No unclaimed deliveries for driver {driver_id}"]}


class StorageUnavailable(Exception):
    """The backing store could not be reached; nothing was written."""

    kind = STORAGE_UNAVAILABLE

    def __init__(self, message: str = "Storage unavailable"):
        super().__init__(message)
        self.messages = {"storage": [message]}


_CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, DisconnectionError, ConnectionError, TimeoutError)
_CONNECTIVITY_ERROR_NAMES = {error.__name__ for error in (*_CONNECTIVITY_ERRORS, StorageUnavailable)}


def _connectivity_failure(exc: BaseException) -> BaseException | None:
    """Find a connectivity error in the chain behind `exc`.

    Protean re-raises commit failures as `TransactionError` and adapter
    failures as `DatabaseError`, so the store's own exception sits further
    down the `__cause__`/`__context__` chain, in `original_exception`, or
    inside a group of handler failures.
    """
    seen = set()
    pending = [exc]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, (*_CONNECTIVITY_ERRORS, StorageUnavailable)):
            return current
        if isinstance(current, BaseExceptionGroup):
            pending.extend(current.exceptions)
        original = getattr(current, "original_exception", None)
        if isinstance(original, BaseException):
            pending.append(original)
        extra_info = getattr(current, "extra_info", None) or {}
        if extra_info.get("original_exception") in _CONNECTIVITY_ERROR_NAMES:
            return current
        pending.extend([current.__cause__, current.__context__])
    return None


@contextmanager
def storage_guard():
    """Surface connectivity failures of the backing store as `StorageUnavailable`."""
    try:
        yield
    except _CONNECTIVITY_ERRORS as exc:
        raise StorageUnavailable(str(exc) or "Storage unavailable") from exc
    except (TransactionError, DatabaseError) as exc:
        cause = _connectivity_failure(exc)
        if cause is None:
            raise
        raise StorageUnavailable(str(cause) or "Storage unavailable") from exc
