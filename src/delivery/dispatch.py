"""Serialized command dispatch.

Every mutating command goes through `process()`, which holds a per-key
re-entrant lock for the whole unit of work (load, validate, write, commit) so
that concurrent callers touching the same order, driver account, discount key
or customer ledger are applied one after the other. Keys are acquired in the
order given; callers list them order -> driver -> discount -> customer.

Synchronous event handlers dispatch follow-up commands on the same thread
while the outer command still holds its locks; the locks are re-entrant for
that reason.

The locks live in this process only. API routes acquire them with a blocking
call from inside `async def` endpoints, so a contended key also holds up that
worker's event loop. Across processes (several API workers, or the Protean
engine running handlers under the production configuration) nothing here
serializes writes: conflicting commits are caught by Protean's optimistic
aggregate versioning and surface as `ExpectedVersionError`.
"""

import threading
from contextlib import ExitStack, contextmanager

import structlog
from protean.utils.globals import current_domain

from delivery.errors import storage_guard

logger = structlog.get_logger(__name__)

_registry_lock = threading.Lock()
_locks: dict[str, threading.RLock] = {}


def _lock_for(key: str) -> threading.RLock:
    with _registry_lock:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.RLock()
        return lock


@contextmanager
def serialized(*keys: str):
    """Hold the locks for `keys`, acquired in the order given."""
    with ExitStack() as stack:
        for key in keys:
            if key:
                stack.enter_context(_lock_for(key))
        yield


def order_key(order_id) -> str:
    return f"order:{order_id}"


def driver_key(driver_id) -> str:
    return f"driver:{driver_id}"


def discount_key(date, product_id) -> str:
    return f"discount:{date}|{product_id}"


def customer_key(customer_id) -> str:
    return f"customer:{customer_id}"


def process(command, *, lock: tuple[str, ...] = ()):
    """Process `command` synchronously while holding the `lock` keys."""
    with serialized(*lock):
        with storage_guard():
            logger.debug(
                "Dispatching command",
                command=command.__class__.__name__,
                lock=list(lock),
            )
            return current_domain.process(command, asynchronous=False)
