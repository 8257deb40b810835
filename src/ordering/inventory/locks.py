"""Per-product stock locks.

Stock counts are the only resource that needs mutual exclusion across
requests. A caller holds the locks of every product it is about to reserve
or restore for the whole Unit of Work, including its commit, so no other
transaction can read a stock value that is about to change.

Locks are re-entrant per thread, always taken in sorted product-id order
(so two checkouts over overlapping products cannot deadlock), and waited on
for a bounded time only: a timeout surfaces as ``ConcurrencyConflict``.
"""

import os
import threading
from collections import Counter
from contextlib import contextmanager

import structlog

from ordering.errors import ConcurrencyConflict

logger = structlog.get_logger(__name__)

DEFAULT_LOCK_TIMEOUT = 5.0


class StockLocks:
    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.timeout = timeout
        self._registry_guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}
        self._local = threading.local()

    def _lock_for(self, product_id: str) -> threading.RLock:
        with self._registry_guard:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[product_id] = lock
            return lock

    def _held(self) -> Counter:
        held = getattr(self._local, "held", None)
        if held is None:
            held = Counter()
            self._local.held = held
        return held

    def is_held(self, product_id) -> bool:
        """True when the calling thread holds the lock for ``product_id``."""
        return self._held()[str(product_id)] > 0

    @contextmanager
    def hold(self, product_ids, timeout: float | None = None):
        """Hold the locks of all ``product_ids`` for the duration of the block."""
        timeout = self.timeout if timeout is None else timeout
        ordered = sorted({str(product_id) for product_id in product_ids})
        acquired = []
        try:
            for product_id in ordered:
                lock = self._lock_for(product_id)
                if not lock.acquire(timeout=timeout):
                    logger.warning(
                        "Timed out waiting for stock lock",
                        product_id=product_id,
                        timeout=timeout,
                    )
                    raise ConcurrencyConflict(
                        f"Stock for product {product_id} is busy, please retry",
                        product_ids=[product_id],
                    )
                acquired.append(product_id)
                self._held()[product_id] += 1
            yield ordered
        finally:
            held = self._held()
            for product_id in reversed(acquired):
                held[product_id] -= 1
                if held[product_id] <= 0:
                    del held[product_id]
                self._locks[product_id].release()


stock_locks = StockLocks(timeout=float(os.environ.get("STOCK_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT)))
