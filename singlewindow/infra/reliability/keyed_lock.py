# =============================================================================
# File: singlewindow/infra/reliability/keyed_lock.py
# Description: In-process per-key locking for declarations and guarantees
#              Operations on the same key are strictly ordered, different
#              keys proceed in parallel
# =============================================================================

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterator, Optional

from singlewindow.common.exceptions.exceptions import SingleWindowError
from singlewindow.config.logging_config import get_logger
from singlewindow.infra.metrics.prometheus import lock_waits

logger = get_logger("singlewindow.keyed_lock")


class LockAcquisitionError(SingleWindowError):
    """Failed to acquire a per-key lock within the timeout"""
    reason_code = "LCK-001"

    def __init__(self, namespace: str, key: Hashable, timeout: float):
        super().__init__(
            f"Could not lock {namespace}:{key} within {timeout}s",
            check="lock_timeout",
            details={"namespace": namespace, "key": str(key)},
        )


@dataclass
class _Entry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0     # threads holding or waiting for the lock


class LockStats:
    """Counters of one KeyedLock, summarized by the service status log."""

    def __init__(self):
        self.acquisitions = 0
        self.timeouts = 0
        self.max_wait_ms = 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "acquisitions": self.acquisitions,
            "timeouts": self.timeouts,
            "max_wait_ms": round(self.max_wait_ms, 1),
        }


class KeyedLock:
    """
    Per-key mutual exclusion within one process.

    Locks are created on first use and dropped once nobody holds or waits
    for them, so the table stays as small as the set of busy keys.

    Usage:
        locks = KeyedLock("guarantee", timeout=5.0)
        with locks.hold(guarantee_id):
            ...
    """

    def __init__(self, namespace: str, timeout: Optional[float] = 5.0):
        self.namespace = namespace
        self.timeout = timeout
        self._stats = LockStats()
        self._entries: Dict[Hashable, _Entry] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, key: Hashable) -> _Entry:
        with self._registry_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1
            return entry

    def _checkin(self, key: Hashable, entry: _Entry) -> None:
        with self._registry_lock:
            entry.holders -= 1
            if entry.holders == 0:
                self._entries.pop(key, None)

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the lock for `key` for the duration of the block.

        Raises:
            LockAcquisitionError: when the lock is not obtained within the
                timeout (None waits forever)
        """
        timeout = self.timeout if timeout is None else timeout
        entry = self._checkout(key)
        start = time.monotonic()
        lock_waits.labels(namespace=self.namespace).inc()
        try:
            acquired = entry.lock.acquire() if timeout is None else entry.lock.acquire(timeout=timeout)
        finally:
            lock_waits.labels(namespace=self.namespace).dec()

        wait_ms = (time.monotonic() - start) * 1000
        with self._registry_lock:
            if acquired:
                self._stats.acquisitions += 1
                self._stats.max_wait_ms = max(self._stats.max_wait_ms, wait_ms)
            else:
                self._stats.timeouts += 1
        if not acquired:
            self._checkin(key, entry)
            logger.warning(f"Lock timeout on {self.namespace}:{key} after {wait_ms:.0f}ms")
            raise LockAcquisitionError(self.namespace, key, timeout)

        try:
            yield
        finally:
            entry.lock.release()
            self._checkin(key, entry)

    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._registry_lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Acquisitions, timeouts, longest wait and currently busy keys."""
        with self._registry_lock:
            return {**self._stats.as_dict(), "active_keys": len(self._entries)}


# =============================================================================
# EOF
# =============================================================================
