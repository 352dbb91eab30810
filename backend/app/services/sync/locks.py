"""Per-integration re-entrant locks: scheduled sync and webhook handling for one integration never interleave."""
import threading
from contextlib import contextmanager
from typing import Iterator

_locks: dict[int, threading.RLock] = {}
_registry_lock = threading.Lock()


def _lock_for(integration_id: int) -> threading.RLock:
    with _registry_lock:
        lock = _locks.get(integration_id)
        if lock is None:
            lock = threading.RLock()
            _locks[integration_id] = lock
        return lock


@contextmanager
def integration_lock(integration_id: int) -> Iterator[None]:
    lock = _lock_for(integration_id)
    with lock:
        yield
