# =============================================================================
# POLYMARKET LENDING - TRANSACTION PRIMITIVES
# =============================================================================
#
# EXECUTION MODEL:
# - Single-threaded, every operation runs to completion
# - Any failure discards ALL state changes made by the operation
# - Operations that transfer value to an external party are guarded by a
#   single-entry reentrancy guard (one in-flight guarded call per component)
#
# Transaction records the prior value of every store entry it is asked to
# track, plus a savepoint of every collaborator it enlists, and restores
# them if the block raises.
#
# =============================================================================

import copy
import functools
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Hashable, List

from .exceptions import ReentrancyError

logger = logging.getLogger(__name__)

_MISSING = object()


class ReentrancyGuard:
    """
    Single-entry guard.

    A non-blocking lock acquire: the second concurrent (or nested) entry
    fails immediately instead of waiting.
    """

    def __init__(self, owner: str):
        self._owner = owner
        self._lock = threading.Lock()

    @property
    def entered(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def enter(self, operation: str):
        if not self._lock.acquire(blocking=False):
            logger.error(f"Reentrancy blocked: {self._owner}.{operation}")
            raise ReentrancyError(f"{self._owner}.{operation}")
        try:
            yield
        finally:
            self._lock.release()


def non_reentrant(method):
    """Wrap a method in the owning instance's `_reentrancy_guard`."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._reentrancy_guard.enter(method.__name__):
            return method(self, *args, **kwargs)

    return wrapper


class Transaction:
    """
    All-or-nothing scope over keyed stores and enlisted collaborators.

    Usage:
        with Transaction() as tx:
            tx.track(self._positions, key)
            tx.enlist(pool)
            self._positions[key].debt_amount -= repay
            pool.receive_repayment(...)   # may raise -> entry and pool restored

    An enlisted resource exposes `savepoint()` and `restore(savepoint)`.
    """

    def __init__(self):
        self._journal: List[Callable[[], None]] = []

    def track(self, store: Dict[Hashable, Any], key: Hashable) -> None:
        """Remember the current value of store[key] (or its absence)."""
        previous = copy.deepcopy(store.get(key, _MISSING))
        self._journal.append(functools.partial(_restore_entry, store, key, previous))

    def enlist(self, resource: Any) -> None:
        """Take a savepoint of `resource`; rollback restores it."""
        savepoint = resource.savepoint()
        self._journal.append(functools.partial(resource.restore, savepoint))

    def rollback(self) -> None:
        """Undo journaled entries in reverse order."""
        for undo in reversed(self._journal):
            undo()
        self._journal.clear()

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.warning(f"Rolling back {len(self._journal)} entries after {exc_type.__name__}")
            self.rollback()
        else:
            self._journal.clear()
        return False


def _restore_entry(store: Dict[Hashable, Any], key: Hashable, previous: Any) -> None:
    if previous is _MISSING:
        store.pop(key, None)
    else:
        store[key] = previous
