"""
Store for pending authorization flows (state -> code_verifier).
Used between /auth/login and /auth/callback. Each state can be taken exactly once;
entries older than FLOW_TTL are treated as missing and swept.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from auth_gateway.config import FLOW_TTL

logger = logging.getLogger(__name__)


@dataclass
class PendingFlow:
    code_verifier: str
    created_at: float

    def expired(self, now: float, ttl: float = FLOW_TTL) -> bool:
        return (now - self.created_at) > ttl


class FlowStore(Protocol):
    """Key-value contract with atomic take-and-delete. A shared store can replace the in-memory one."""

    def put(self, state: str, code_verifier: str) -> None: ...

    def take(self, state: str) -> PendingFlow | None: ...

    def sweep_expired(self) -> int: ...


class InMemoryFlowStore:
    """
    Single-process store. One lock serialises put/take/sweep so a state is never
    consumed twice or swept while being taken. Lost on restart (in-flight logins fail).
    """

    def __init__(self, ttl: float = FLOW_TTL, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._pending: dict[str, PendingFlow] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def put(self, state: str, code_verifier: str) -> None:
        now = self._clock()
        with self._lock:
            self._pending[state] = PendingFlow(code_verifier=code_verifier, created_at=now)
            self._sweep_locked(now)

    def take(self, state: str) -> PendingFlow | None:
        """Destructive read: returns the flow once, then None for the same state."""
        now = self._clock()
        with self._lock:
            flow = self._pending.pop(state, None)
        if flow is None or flow.expired(now, self._ttl):
            return None
        return flow

    def sweep_expired(self) -> int:
        now = self._clock()
        with self._lock:
            removed = self._sweep_locked(now)
        if removed:
            logger.debug("Swept %d expired pending authorization(s)", removed)
        return removed

    def _sweep_locked(self, now: float) -> int:
        expired = [s for s, f in self._pending.items() if f.expired(now, self._ttl)]
        for s in expired:
            del self._pending[s]
        return len(expired)


_store: FlowStore = InMemoryFlowStore()


def get_flow_store() -> FlowStore:
    return _store


def set_flow_store(store: FlowStore) -> None:
    """Swap the process-wide store (e.g. for a shared external store or in tests)."""
    global _store
    _store = store


def store_flow(state: str, code_verifier: str) -> None:
    _store.put(state, code_verifier)


def take_flow(state: str) -> PendingFlow | None:
    return _store.take(state)


def sweep_expired() -> int:
    return _store.sweep_expired()
