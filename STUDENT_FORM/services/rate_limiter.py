import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

logger = logging.getLogger(__name__)


class InMemoryCounterStore:
    """
    Per-identity event timestamps held in process memory.

    State is lost on restart and is not shared between instances. A
    multi-instance deployment needs a store with atomic increment-with-expiry
    behind the same three methods.
    """

    def __init__(self, sweep_every: int = 1000):
        self._events: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._sweep_every = sweep_every
        self._calls = 0

    def evict_and_count(self, identity: str, window_start: float) -> int:
        with self._lock:
            self._calls += 1
            if self._calls >= self._sweep_every:
                self._sweep(window_start)
            events = self._events.get(identity)
            if events is None:
                return 0
            while events and events[0] <= window_start:
                events.popleft()
            if not events:
                del self._events[identity]
                return 0
            return len(events)

    def record(self, identity: str, moment: float) -> None:
        with self._lock:
            self._events.setdefault(identity, deque()).append(moment)

    def clear(self, identity: str) -> None:
        with self._lock:
            self._events.pop(identity, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def _sweep(self, window_start: float) -> None:
        # drop identities whose newest event has left the window; caller holds the lock
        stale = [identity for identity, events in self._events.items() if not events or events[-1] <= window_start]
        for identity in stale:
            del self._events[identity]
        self._calls = 0
        if stale:
            logger.debug(f"Swept {len(stale)} idle identities")


class RateLimiter:

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        store: Optional[InMemoryCounterStore] = None,
        clock: Callable[[], float] = time.time,
        name: str = "default",
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.name = name
        self._store = store if store is not None else InMemoryCounterStore()
        self._clock = clock
        logger.info(f"RateLimiter[{name}] initialized: {max_requests} per {window_seconds}s")

    @property
    def retry_after(self) -> int:
        return self.window_seconds

    def allow(self, identity: str) -> bool:
        # a denied attempt is not recorded
        now = self._clock()
        count = self._store.evict_and_count(identity, now - self.window_seconds)
        if count >= self.max_requests:
            logger.warning(f"RateLimiter[{self.name}] denied {identity} ({count}/{self.max_requests})")
            return False
        self._store.record(identity, now)
        return True

    def reset(self, identity: str) -> None:
        self._store.clear(identity)
