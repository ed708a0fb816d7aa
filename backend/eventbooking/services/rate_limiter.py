"""
Per-identity sliding-window rate limiter for booking requests.

Each identity owns a deque of admission timestamps guarded by its own lock.
A registry lock is only taken to create a missing history, so callers with
different identities never contend with each other.

On every call, under the identity's lock:
  1. Drop timestamps older than now - window
  2. If the remaining count >= max_requests, reject (nothing recorded)
  3. Otherwise record now and admit

Every `purge_every` admissions the limiter drops identities whose newest
timestamp has left the window, so the map tracks recent callers only.

State is process-local and ephemeral. It throttles request rate; the
inventory CAS is what prevents overselling.
"""

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

from eventbooking.core.exceptions import RateLimitExceededError
from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import record_admission
from eventbooking.services.interfaces.admission import AdmissionStrategy

logger = get_logger(__name__)


class _History:
    __slots__ = ("lock", "timestamps")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.timestamps: Deque[float] = deque()


class SlidingWindowRateLimiter(AdmissionStrategy):

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        purge_every: int = 1000,
    ):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if purge_every <= 0:
            raise ValueError("purge_every must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.purge_every = purge_every
        self._clock = clock
        self._histories: Dict[str, _History] = {}
        self._registry_lock = threading.Lock()
        self._admissions = 0

    def _history_for(self, identity: str) -> _History:
        history = self._histories.get(identity)
        if history is None:
            with self._registry_lock:
                history = self._histories.setdefault(identity, _History())
        return history

    def admit(self, identity: str) -> None:
        while True:
            history = self._history_for(identity)
            with history.lock:
                # purge_idle may have dropped this history after the lookup
                if self._histories.get(identity) is not history:
                    continue

                now = self._clock()
                cutoff = now - self.window_seconds
                timestamps = history.timestamps
                while timestamps and timestamps[0] < cutoff:
                    timestamps.popleft()

                if len(timestamps) >= self.max_requests:
                    record_admission(False)
                    logger.warning(
                        "rate_limit_exceeded",
                        identity=identity,
                        limit=self.max_requests,
                        window_seconds=self.window_seconds,
                    )
                    raise RateLimitExceededError(self.max_requests, self.window_seconds)

                timestamps.append(now)
                break

        record_admission(True)

        # must run outside the identity lock: purge_idle takes the registry lock first
        with self._registry_lock:
            self._admissions += 1
            due = self._admissions % self.purge_every == 0
        if due:
            purged = self.purge_idle()
            logger.debug("rate_limit_histories_purged", purged=purged, tracked=len(self._histories))

    def purge_idle(self) -> int:
        """Forget identities whose whole history has aged out of the window."""
        cutoff = self._clock() - self.window_seconds
        purged = 0
        with self._registry_lock:
            for identity in list(self._histories):
                history = self._histories[identity]
                with history.lock:
                    if not history.timestamps or history.timestamps[-1] < cutoff:
                        del self._histories[identity]
                        purged += 1
        return purged

    def reset(self) -> None:
        with self._registry_lock:
            self._histories.clear()
            self._admissions = 0
