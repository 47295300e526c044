"""Sliding-window throttle for credential checks, keyed by request source."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from typing import Callable

from otpdesk.errors import RateLimitedError

logger = logging.getLogger(__name__)


class LoginThrottle:
    """
    Deny a source once it has ``max_failures`` unsuccessful attempts within
    the last ``window_seconds``.

    An attempt is counted when it starts (``acquire``), and forgotten only
    when it succeeds (``reset``). Check and count happen under one lock, so
    a burst of concurrent attempts cannot slip past the limit.
    """

    def __init__(
        self,
        max_failures: int = 5,
        window_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_failures = max(1, int(max_failures))
        self.window = float(window_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._attempts: dict[str, deque[float]] = {}

    def _prune(self, key: str, now: float) -> deque[float] | None:
        q = self._attempts.get(key)
        if q is None:
            return None
        while q and now - q[0] >= self.window:
            q.popleft()
        if not q:
            del self._attempts[key]
            return None
        return q

    def acquire(self, source: str) -> None:
        """Count an attempt from ``source`` or raise RateLimitedError."""
        now = self._clock()
        with self._lock:
            q = self._prune(source, now)
            if q is not None and len(q) >= self.max_failures:
                retry_after = math.ceil(self.window - (now - q[0]))
                logger.warning("Login throttled for %s (retry in %ds)", source, retry_after)
                raise RateLimitedError(retry_after=retry_after)
            self._attempts.setdefault(source, deque()).append(now)

    def reset(self, source: str) -> None:
        """Forget the attempts of ``source`` after a successful login."""
        with self._lock:
            self._attempts.pop(source, None)

    def failures(self, source: str) -> int:
        with self._lock:
            q = self._prune(source, self._clock())
            return len(q) if q is not None else 0

    def tracked_sources(self) -> int:
        with self._lock:
            return len(self._attempts)

    def purge(self) -> int:
        """Drop sources with no attempts left in the window; returns how many."""
        now = self._clock()
        with self._lock:
            before = len(self._attempts)
            for key in list(self._attempts):
                self._prune(key, now)
            return before - len(self._attempts)
