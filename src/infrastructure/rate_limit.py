"""Counter storage for fixed-window rate limiting."""

import math
import time
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from src.infrastructure.constants import RATE_LIMIT_PRUNE_THRESHOLD


@runtime_checkable
class RateLimitStore(Protocol):
    """Pluggable storage interface for rate limit counters.

    ``increment`` returns the hit count inside the current window (this hit
    included) and the whole seconds until the window resets.
    """

    async def increment(self, key: str, window_seconds: int) -> tuple[int, int]: ...
    async def reset(self, key: str) -> None: ...


class MemoryRateLimitStore:
    """In-memory fixed-window counters. Single-process only.

    A window opens on the first hit for a key and lasts ``window_seconds``;
    the next hit after that opens a new window with a count of one.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: dict[str, tuple[int, float]] = {}

    async def increment(self, key: str, window_seconds: int) -> tuple[int, int]:
        now = self._clock()
        if len(self._windows) >= RATE_LIMIT_PRUNE_THRESHOLD:
            self._prune(now, window_seconds)

        count, started = self._windows.get(key, (0, now))
        if now - started >= window_seconds:
            count, started = 0, now
        count += 1
        self._windows[key] = (count, started)

        reset_in = math.ceil(started + window_seconds - now)
        return count, max(reset_in, 1)

    async def reset(self, key: str) -> None:
        self._windows.pop(key, None)

    def _prune(self, now: float, window_seconds: int) -> None:
        expired = [
            key
            for key, (_, started) in self._windows.items()
            if now - started >= window_seconds
        ]
        for key in expired:
            del self._windows[key]
