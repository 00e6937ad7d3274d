"""
In-memory fixed-window rate limiter keyed by client identifier.

Each client key gets a {count, reset_at} entry:

  - no entry                       -> create {1, now + window}, admit
  - now > reset_at                 -> reset to {1, now + window}, admit
  - count < max_requests           -> count += 1, admit
  - count >= max_requests          -> reject, entry untouched

The table is swept of expired entries at most once per window, and never
holds more than max_entries keys: when full, expired entries are dropped
first, then the entry closest to its reset time.

This is a best-effort guard for a single process. Two workers keep two
independent tables.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of RateLimiter.admit()."""

    admitted: bool
    retry_after_seconds: int = 0


class RateLimiter:
    """
    Fixed-window counter shared by every request in the process.

    All reads and writes of the entry table happen under one lock, so
    concurrent requests from the same client can never both observe
    count == max_requests - 1 and both be admitted.

    Args:
        window_seconds: Length of each client's window.
        max_requests:   Requests admitted per window.
        max_entries:    Upper bound on tracked client keys.
        clock:          Monotonic time source (seconds); injectable for tests.
    """

    def __init__(
        self,
        window_seconds: float,
        max_requests: int,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._next_sweep_at = clock() + window_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_entry(self, client_key: str) -> Optional[RateLimitEntry]:
        """Return a copy of the entry for client_key, if any."""
        with self._lock:
            entry = self._entries.get(client_key)
            if entry is None:
                return None
            return RateLimitEntry(count=entry.count, reset_at=entry.reset_at)

    def admit(self, client_key: str, now: Optional[float] = None) -> RateLimitDecision:
        """Count one request from client_key and decide whether it may proceed."""
        if now is None:
            now = self._clock()

        with self._lock:
            if now >= self._next_sweep_at:
                self._sweep_expired(now)
                self._next_sweep_at = now + self.window_seconds

            entry = self._entries.get(client_key)

            if entry is None or now > entry.reset_at:
                if entry is None and len(self._entries) >= self.max_entries:
                    self._make_room(now)
                self._entries[client_key] = RateLimitEntry(
                    count=1, reset_at=now + self.window_seconds
                )
                return RateLimitDecision(admitted=True)

            if entry.count >= self.max_requests:
                retry_after = max(1, math.ceil(entry.reset_at - now))
                return RateLimitDecision(admitted=False, retry_after_seconds=retry_after)

            entry.count += 1
            return RateLimitDecision(admitted=True)

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop every expired entry now. Returns how many were removed."""
        if now is None:
            now = self._clock()
        with self._lock:
            return self._sweep_expired(now)

    # Callers below must hold self._lock.

    def _sweep_expired(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Rate limiter swept {len(expired)} expired entries")
        return len(expired)

    def _make_room(self, now: float) -> None:
        if self._sweep_expired(now):
            return
        oldest_key = min(self._entries, key=lambda k: self._entries[k].reset_at)
        del self._entries[oldest_key]
        logger.warning(
            f"Rate limiter table full ({self.max_entries} entries); "
            f"evicted the oldest client entry"
        )
