"""Resend tracker — remembers when each identifier last asked for a code."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ResendTracker:
    """In-memory cool-down table keyed by the normalized email.

    The OTP store itself happily reissues at any time; this tracker is
    the request layer's policy on top of it.  A cool-down of ``0``
    disables the check.
    """

    def __init__(
        self, cooldown_seconds: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._last_request: dict[str, float] = {}

    def retry_after(self, key: str) -> int:
        """Seconds left before *key* may request again (``0`` if allowed)."""
        if self._cooldown <= 0:
            return 0
        with self._lock:
            last = self._last_request.get(key)
            if last is None:
                return 0
            remaining = self._cooldown - (self._clock() - last)
            if remaining <= 0:
                self._last_request.pop(key, None)
                return 0
            return math.ceil(remaining)

    def record(self, key: str) -> None:
        """Mark *key* as having just requested a code."""
        if self._cooldown <= 0:
            return
        with self._lock:
            self._last_request[key] = self._clock()

    def forget(self, key: str) -> None:
        """Drop the cool-down for *key* (e.g. after a failed delivery)."""
        with self._lock:
            self._last_request.pop(key, None)
        logger.debug("Resend cool-down cleared for %s", key)

    @property
    def tracked_count(self) -> int:
        """Number of identifiers currently in cool-down (useful for monitoring)."""
        with self._lock:
            return len(self._last_request)
