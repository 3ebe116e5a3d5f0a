"""In-memory OTP store with expiry — backs the password-reset flow.

Holds at most one outstanding code per identifier.  Records expire
lazily (checked on every read) and are also removed by a timer at their
expiry instant.  Each issuance carries a generation number so a timer
scheduled for an older code can never remove a newer one.

The table lives in this process only.  Running several server instances
would need a shared store with per-key compare-and-swap instead.
"""

from __future__ import annotations

import asyncio
import enum
import itertools
import logging
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from flexify_auth.otp.generator import generate_code

logger = logging.getLogger(__name__)

# OTP validity period in seconds
OTP_TTL_SECONDS = 600  # 10 minutes

Scheduler = Callable[[float, Callable[[], Any]], Any]


def thread_timer(delay: float, callback: Callable[[], Any]) -> threading.Timer:
    """Run *callback* on a daemon timer thread."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


def schedule_expiry(delay: float, callback: Callable[[], Any]) -> Any:
    """Default scheduler: the running event loop if any, else a timer thread.

    Under the ASGI server every pending code is a single loop timer rather
    than a sleeping thread.  Callers outside a loop (scripts, worker
    threads) fall back to :func:`thread_timer`.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return thread_timer(delay, callback)
    return loop.call_later(delay, callback)


def normalize_identifier(identifier: str) -> str:
    """Canonical table key: surrounding whitespace stripped, lower-cased."""
    return identifier.strip().lower()


@dataclass(frozen=True)
class OTPRecord:
    """One outstanding code for one identifier."""

    identifier: str
    code: str
    issued_at: float
    expires_at: float
    generation: int

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class VerifyResult(enum.Enum):
    """Outcome of checking a candidate code (internal detail, logged only)."""

    VALID = "valid"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"


class OTPStore:
    """Thread-safe in-memory OTP store.

    Each entry maps ``identifier → OTPRecord``.  All access goes through
    the public methods; the table itself is never handed out.

    Parameters
    ----------
    ttl_seconds:
        Validity window of a freshly issued code.
    code_length:
        Number of digits per code.
    clock:
        Returns the current time in seconds.  Injectable for tests.
    scheduler:
        ``scheduler(delay, callback)`` runs *callback* after *delay*
        seconds and returns a handle with a ``cancel()`` method.
    """

    def __init__(
        self,
        ttl_seconds: float = OTP_TTL_SECONDS,
        code_length: int = 6,
        clock: Callable[[], float] = time.time,
        scheduler: Scheduler = schedule_expiry,
    ) -> None:
        self._ttl = ttl_seconds
        self._code_length = code_length
        self._clock = clock
        self._scheduler = scheduler
        self._lock = threading.Lock()
        self._records: dict[str, OTPRecord] = {}
        self._timers: dict[str, Any] = {}
        self._generations = itertools.count(1)

    # ── Lifecycle ────────────────────────────────────────

    def issue(self, identifier: str) -> str:
        """Generate, store and return a fresh code for *identifier*.

        Any previous code for the same identifier stops working at once.
        """
        key = normalize_identifier(identifier)
        code = generate_code(self._code_length)

        with self._lock:
            now = self._clock()
            record = OTPRecord(
                identifier=key,
                code=code,
                issued_at=now,
                expires_at=now + self._ttl,
                generation=next(self._generations),
            )
            replaced = key in self._records
            self._records[key] = record
            self._cancel_timer(key)
            self._timers[key] = self._scheduler(
                self._ttl, lambda: self.expire(key, record.generation)
            )

        logger.info(
            "OTP %s for %s (generation %d)",
            "reissued" if replaced else "issued",
            key,
            record.generation,
        )
        logger.debug("OTP for %s: %s", key, code)
        return code

    def check(self, identifier: str, candidate: str) -> VerifyResult:
        """Compare *candidate* against the stored code without consuming it."""
        key = normalize_identifier(identifier)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                result = VerifyResult.NOT_FOUND
            elif record.is_expired(self._clock()):
                # Expired — remove it
                self._remove(key)
                logger.info("OTP expired for %s", key)
                result = VerifyResult.NOT_FOUND
            elif secrets.compare_digest(
                candidate.encode("utf-8"), record.code.encode("utf-8")
            ):
                result = VerifyResult.VALID
            else:
                result = VerifyResult.MISMATCH

        logger.info("OTP check for %s: %s", key, result.value)
        return result

    def verify(self, identifier: str, candidate: str) -> bool:
        """Return ``True`` if *candidate* matches an unexpired stored code.

        A successful match leaves the record in place; call :meth:`clear`
        once the protected action has completed.
        """
        return self.check(identifier, candidate) is VerifyResult.VALID

    def clear(self, identifier: str) -> None:
        """Remove any code for *identifier*.  Clearing nothing is fine."""
        key = normalize_identifier(identifier)
        with self._lock:
            removed = self._remove(key)
        if removed:
            logger.info("OTP cleared for %s", key)

    def has_active(self, identifier: str) -> bool:
        """``True`` iff an unexpired code exists for *identifier*."""
        key = normalize_identifier(identifier)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return False
            if record.is_expired(self._clock()):
                self._remove(key)
                logger.info("OTP expired for %s", key)
                return False
            return True

    def expire(self, identifier: str, generation: int) -> bool:
        """Scheduled removal: drop the record only if it is still *generation*.

        Returns ``True`` when a record was removed.
        """
        key = normalize_identifier(identifier)
        with self._lock:
            record = self._records.get(key)
            if record is None or record.generation != generation:
                return False
            self._records.pop(key, None)
            self._timers.pop(key, None)
        logger.info("OTP expired for %s", key)
        return True

    def shutdown(self) -> None:
        """Cancel every pending expiry timer (records are left as they are)."""
        with self._lock:
            for key in list(self._timers):
                self._cancel_timer(key)

    @property
    def active_count(self) -> int:
        """Number of stored records, expired-but-unswept ones included."""
        with self._lock:
            return len(self._records)

    # ── Private helpers (caller holds the lock) ──────────

    def _remove(self, key: str) -> bool:
        self._cancel_timer(key)
        return self._records.pop(key, None) is not None

    def _cancel_timer(self, key: str) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
