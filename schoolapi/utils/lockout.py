"""Login failure tracking with temporary lockouts"""

from dataclasses import dataclass
import logging
import math
import time
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class LockoutRecord:
    """Failures for one identifier.

    Below the threshold the count lives for ``attempt_window`` seconds after
    the last failure; once locked, the record lives until ``locked_until``.
    """

    identifier: str
    attempt_window: float
    failure_count: int = 0
    last_failure_at: Optional[float] = None
    locked_until: Optional[float] = None

    def is_locked(self, now: float) -> bool:
        return self.locked_until is not None and self.locked_until > now

    def is_expired(self, now: float) -> bool:
        if self.locked_until is not None:
            return self.locked_until <= now
        if self.last_failure_at is None:
            return False
        return self.last_failure_at + self.attempt_window <= now


@dataclass(frozen=True)
class LockoutStatus:
    allowed: bool
    remaining_attempts: int
    locked_until: Optional[float] = None

    def retry_after(self, now: float) -> Optional[int]:
        if self.locked_until is None:
            return None
        return max(1, math.ceil(self.locked_until - now))


class LockoutTracker:
    """Escalates repeated authentication failures into a temporary lockout.

    This is advisory protection. It slows guessing against a single
    identifier; an attacker spreading attempts over many identifiers is not
    slowed by any one record.
    """

    def __init__(
        self,
        store,
        max_attempts: int = 5,
        lockout_duration: float = 1800,
        clock=time.time,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration
        self.clock = clock

    @staticmethod
    def normalize(identifier: str) -> str:
        return (identifier or "").strip().lower()

    def _status(self, record: Optional[LockoutRecord]) -> LockoutStatus:
        if record is None:
            return LockoutStatus(allowed=True, remaining_attempts=self.max_attempts)
        if record.locked_until is not None:
            return LockoutStatus(
                allowed=False, remaining_attempts=0, locked_until=record.locked_until
            )
        return LockoutStatus(
            allowed=True,
            remaining_attempts=max(0, self.max_attempts - record.failure_count),
        )

    def _current(self, key: str, now: float) -> Optional[LockoutRecord]:
        """Record for ``key``, dropped once expired. Call with lock held."""
        record = self.store.lockouts.get(key)
        if record is not None and record.is_expired(now):
            del self.store.lockouts[key]
            return None
        return record

    def check_status(
        self, identifier: str, now: Optional[float] = None
    ) -> LockoutStatus:
        now = self.clock() if now is None else now
        key = self.normalize(identifier)
        with self.store.lock:
            return self._status(self._current(key, now))

    def record_failure(
        self, identifier: str, now: Optional[float] = None
    ) -> LockoutStatus:
        now = self.clock() if now is None else now
        key = self.normalize(identifier)
        with self.store.lock:
            record = self._current(key, now)
            if record is not None and record.is_locked(now):
                return self._status(record)
            if record is None:
                record = LockoutRecord(
                    identifier=key, attempt_window=self.lockout_duration
                )
                self.store.lockouts[key] = record

            record.failure_count += 1
            record.last_failure_at = now
            if record.failure_count >= self.max_attempts:
                record.locked_until = now + self.lockout_duration
                logger.warning(
                    f"[LOCKOUT]: {key} locked after {record.failure_count} failures"
                )
            return self._status(record)

    def record_success(self, identifier: str) -> None:
        key = self.normalize(identifier)
        with self.store.lock:
            self.store.lockouts.pop(key, None)

    def active_lockouts(self, now: Optional[float] = None) -> list[LockoutRecord]:
        """Snapshot of the identifiers currently locked."""
        now = self.clock() if now is None else now
        with self.store.lock:
            return [
                LockoutRecord(**vars(r))
                for r in self.store.lockouts.values()
                if r.is_locked(now)
            ]
