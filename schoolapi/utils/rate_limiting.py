"""Fixed-window rate limiting for the request admission pipeline"""

from dataclasses import dataclass
import logging
import math
import time
from typing import Optional

from limits import RateLimitItem, parse

logger = logging.getLogger(__name__)

GENERAL_SCOPE = "general"
SENSITIVE_SCOPE = "sensitive"


@dataclass
class RateWindow:
    """Request volume for one (client, scope) pair within one window."""

    scope_key: str
    count: int
    window_start: float
    reset_at: float
    locked_until: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return now >= self.reset_at

    def serialize(self):
        return {
            "key": self.scope_key,
            "count": self.count,
            "window_start": self.window_start,
            "reset_at": self.reset_at,
            "locked_until": self.locked_until,
        }


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    limit: int
    reset_at: float
    retry_after: int = 0

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


@dataclass(frozen=True)
class ScopeLimit:
    """Threshold for one scope, e.g. 100 requests per 900 seconds."""

    max_requests: int
    window_seconds: int

    @classmethod
    def from_item(cls, item: RateLimitItem):
        return cls(max_requests=item.amount, window_seconds=item.get_expiry())

    @classmethod
    def parse(cls, definition: str):
        """Parse a rate string such as ``"100 per 15 minutes"``."""
        return cls.from_item(parse(definition))


class RateLimiter:
    """Per-client, per-scope fixed-window counters.

    Window boundaries are fixed, not sliding: a burst straddling a boundary can
    be admitted up to twice the scope maximum.
    """

    def __init__(self, store, limits: dict[str, ScopeLimit], clock=time.time):
        self.store = store
        self.limits = dict(limits)
        self.clock = clock

    @staticmethod
    def scope_key(client_key: str, scope: str) -> str:
        return f"{client_key}:{scope}"

    def check_and_consume(
        self, client_key: str, scope: str, now: Optional[float] = None
    ) -> RateLimitResult:
        if scope not in self.limits:
            raise KeyError(f"Unknown rate limit scope: {scope}")
        limit = self.limits[scope]
        now = self.clock() if now is None else now
        key = self.scope_key(client_key, scope)

        with self.store.lock:
            self.store.sweep(now)
            window = self.store.windows.get(key)

            if window is None or window.is_expired(now):
                window = RateWindow(
                    scope_key=key,
                    count=1,
                    window_start=now,
                    reset_at=now + limit.window_seconds,
                )
                self.store.windows[key] = window
            elif window.count >= limit.max_requests:
                window.locked_until = window.reset_at
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    limit=limit.max_requests,
                    reset_at=window.reset_at,
                    retry_after=max(1, math.ceil(window.reset_at - now)),
                )
            else:
                window.count += 1

            if window.count >= limit.max_requests:
                window.locked_until = window.reset_at

            return RateLimitResult(
                allowed=True,
                remaining=limit.max_requests - window.count,
                limit=limit.max_requests,
                reset_at=window.reset_at,
            )

    def active_windows(self, now: Optional[float] = None) -> list[RateWindow]:
        """Snapshot of the windows that are still open."""
        now = self.clock() if now is None else now
        with self.store.lock:
            return [
                RateWindow(**vars(w))
                for w in self.store.windows.values()
                if not w.is_expired(now)
            ]

    def reset(self, client_key: Optional[str] = None) -> int:
        """Drop the windows of one client, or every window when no key is given."""
        with self.store.lock:
            if client_key is None:
                removed = len(self.store.windows)
                self.store.windows.clear()
            else:
                prefix = f"{client_key}:"
                keys = [k for k in self.store.windows if k.startswith(prefix)]
                for key in keys:
                    del self.store.windows[key]
                removed = len(keys)
        logger.info(f"Reset {removed} rate limit windows for {client_key or 'all'}")
        return removed

