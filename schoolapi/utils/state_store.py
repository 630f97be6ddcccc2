"""In-process state for rate-limit windows and login lockouts"""

import logging
import threading

logger = logging.getLogger(__name__)


class MemoryStateStore:
    """Process-local tables shared by the rate limiter and the lockout tracker.

    Callers hold ``lock`` for the whole read-modify-write of a key, so two
    concurrent requests can never both pass on the same pre-increment count.
    Expired entries are swept lazily, at most once per ``sweep_interval``
    seconds, by whichever caller happens to hold the lock.
    """

    def __init__(self, sweep_interval: float = 60):
        self.lock = threading.Lock()
        self.windows = {}
        self.lockouts = {}
        self.sweep_interval = sweep_interval
        self._last_sweep = None

    def sweep(self, now: float) -> int:
        """Evict expired entries. Must be called with ``lock`` held."""
        last = self._last_sweep
        if last is not None and now - last < self.sweep_interval:
            return 0
        self._last_sweep = now

        stale_windows = [k for k, w in self.windows.items() if w.reset_at <= now]
        for key in stale_windows:
            del self.windows[key]

        stale_lockouts = [k for k, r in self.lockouts.items() if r.is_expired(now)]
        for key in stale_lockouts:
            del self.lockouts[key]

        evicted = len(stale_windows) + len(stale_lockouts)
        if evicted:
            logger.debug(f"Evicted {evicted} expired admission entries")
        return evicted

    def clear(self):
        with self.lock:
            self.windows.clear()
            self.lockouts.clear()
            self._last_sweep = None
