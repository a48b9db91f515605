"""
In-process rate limiting.

LoginRateLimiter locks an email after too many consecutive failed logins.
WindowRateLimiter caps how many actions a key may take per fixed window
(used for the one-off email endpoint).

Both are per-process; a multi-worker deployment gets one limiter per worker.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

# Tracked keys before stale entries are swept
PRUNE_THRESHOLD = 1000


@dataclass
class _Attempts:
    count: int
    last_failure: float


class LoginRateLimiter:
    def __init__(
        self,
        max_attempts: int = 5,
        lockout_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        self._attempts: Dict[str, _Attempts] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    def remaining_lockout(self, email: str) -> float:
        """Seconds until the email may try again (0 if not locked)."""
        with self._lock:
            record = self._attempts.get(self._key(email))
            if not record or record.count < self.max_attempts:
                return 0.0
            remaining = self.lockout_seconds - (self._clock() - record.last_failure)
            if remaining <= 0:
                del self._attempts[self._key(email)]
                return 0.0
            return remaining

    def is_locked(self, email: str) -> bool:
        return self.remaining_lockout(email) > 0

    def record_failure(self, email: str) -> int:
        with self._lock:
            key = self._key(email)
            record = self._attempts.get(key)
            now = self._clock()
            if record and now - record.last_failure >= self.lockout_seconds:
                record = None
            count = record.count + 1 if record else 1
            self._attempts[key] = _Attempts(count=count, last_failure=now)

            if len(self._attempts) > PRUNE_THRESHOLD:
                self._attempts = {
                    k: v for k, v in self._attempts.items() if now - v.last_failure < self.lockout_seconds
                }
            return count

    def record_success(self, email: str) -> None:
        with self._lock:
            self._attempts.pop(self._key(email), None)

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()


class WindowRateLimiter:
    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, list] = {}
        self._lock = threading.Lock()

    def allow(self, key: str) -> bool:
        """Count one request for key; False once the window is full."""
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or window[1] <= now:
                window = [0, now + self.window_seconds]
            window[0] += 1
            self._windows[key] = window

            # Drop expired windows so the dict doesn't grow unbounded
            if len(self._windows) > PRUNE_THRESHOLD:
                self._windows = {k: v for k, v in self._windows.items() if v[1] > now}

            return window[0] <= self.max_requests

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
