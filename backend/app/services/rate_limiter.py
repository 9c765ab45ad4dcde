"""In-process fixed-window rate limiter for batch endpoints.

Counters live in this process only: every deployment instance keeps its
own windows, so the effective limit grows with the number of instances.
"""

import math
import threading
from dataclasses import dataclass


@dataclass
class RateLimitWindow:
    """Requests seen from one client since ``window_start`` (epoch ms)."""

    window_start: int
    request_count: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int | None = None


class RateLimiter:
    """Caps batch requests per client key within a fixed window."""

    def __init__(self, max_requests: int = 100, window_seconds: int = 60):
        self.max_requests = max_requests
        self.window_ms = window_seconds * 1000
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def allow(self, client_key: str, now_ms: int) -> RateLimitDecision:
        """Count one request for ``client_key`` and decide whether it may proceed."""
        with self._lock:
            self._sweep(now_ms)

            window = self._windows.get(client_key)
            if window is None:
                self._windows[client_key] = RateLimitWindow(window_start=now_ms, request_count=1)
                return RateLimitDecision(allowed=True)

            elapsed = now_ms - window.window_start
            if elapsed > self.window_ms:
                window.window_start = now_ms
                window.request_count = 1
                return RateLimitDecision(allowed=True)

            window.request_count += 1
            if window.request_count > self.max_requests:
                retry_after = math.ceil((self.window_ms - elapsed) / 1000)
                return RateLimitDecision(allowed=False, retry_after=max(1, retry_after))
            return RateLimitDecision(allowed=True)

    def _sweep(self, now_ms: int) -> None:
        expired = [
            key
            for key, window in self._windows.items()
            if now_ms - window.window_start > self.window_ms
        ]
        for key in expired:
            del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)

    def reset(self) -> None:
        """Forget all windows."""
        with self._lock:
            self._windows.clear()
