"""Tests for the fixed-window rate limiter."""

import threading

from app.services.rate_limiter import RateLimiter

START = 1_700_000_000_000


def test_first_request_is_allowed():
    limiter = RateLimiter(max_requests=3, window_seconds=60)
    decision = limiter.allow("1.2.3.4", START)
    assert decision.allowed
    assert decision.retry_after is None


def test_hundredth_allowed_hundred_and_first_rejected():
    limiter = RateLimiter(max_requests=100, window_seconds=60)
    for i in range(100):
        assert limiter.allow("1.2.3.4", START + i).allowed

    decision = limiter.allow("1.2.3.4", START + 100)
    assert not decision.allowed
    assert decision.retry_after is not None
    assert decision.retry_after > 0


def test_retry_after_counts_down_with_the_window():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.allow("client", START)

    assert limiter.allow("client", START + 1).retry_after == 60
    assert limiter.allow("client", START + 30_000).retry_after == 30
    assert limiter.allow("client", START + 59_999).retry_after == 1


def test_window_resets_after_expiry():
    limiter = RateLimiter(max_requests=2, window_seconds=60)
    limiter.allow("client", START)
    limiter.allow("client", START)
    assert not limiter.allow("client", START).allowed

    assert limiter.allow("client", START + 60_001).allowed


def test_clients_are_limited_independently():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    assert limiter.allow("a", START).allowed
    assert not limiter.allow("a", START).allowed
    assert limiter.allow("b", START).allowed


def test_expired_windows_are_swept():
    limiter = RateLimiter(max_requests=5, window_seconds=60)
    for client in ("a", "b", "c"):
        limiter.allow(client, START)
    assert len(limiter) == 3

    limiter.allow("d", START + 61_000)
    assert len(limiter) == 1


def test_reset_forgets_windows():
    limiter = RateLimiter(max_requests=1, window_seconds=60)
    limiter.allow("a", START)
    limiter.reset()
    assert limiter.allow("a", START).allowed


def test_concurrent_callers_never_exceed_the_cap():
    limiter = RateLimiter(max_requests=50, window_seconds=60)
    results = []
    lock = threading.Lock()

    def worker():
        for _ in range(20):
            decision = limiter.allow("shared", START)
            with lock:
                results.append(decision.allowed)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 50
    assert len(results) == 200
