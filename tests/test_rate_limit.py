from perfectmatch.utils import rate_limit
from perfectmatch.utils.rate_limit import LoginRateLimiter, WindowRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_login_lockout_after_max_failures():
    clock = FakeClock()
    limiter = LoginRateLimiter(max_attempts=3, lockout_seconds=300, clock=clock)

    for _ in range(2):
        limiter.record_failure("A@Example.com")
    assert not limiter.is_locked("a@example.com")

    limiter.record_failure("a@example.com")
    assert limiter.is_locked("a@example.com")
    assert limiter.remaining_lockout("a@example.com") == 300

    clock.now += 301
    assert not limiter.is_locked("a@example.com")


def test_login_success_clears_failures():
    limiter = LoginRateLimiter(max_attempts=2, clock=FakeClock())
    limiter.record_failure("a@example.com")
    limiter.record_success("a@example.com")
    assert limiter.record_failure("a@example.com") == 1


def test_window_limiter_resets_after_window():
    clock = FakeClock()
    limiter = WindowRateLimiter(max_requests=2, window_seconds=60, clock=clock)

    assert limiter.allow("user-1")
    assert limiter.allow("user-1")
    assert not limiter.allow("user-1")
    assert limiter.allow("user-2")

    clock.now += 60
    assert limiter.allow("user-1")


def test_login_limiter_forgets_stale_failures(monkeypatch):
    monkeypatch.setattr(rate_limit, "PRUNE_THRESHOLD", 2)
    clock = FakeClock()
    limiter = LoginRateLimiter(max_attempts=5, lockout_seconds=300, clock=clock)

    limiter.record_failure("a@example.com")
    limiter.record_failure("b@example.com")
    clock.now += 301
    limiter.record_failure("c@example.com")

    assert set(limiter._attempts) == {"c@example.com"}
