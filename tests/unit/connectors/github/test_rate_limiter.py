"""Unit tests for the smoothed rate limiter, driven by a fake clock."""

import pytest

from ghpublish.connectors.github.rate_limiter import SmoothRateLimiter


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def _limiter(clock, rate: float) -> SmoothRateLimiter:
    return SmoothRateLimiter(rate, clock=clock, sleep=clock.sleep)


class TestSmoothRateLimiter:
    def test_first_permit_is_immediate(self, clock):
        limiter = _limiter(clock, 2.0)
        assert limiter.acquire() == 0.0
        assert clock.sleeps == []

    def test_back_to_back_permits_are_spaced(self, clock):
        limiter = _limiter(clock, 2.0)
        waits = [limiter.acquire() for _ in range(4)]
        assert waits == pytest.approx([0.0, 0.5, 0.5, 0.5])
        assert sum(clock.sleeps) == pytest.approx(1.5)

    def test_fallback_rate_spacing(self, clock):
        limiter = _limiter(clock, 20.0 / 60.0)
        limiter.acquire()
        assert limiter.acquire() == pytest.approx(3.0)

    def test_idle_time_is_banked_up_to_one_second(self, clock):
        limiter = _limiter(clock, 4.0)
        limiter.acquire()
        clock.now += 10.0  # idle; at most 4 permits are stored

        waits = [limiter.acquire() for _ in range(6)]

        assert waits[:5] == pytest.approx([0.0] * 5)
        assert waits[5] == pytest.approx(0.25)

    def test_multiple_permits(self, clock):
        limiter = _limiter(clock, 1.0)
        assert limiter.acquire(3) == 0.0
        assert limiter.acquire() == pytest.approx(3.0)

    def test_invalid_rate(self):
        with pytest.raises(ValueError):
            SmoothRateLimiter(0)

    def test_invalid_permits(self, clock):
        with pytest.raises(ValueError):
            _limiter(clock, 1.0).acquire(0)
