import fakeredis

from app.services.rate_limit import JobStartLimiter


class _Clock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _limiter(clock, max_starts=2, window_seconds=60):
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    return JobStartLimiter(client=client, max_starts=max_starts, window_seconds=window_seconds, clock=clock)


def test_starts_beyond_the_window_cap_must_wait():
    clock = _Clock()
    limiter = _limiter(clock)

    assert limiter.try_acquire() == 0.0
    clock.now += 10
    assert limiter.try_acquire() == 0.0
    clock.now += 5
    # The oldest start leaves the window 45s from now.
    assert limiter.try_acquire() == 45.0


def test_window_slides_as_old_starts_expire():
    clock = _Clock()
    limiter = _limiter(clock, max_starts=1, window_seconds=30)

    assert limiter.try_acquire() == 0.0
    assert limiter.try_acquire() > 0
    clock.now += 31
    assert limiter.try_acquire() == 0.0


def test_limit_is_shared_between_limiters_on_the_same_key():
    clock = _Clock()
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    first = JobStartLimiter(client=client, max_starts=1, window_seconds=60, clock=clock)
    second = JobStartLimiter(client=client, max_starts=1, window_seconds=60, clock=clock)

    assert first.try_acquire() == 0.0
    assert second.try_acquire() == 60.0
