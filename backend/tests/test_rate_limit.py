from tutordesk.utils.rate_limit import SlidingWindowLimiter


def test_limit_and_retry_after():
    limiter = SlidingWindowLimiter(max_requests=2, window_seconds=60)
    assert limiter.allow('1.2.3.4', now=0) == (True, 0)
    assert limiter.allow('1.2.3.4', now=1) == (True, 0)
    assert limiter.allow('1.2.3.4', now=2) == (False, 58)
    assert limiter.allow('1.2.3.4', now=61) == (True, 0)


def test_idle_clients_are_forgotten():
    limiter = SlidingWindowLimiter(max_requests=2, window_seconds=60)
    limiter.allow('a', now=0)
    limiter.allow('b', now=10)
    assert limiter.tracked_keys() == 2
    limiter.allow('c', now=75)
    assert limiter.tracked_keys() == 1
