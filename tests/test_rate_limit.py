"""Tests for the request rate limiters."""

from unittest.mock import MagicMock

from app.utils.rate_limit import MemoryRateLimiter, RedisRateLimiter, get_client_ip


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestMemoryRateLimiter:
    def test_allows_up_to_limit(self):
        limiter = MemoryRateLimiter(clock=FakeClock())
        results = [limiter.hit("checkout:1.2.3.4", limit=3, window_seconds=60) for _ in range(4)]

        assert [r.success for r in results] == [True, True, True, False]
        assert [r.remaining for r in results] == [2, 1, 0, 0]

    def test_window_resets(self):
        clock = FakeClock()
        limiter = MemoryRateLimiter(clock=clock)
        for _ in range(3):
            limiter.hit("k", limit=2, window_seconds=60)

        clock.now += 61
        result = limiter.hit("k", limit=2, window_seconds=60)

        assert result.success
        assert result.remaining == 1

    def test_keys_are_independent(self):
        limiter = MemoryRateLimiter(clock=FakeClock())
        limiter.hit("a", limit=1)
        assert limiter.hit("b", limit=1).success

    def test_expired_entries_are_swept(self):
        clock = FakeClock()
        limiter = MemoryRateLimiter(clock=clock)
        limiter.hit("a", limit=1, window_seconds=10)
        limiter.hit("b", limit=1, window_seconds=10)

        clock.now += 120
        limiter.hit("c", limit=1, window_seconds=10)

        assert len(limiter) == 1


class TestRedisRateLimiter:
    def _client(self, count, ttl_ms=60000):
        client = MagicMock()
        pipe = client.pipeline.return_value
        pipe.execute.return_value = [count, True, ttl_ms]
        return client

    def test_under_limit(self):
        limiter = RedisRateLimiter(client=self._client(count=2))
        result = limiter.hit("checkout:ip", limit=5, window_seconds=60)
        assert result.success
        assert result.remaining == 3

    def test_over_limit(self):
        limiter = RedisRateLimiter(client=self._client(count=6))
        assert not limiter.hit("checkout:ip", limit=5, window_seconds=60).success

    def test_uses_prefixed_key_and_window(self):
        client = self._client(count=1)
        RedisRateLimiter(client=client).hit("checkout:ip", limit=5, window_seconds=30)

        pipe = client.pipeline.return_value
        pipe.incr.assert_called_once_with("ratelimit:checkout:ip")
        pipe.pexpire.assert_called_once_with("ratelimit:checkout:ip", 30000, nx=True)


class TestClientIp:
    def _request(self, headers):
        request = MagicMock()
        request.headers = headers
        return request

    def test_first_forwarded_address(self):
        assert get_client_ip(self._request({"x-forwarded-for": "1.1.1.1, 10.0.0.1"})) == "1.1.1.1"

    def test_real_ip_fallback(self):
        assert get_client_ip(self._request({"x-real-ip": "2.2.2.2"})) == "2.2.2.2"

    def test_unknown(self):
        assert get_client_ip(self._request({})) == "unknown"
