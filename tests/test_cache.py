from unittest.mock import Mock

import redis

from playlog.core.cache import CacheClient, MemoryCache


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_values_expire_after_ttl():
    clock = Clock()
    cache = MemoryCache(clock=clock)
    cache.set_json("igdb:trending:20", [{"id": 1}], ttl=10)

    assert cache.get_json("igdb:trending:20") == [{"id": 1}]
    clock.now += 10
    assert cache.get_json("igdb:trending:20") is None


def test_cached_values_are_copies():
    cache = MemoryCache()
    cache.set_json("key", {"items": [1]})

    cache.get_json("key")["items"].append(2)

    assert cache.get_json("key") == {"items": [1]}


def test_rate_limit_uses_a_sliding_window():
    clock = Clock()
    cache = MemoryCache(clock=clock)

    assert cache.check_rate_limit("ip:GET:/x", 2, window_seconds=60)
    assert cache.check_rate_limit("ip:GET:/x", 2, window_seconds=60)
    assert not cache.check_rate_limit("ip:GET:/x", 2, window_seconds=60)
    assert cache.check_rate_limit("ip:GET:/y", 2, window_seconds=60)

    clock.now += 60
    assert cache.check_rate_limit("ip:GET:/x", 2, window_seconds=60)


def test_idle_rate_limit_windows_are_swept():
    clock = Clock()
    cache = MemoryCache(clock=clock, sweep_interval=500)

    for index in range(10_000):
        clock.now += 0.1
        cache.check_rate_limit(f"ip:GET:/games/{index}", 10, window_seconds=60)
    # at most one window of live keys plus those seen since the last sweep
    assert len(cache) <= 600 + 500

    clock.now += 61
    cache.check_rate_limit("ip:GET:/health", 10, window_seconds=60)
    cache.sweep()

    assert len(cache) == 1


def test_expired_values_are_swept_without_being_read():
    clock = Clock()
    cache = MemoryCache(clock=clock)
    for index in range(100):
        cache.set_json(f"igdb:search:{index}", [], ttl=10)

    clock.now += 10
    cache.sweep()

    assert len(cache) == 0


def _redis_cache(client):
    factory = Mock(return_value=client)
    cache = CacheClient(url="redis://cache:6379/0", redis_factory=factory)
    cache.connect()
    return cache, factory


def test_connect_builds_client_from_url():
    client = Mock(spec=redis.Redis)
    cache, factory = _redis_cache(client)

    factory.assert_called_once_with(
        "redis://cache:6379/0",
        encoding="utf-8",
        decode_responses=True,
        health_check_interval=30,
    )
    assert cache.connected

    cache.disconnect()
    client.close.assert_called_once()
    assert not cache.connected


def test_without_url_the_cache_stays_in_process():
    factory = Mock()
    cache = CacheClient(url="", redis_factory=factory)

    cache.connect()
    cache.set_json("key", {"a": 1})

    factory.assert_not_called()
    assert cache.get_json("key") == {"a": 1}


def test_unreachable_redis_falls_back_to_memory():
    client = Mock(spec=redis.Redis)
    client.ping.side_effect = redis.ConnectionError("refused")
    cache, _ = _redis_cache(client)

    assert not cache.connected
    client.close.assert_called_once()
    cache.set_json("key", [1])
    assert cache.get_json("key") == [1]


def test_json_values_round_trip_through_redis():
    client = Mock(spec=redis.Redis)
    cache, _ = _redis_cache(client)

    cache.set_json("igdb:trending:20", [{"id": 1}], ttl=600)
    client.setex.assert_called_once_with("igdb:trending:20", 600, '[{"id": 1}]')

    client.get.return_value = '[{"id": 1}]'
    assert cache.get_json("igdb:trending:20") == [{"id": 1}]
    client.get.return_value = None
    assert cache.get_json("missing") is None


def test_rate_limit_counts_in_redis():
    client = Mock(spec=redis.Redis)
    client.incr.side_effect = [1, 2, 3]
    cache, _ = _redis_cache(client)

    assert cache.check_rate_limit("ip:GET:/x", 2, window_seconds=60)
    assert cache.check_rate_limit("ip:GET:/x", 2, window_seconds=60)
    assert not cache.check_rate_limit("ip:GET:/x", 2, window_seconds=60)

    client.incr.assert_called_with("ratelimit:ip:GET:/x")
    client.expire.assert_called_once_with("ratelimit:ip:GET:/x", 60)


def test_redis_errors_degrade_to_memory():
    client = Mock(spec=redis.Redis)
    cache, _ = _redis_cache(client)
    client.setex.side_effect = redis.ConnectionError("gone")
    client.get.side_effect = redis.ConnectionError("gone")
    client.incr.side_effect = redis.ConnectionError("gone")

    cache.set_json("key", {"a": 1})

    assert cache.get_json("key") == {"a": 1}
    assert cache.check_rate_limit("ip:GET:/x", 1)
    assert not cache.check_rate_limit("ip:GET:/x", 1)
