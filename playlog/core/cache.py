from __future__ import annotations

import copy
import json
import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Optional

import redis

from .config import CACHE_SWEEP_INTERVAL, REDIS_URL

logger = logging.getLogger(__name__)

# Redis connection pool health check interval (seconds)
HEALTH_CHECK_INTERVAL = 30


class MemoryCache:
    """Process-local TTL store and sliding-window rate limiter.

    Expired values and idle rate-limit windows are swept every
    ``sweep_interval`` operations so keys that are never read again do not
    accumulate.
    """

    def __init__(self, clock=time.monotonic, sweep_interval: int = CACHE_SWEEP_INTERVAL):
        self._clock = clock
        self._lock = threading.Lock()
        self._values: dict[str, tuple[float, Any]] = {}
        self._hits: dict[str, tuple[int, deque]] = {}
        self._sweep_interval = max(sweep_interval, 1)
        self._operations = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._values) + len(self._hits)

    def _tick(self, now: float) -> None:
        self._operations += 1
        if self._operations >= self._sweep_interval:
            self._operations = 0
            self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> None:
        for key in [k for k, (expires_at, _) in self._values.items() if expires_at <= now]:
            del self._values[key]
        for key in [k for k, (window, hits) in self._hits.items() if not hits or hits[-1] <= now - window]:
            del self._hits[key]

    def sweep(self) -> None:
        with self._lock:
            self._sweep_locked(self._clock())

    def get_json(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            self._tick(now)
            item = self._values.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= now:
                del self._values[key]
                return None
            return copy.deepcopy(value)

    def set_json(self, key: str, value: Any, ttl: int = 300) -> None:
        now = self._clock()
        with self._lock:
            self._tick(now)
            self._values[key] = (now + ttl, copy.deepcopy(value))

    def delete(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def check_rate_limit(self, key: str, limit: int, window_seconds: int = 60) -> bool:
        if limit <= 0:
            return True
        now = self._clock()
        with self._lock:
            self._tick(now)
            _, hits = self._hits.get(key, (window_seconds, None))
            if hits is None:
                hits = deque()
            while hits and hits[0] <= now - window_seconds:
                hits.popleft()
            if len(hits) >= limit:
                self._hits[key] = (window_seconds, hits)
                return False
            hits.append(now)
            self._hits[key] = (window_seconds, hits)
            return True

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self._hits.clear()
            self._operations = 0


class CacheClient:
    """Redis-backed cache when ``REDIS_URL`` is set, in-process otherwise.

    A Redis failure after connecting is logged and the call falls through
    to the in-process store, so a cache outage degrades to per-process
    caching instead of failing requests.
    """

    def __init__(
        self,
        url: str = REDIS_URL,
        memory: Optional[MemoryCache] = None,
        redis_factory: Callable[..., redis.Redis] = redis.Redis.from_url,
    ):
        self.url = url
        self.memory = memory or MemoryCache()
        self._redis_factory = redis_factory
        self._redis: Optional[redis.Redis] = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    def connect(self) -> None:
        if not self.url or self._redis is not None:
            return
        client = self._redis_factory(
            self.url,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=HEALTH_CHECK_INTERVAL,
        )
        try:
            client.ping()
        except redis.RedisError as exc:
            logger.warning("Redis unavailable at %s, using in-process cache: %s", self.url, exc)
            client.close()
            return
        self._redis = client
        logger.info("Cache connected to Redis")

    def disconnect(self) -> None:
        if self._redis is None:
            return
        client, self._redis = self._redis, None
        client.close()

    def get_json(self, key: str) -> Optional[Any]:
        if self._redis is not None:
            try:
                raw = self._redis.get(key)
            except redis.RedisError as exc:
                logger.warning("Redis get failed for %s: %s", key, exc)
            else:
                return json.loads(raw) if raw is not None else None
        return self.memory.get_json(key)

    def set_json(self, key: str, value: Any, ttl: int = 300) -> None:
        if self._redis is not None:
            try:
                self._redis.setex(key, ttl, json.dumps(value))
                return
            except redis.RedisError as exc:
                logger.warning("Redis set failed for %s: %s", key, exc)
        self.memory.set_json(key, value, ttl=ttl)

    def delete(self, key: str) -> None:
        if self._redis is not None:
            try:
                self._redis.delete(key)
            except redis.RedisError as exc:
                logger.warning("Redis delete failed for %s: %s", key, exc)
        self.memory.delete(key)

    def check_rate_limit(self, key: str, limit: int, window_seconds: int = 60) -> bool:
        if limit <= 0:
            return True
        if self._redis is not None:
            counter = f"ratelimit:{key}"
            try:
                count = self._redis.incr(counter)
                if count == 1:
                    self._redis.expire(counter, window_seconds)
                return count <= limit
            except redis.RedisError as exc:
                logger.warning("Redis rate limit check failed for %s: %s", key, exc)
        return self.memory.check_rate_limit(key, limit, window_seconds)

    def clear(self) -> None:
        self.memory.clear()


cache_client = CacheClient()
