import redis
from cachetools import TTLCache
from .config import settings

# Process-local counters; each key lives for one TTL window.
_local_counters: TTLCache = TTLCache(maxsize=8192, ttl=settings.CACHE_TTL_SECONDS)

class CounterCache:
    """
    Expiring counters for the rate limiter.
    Redis when USE_REDIS is on (shared across workers), TTLCache otherwise.
    Search results are never cached here.
    """
    def __init__(self, use_redis: bool = settings.USE_REDIS, ttl: int = settings.CACHE_TTL_SECONDS):
        self.ttl = ttl
        self.backend = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True) if use_redis else None

    def incr(self, key: str) -> int:
        """Increment `key` and return the new count."""
        if self.backend:
            pipe = self.backend.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.ttl)
            count, _ = pipe.execute()
            return int(count)
        count = int(_local_counters.get(key, 0)) + 1
        _local_counters[key] = count
        return count

    def clear(self) -> None:
        if self.backend:
            return
        _local_counters.clear()

counters = CounterCache()
