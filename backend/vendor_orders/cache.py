"""
Enrichment Lookup Cache

Caches LookupResults by normalized search key for one run, so a model that
appears on several lines is fetched once. InMemoryCache is the default;
RedisCache shares results between processes and degrades to a miss when
Redis is unavailable.
"""

import json
import os
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Optional

import redis

from vendor_orders.logging_config import get_logger
from vendor_orders.models import LookupResult

logger = get_logger(__name__)

# Default TTL for shared cache entries (6 hours)
DEFAULT_TTL = 6 * 60 * 60


def normalize_key(vendor_code: str, key: str) -> str:
    """'europa', ' ADAMS ' -> 'europa:adams'"""
    return f"{vendor_code}:{' '.join((key or '').split()).casefold()}"


class EnrichmentCache(ABC):
    """Run-scoped lookup cache interface"""

    def __init__(self):
        self.hits = 0
        self.misses = 0

    @abstractmethod
    def get(self, key: str) -> Optional[LookupResult]:
        ...

    @abstractmethod
    def put(self, key: str, result: LookupResult) -> None:
        ...

    @abstractmethod
    def size(self) -> int:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def stats(self) -> dict:
        total = self.hits + self.misses
        return {
            "size": self.size(),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 1) if total else 0.0,
        }


class InMemoryCache(EnrichmentCache):
    """
    Thread-safe dict cache.

    Unbounded by default; with max_entries set, the least recently used
    entry is evicted once the cap is reached.
    """

    def __init__(self, max_entries: Optional[int] = None):
        super().__init__()
        self.max_entries = max_entries
        self._entries: OrderedDict[str, LookupResult] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[LookupResult]:
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return result

    def put(self, key: str, result: LookupResult) -> None:
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug(f"Cache EVICT: {evicted}")

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisCache(EnrichmentCache):
    """
    Redis-backed cache (DB 2; DB 0 and 1 belong to other services).

    Every Redis failure is logged and treated as a miss or a skipped write.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        prefix: str = "order_enrichment",
        ttl: int = DEFAULT_TTL,
    ):
        super().__init__()
        self.prefix = prefix
        self.ttl = ttl
        self._client = client if client is not None else self._connect()

    @staticmethod
    def _connect() -> Optional[redis.Redis]:
        try:
            client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                db=int(os.getenv("ORDER_PIPELINE_REDIS_DB", "2")),
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            client.ping()
            logger.info("Redis enrichment cache connected")
            return client
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis cache unavailable (graceful degradation): {e}")
            return None

    @property
    def available(self) -> bool:
        return self._client is not None

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str) -> Optional[LookupResult]:
        if not self._client:
            self.misses += 1
            return None
        try:
            value = self._client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Cache read error for key '{key}': {e}")
            value = None
        if not value:
            self.misses += 1
            return None
        try:
            result = LookupResult.from_dict(json.loads(value))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable cache entry '{key}': {e}")
            self.misses += 1
            return None
        self.hits += 1
        return result

    def put(self, key: str, result: LookupResult) -> None:
        if not self._client:
            return
        try:
            self._client.setex(self._key(key), self.ttl, json.dumps(result.to_dict(), default=str))
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning(f"Cache write error for key '{key}': {e}")

    def size(self) -> int:
        if not self._client:
            return 0
        try:
            return sum(1 for _ in self._client.scan_iter(match=self._key("*"), count=100))
        except redis.RedisError as e:
            logger.warning(f"Cache size error: {e}")
            return 0

    def clear(self) -> None:
        if not self._client:
            return
        try:
            keys = list(self._client.scan_iter(match=self._key("*"), count=100))
            if keys:
                self._client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Cache clear error: {e}")
