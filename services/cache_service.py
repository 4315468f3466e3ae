"""Response cache - keyed store for projected payloads and the per-request gate"""

import hashlib
import json
import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis
from cachetools import TTLCache

from core.logging_config import get_logger
from core.settings import settings
from services.exceptions import InvalidCacheKeyError

logger = get_logger(__name__)


class CacheStore(ABC):
    """
    Shared store behind every CacheGate. Values are JSON documents.

    Each entity class has a generation number that is part of every key,
    so bumping it drops all cached payloads for that class at once.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def generation(self, namespace: str) -> int:
        pass

    @abstractmethod
    def invalidate(self, namespace: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class MemoryCacheStore(CacheStore):
    """In-process store, one per worker"""

    def __init__(self, maxsize: int = 1024, ttl: int = 3600):
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._cache[key] = value

    def generation(self, namespace: str) -> int:
        with self._lock:
            return self._generations.get(namespace, 0)

    def invalidate(self, namespace: str) -> None:
        with self._lock:
            self._generations[namespace] = self._generations.get(namespace, 0) + 1

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._generations.clear()


class RedisCacheStore(CacheStore):
    """Store shared by all workers; every operation is a single redis command"""

    def __init__(self, url: str, prefix: str = "section-field-api", ttl: int = 3600, client=None):
        self.client = client or redis.from_url(url, decode_responses=True, db=0)
        self.prefix = prefix
        self.ttl = ttl

    def get(self, key: str) -> Optional[str]:
        return self.client.get(f"{self.prefix}:entry:{key}")

    def set(self, key: str, value: str) -> None:
        self.client.setex(f"{self.prefix}:entry:{key}", self.ttl, value)

    def generation(self, namespace: str) -> int:
        return int(self.client.get(f"{self.prefix}:generation:{namespace}") or 0)

    def invalidate(self, namespace: str) -> None:
        self.client.incr(f"{self.prefix}:generation:{namespace}")

    def clear(self) -> None:
        for key in self.client.scan_iter(match=f"{self.prefix}:*"):
            self.client.delete(key)


class CacheGate:
    """
    Cache access for one request.

    ``start`` derives the key, ``is_hit``/``get`` read the payload and
    ``set`` stores it. Without a successful ``start`` the gate always misses
    and ``set`` does nothing. An unreachable redis store counts as a miss.
    """

    def __init__(self, store: CacheStore):
        self.store = store
        self._key: Optional[str] = None
        self._cached: Optional[str] = None

    def start(
        self,
        entity_class_name: str,
        requested_fields: Any,
        context_label: str,
        discriminator: Any = None
    ) -> None:
        self._key = None
        self._cached = None
        try:
            raw = json.dumps(
                [entity_class_name, requested_fields, context_label, discriminator],
                sort_keys=True
            )
        except (TypeError, ValueError) as e:
            raise InvalidCacheKeyError(f"Cache key for {context_label} is not serializable: {e}") from e

        digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()
        try:
            generation = self.store.generation(entity_class_name)
        except redis.RedisError as e:
            raise InvalidCacheKeyError(f"Cache generation for {entity_class_name} is unavailable: {e}") from e
        self._key = f"{entity_class_name}:{generation}:{digest}"

    @property
    def key(self) -> Optional[str]:
        return self._key

    def is_hit(self) -> bool:
        if self._key is None:
            return False
        self._cached = self._read()
        return self._cached is not None

    def get(self) -> Any:
        if self._cached is None and self._key is not None:
            self._cached = self._read()
        if self._cached is None:
            return None
        return json.loads(self._cached)

    def set(self, payload: Any) -> None:
        if self._key is None:
            return
        try:
            self.store.set(self._key, json.dumps(payload))
        except redis.RedisError as e:
            logger.warning_ctx(f"Cache write failed: {e}", key=self._key)

    def _read(self) -> Optional[str]:
        try:
            return self.store.get(self._key)
        except redis.RedisError as e:
            logger.warning_ctx(f"Cache read failed: {e}", key=self._key)
            return None


_cache_store: Optional[CacheStore] = None


def get_cache_store() -> CacheStore:
    """Get the process wide cache store"""
    global _cache_store
    if _cache_store is None:
        if settings.REDIS_URL:
            _cache_store = RedisCacheStore(settings.REDIS_URL, settings.CACHE_PREFIX, settings.CACHE_TTL)
            logger.info("Using redis response cache")
        else:
            _cache_store = MemoryCacheStore(settings.CACHE_MAXSIZE, settings.CACHE_TTL)
            logger.info("Using in-memory response cache")
    return _cache_store


def reset_cache_store():
    """Reset the store instance (useful for testing)."""
    global _cache_store
    _cache_store = None
