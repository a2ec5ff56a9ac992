"""
Two-layer cache for aggregation envelopes.

Cache Configuration:
- Fast layer: in-process dict guarded by a lock, keyed by AggregationKey
- Durable layer (optional): StorageLayer, shared across processes
- Expiry is checked against the envelope's own expires_at on every read

Reads go memory -> durable. A fresh durable hit is promoted into memory.
Writes go to memory synchronously and to the durable layer best-effort:
the memory layer stays authoritative for the life of the process, so a
durable failure is logged and never fails the request.
"""

import logging
import threading

from aggcache.core.clock import Clock, default_clock
from aggcache.models.aggregation import (
    AggregationEnvelope,
    AggregationKey,
    AggregationSource,
    CacheRetrievalResult,
)
from aggcache.services.storage_layer import StorageLayer

logger = logging.getLogger(__name__)


class CacheManager:
    def __init__(self, storage: StorageLayer | None = None, clock: Clock | None = None):
        self._storage = storage
        self._clock = clock or default_clock
        self._memory: dict[AggregationKey, AggregationEnvelope] = {}
        self._lock = threading.Lock()

    async def get(
        self, key: AggregationKey, allow_stale: bool = False
    ) -> CacheRetrievalResult | None:
        cache_key = key.cache_key
        now = self._clock.now()

        with self._lock:
            memory_entry = self._memory.get(key)
            if memory_entry is not None and memory_entry.is_expired(now) and not allow_stale:
                # Expired: drop it and give the durable layer a chance
                del self._memory[key]
                memory_entry = None

        if memory_entry is not None:
            logger.debug("Memory hit for %s", cache_key)
            return CacheRetrievalResult(
                entry=memory_entry.with_source(AggregationSource.MEMORY),
                hit_layer=AggregationSource.MEMORY,
            )

        if self._storage is None:
            return None

        try:
            stored = await self._storage.get_aggregation(key)
        except Exception as e:
            logger.warning("Durable read failed for %s, treating as miss: %s", cache_key, e)
            return None

        if stored is None:
            logger.debug("Cache miss for %s", cache_key)
            return None
        if stored.is_expired(now) and not allow_stale:
            logger.debug("Durable entry for %s is expired", cache_key)
            return None

        if not stored.is_expired(now):
            with self._lock:
                self._memory[key] = stored.with_source(AggregationSource.MEMORY)

        logger.debug("Durable hit for %s", cache_key)
        return CacheRetrievalResult(
            entry=stored.with_source(AggregationSource.DURABLE),
            hit_layer=AggregationSource.DURABLE,
        )

    async def set(self, key: AggregationKey, envelope: AggregationEnvelope) -> None:
        cache_key = key.cache_key
        with self._lock:
            self._memory[key] = envelope.with_source(AggregationSource.MEMORY)

        if self._storage is None:
            return

        try:
            await self._storage.store_aggregation(key, envelope)
        except Exception as e:
            logger.warning("Durable write failed for %s, memory copy kept: %s", cache_key, e)

    async def delete(self, key: AggregationKey) -> None:
        cache_key = key.cache_key
        with self._lock:
            self._memory.pop(key, None)

        if self._storage is None:
            return

        try:
            await self._storage.remove_aggregation(key)
        except Exception as e:
            logger.warning("Durable delete failed for %s: %s", cache_key, e)

    def purge_expired(self) -> int:
        """Drop expired entries from the memory layer. Returns how many went."""
        now = self._clock.now()
        with self._lock:
            expired = [k for k, entry in self._memory.items() if entry.is_expired(now)]
            for expired_key in expired:
                del self._memory[expired_key]
        return len(expired)

    async def sweep_expired(self) -> int:
        """Purge memory and remove every expired durable record."""
        removed = self.purge_expired()
        if self._storage is None:
            return removed

        try:
            expired_keys = await self._storage.list_expired(self._clock.now())
        except Exception as e:
            logger.warning("Listing expired durable entries failed: %s", e)
            return removed

        for key in expired_keys:
            try:
                await self._storage.remove_aggregation(key)
                removed += 1
            except Exception as e:
                logger.warning("Removing expired entry %s failed: %s", key.cache_key, e)
        return removed

    def __len__(self) -> int:
        return len(self._memory)
