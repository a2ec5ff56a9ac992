"""
Durable tier for aggregation envelopes.

StorageLayer converts between the in-memory AggregationEnvelope and the
StoredAggregationRecord wire shape, and delegates persistence to a
StorageAdapter. Any key-value or document store can back it; the
in-memory adapter below has the same semantics and is what tests use.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from pydantic_core import to_jsonable_python

from aggcache.core.clock import Clock, default_clock
from aggcache.models.aggregation import (
    AggregationEnvelope,
    AggregationKey,
    AggregationSource,
    FilterOptions,
    StoredAggregationRecord,
)
from aggcache.services.filters import build_key


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class StorageAdapter(ABC):
    @abstractmethod
    async def store(self, record: StoredAggregationRecord) -> None: ...

    @abstractmethod
    async def fetch(self, key: AggregationKey) -> StoredAggregationRecord | None: ...

    async def remove(self, key: AggregationKey) -> None:
        return None

    async def fetch_expired(self, before_iso: str) -> list[StoredAggregationRecord]:
        return []


class InMemoryStorageAdapter(StorageAdapter):
    def __init__(self):
        self._records: dict[AggregationKey, StoredAggregationRecord] = {}
        self._lock = threading.Lock()

    async def store(self, record: StoredAggregationRecord) -> None:
        with self._lock:
            existing = self._records.get(record.key)
            record_id = record.id or (existing.id if existing else None) or record.key.cache_key
            self._records[record.key] = record.model_copy(update={"id": record_id}, deep=True)

    async def fetch(self, key: AggregationKey) -> StoredAggregationRecord | None:
        with self._lock:
            record = self._records.get(key)
        return record.model_copy(deep=True) if record else None

    async def remove(self, key: AggregationKey) -> None:
        with self._lock:
            self._records.pop(key, None)

    async def fetch_expired(self, before_iso: str) -> list[StoredAggregationRecord]:
        before = from_iso(before_iso)
        with self._lock:
            return [
                record.model_copy(deep=True)
                for record in self._records.values()
                if from_iso(record.expires_at) <= before
            ]

    def __len__(self) -> int:
        return len(self._records)


class StorageLayer:
    def __init__(self, adapter: StorageAdapter, clock: Clock | None = None):
        self.adapter = adapter
        self._clock = clock or default_clock

    async def store_aggregation(self, key: AggregationKey, envelope: AggregationEnvelope) -> None:
        await self.adapter.store(self.to_record(key, envelope))

    async def get_aggregation(self, key: AggregationKey) -> AggregationEnvelope | None:
        record = await self.adapter.fetch(key)
        if record is None:
            return None
        return self.from_record(record)

    async def remove_aggregation(self, key: AggregationKey) -> None:
        await self.adapter.remove(key)

    async def list_expired(self, reference: datetime | None = None) -> list[AggregationKey]:
        reference = reference or self._clock.now()
        expired = await self.adapter.fetch_expired(to_iso(reference))
        return [record.key for record in expired]

    def create_key(self, user_id: str, aggregation_type: str, filters: FilterOptions) -> AggregationKey:
        return build_key(user_id, aggregation_type, filters)

    @staticmethod
    def to_record(key: AggregationKey, envelope: AggregationEnvelope) -> StoredAggregationRecord:
        return StoredAggregationRecord(
            user_id=key.user_id,
            aggregation_type=key.aggregation_type,
            filter_hash=key.filter_hash,
            data=to_jsonable_python(envelope.data),
            computed_at=to_iso(envelope.computed_at),
            expires_at=to_iso(envelope.expires_at),
            version=envelope.version,
            metadata=to_jsonable_python(envelope.metadata) if envelope.metadata is not None else None,
        )

    @staticmethod
    def from_record(record: StoredAggregationRecord) -> AggregationEnvelope:
        return AggregationEnvelope(
            data=record.data,
            computed_at=from_iso(record.computed_at),
            expires_at=from_iso(record.expires_at),
            version=record.version,
            metadata=record.metadata,
            source=AggregationSource.DURABLE,
        )
