"""Shared pytest fixtures for the aggregation cache tests.

Provides a manual clock, a call-counting record source, and a service
wired over the in-memory durable adapter, so test modules can focus on
behaviour rather than wiring.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from aggcache.models.aggregation import (
    AggregationRegistration,
    FilterOptions,
    Product,
    WatchRecord,
)
from aggcache.models.flags.FeatureFlag import FeatureFlagName
from aggcache.services.aggregation_service import AggregationService
from aggcache.services.cache_manager import CacheManager
from aggcache.services.data_processor import DataProcessor
from aggcache.services.feature_flags import FeatureFlagRegistry
from aggcache.services.storage_layer import InMemoryStorageAdapter, StorageLayer


class ManualClock:
    """Clock that only moves when a test tells it to."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs: Any) -> None:
        self.current += timedelta(**kwargs)


class CountingRecordSource:
    """Record source stub that remembers every call."""

    def __init__(self, records: list[Any]):
        self.records = records
        self.calls: list[tuple[FilterOptions, str | None]] = []
        self.error: Exception | None = None

    async def __call__(self, filters: FilterOptions, user_id: str | None) -> list[Any]:
        self.calls.append((filters, user_id))
        if self.error is not None:
            raise self.error
        return list(self.records)


class CountingCompute:
    """Compute function stub returning len(records) and counting invocations."""

    def __init__(self):
        self.calls = 0

    def __call__(self, context) -> int:
        self.calls += 1
        return len(context.records)


def make_records(count: int) -> list[WatchRecord]:
    channels = ["Veritasium", "Kurzgesagt", "3Blue1Brown"]
    return [
        WatchRecord(
            id=f"r{i}",
            watched_at=datetime(2026, 3, 1, tzinfo=timezone.utc) + timedelta(hours=i),
            video_id=f"v{i}",
            video_title=f"Video {i}",
            channel_title=channels[i % len(channels)],
            product=Product.YOUTUBE,
            topics=["science"] if i % 2 == 0 else ["math"],
        )
        for i in range(count)
    ]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def flags(clock: ManualClock) -> FeatureFlagRegistry:
    return FeatureFlagRegistry(
        env_overrides={FeatureFlagName.PRECOMPUTATION_SERVICE: True},
        clock=clock,
    )


@pytest.fixture
def records() -> list[WatchRecord]:
    return make_records(5)


@pytest.fixture
def record_source(records: list[WatchRecord]) -> CountingRecordSource:
    return CountingRecordSource(records)


@pytest.fixture
def kpi_compute() -> CountingCompute:
    return CountingCompute()


@pytest.fixture
def data_processor(record_source: CountingRecordSource, kpi_compute: CountingCompute) -> DataProcessor:
    processor = DataProcessor(record_source)
    processor.register(AggregationRegistration(type="kpi", compute=kpi_compute))
    return processor


@pytest.fixture
def storage_adapter() -> InMemoryStorageAdapter:
    return InMemoryStorageAdapter()


@pytest.fixture
def storage(storage_adapter: InMemoryStorageAdapter, clock: ManualClock) -> StorageLayer:
    return StorageLayer(storage_adapter, clock=clock)


@pytest.fixture
def cache_manager(storage: StorageLayer, clock: ManualClock) -> CacheManager:
    return CacheManager(storage, clock=clock)


@pytest.fixture
def service(
    cache_manager: CacheManager,
    data_processor: DataProcessor,
    flags: FeatureFlagRegistry,
    clock: ManualClock,
) -> AggregationService:
    return AggregationService(cache_manager, data_processor, flags, clock=clock)
