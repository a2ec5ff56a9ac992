from typing import Iterable

from aggcache.core.clock import Clock, default_clock
from aggcache.core.config import AggregationSettings
from aggcache.models.aggregation import AggregationRegistration
from aggcache.services.aggregation_service import AggregationService
from aggcache.services.backfill import BackfillJob
from aggcache.services.cache_manager import CacheManager
from aggcache.services.data_processor import DataProcessor, FilterPreprocessor, RecordSource
from aggcache.services.feature_flags import FeatureFlagRegistry
from aggcache.services.storage_layer import StorageAdapter, StorageLayer


class ServiceContainer:
    """Everything a request handler needs, built once per process."""

    def __init__(
        self,
        settings: AggregationSettings,
        flags: FeatureFlagRegistry,
        data_processor: DataProcessor,
        cache_manager: CacheManager,
        service: AggregationService,
        backfill: BackfillJob,
    ):
        self.settings = settings
        self.flags = flags
        self.data_processor = data_processor
        self.cache_manager = cache_manager
        self.service = service
        self.backfill = backfill


def build_container(
    settings: AggregationSettings,
    storage_adapter: StorageAdapter,
    record_source: RecordSource,
    registrations: Iterable[AggregationRegistration] = (),
    preprocessors: Iterable[FilterPreprocessor] = (),
    flags: FeatureFlagRegistry | None = None,
    clock: Clock | None = None,
) -> ServiceContainer:
    clock = clock or default_clock
    flags = flags or FeatureFlagRegistry.from_env(clock=clock)

    data_processor = DataProcessor(record_source, preprocessors=preprocessors)
    data_processor.register_many(registrations)

    cache_manager = CacheManager(StorageLayer(storage_adapter, clock=clock), clock=clock)
    service = AggregationService(
        cache_manager,
        data_processor,
        flags,
        clock=clock,
        default_ttl=settings.default_ttl,
        ttl_overrides=settings.ttl_override_map,
        schema_version=settings.schema_version,
    )
    return ServiceContainer(
        settings=settings,
        flags=flags,
        data_processor=data_processor,
        cache_manager=cache_manager,
        service=service,
        backfill=BackfillJob(service, flags),
    )
