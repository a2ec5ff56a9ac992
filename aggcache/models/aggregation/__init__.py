from aggcache.models.aggregation.FilterOptions import (
    FilterOptions,
    NormalizedFilterSet,
    Product,
    Timeframe,
)
from aggcache.models.aggregation.AggregationEnvelope import (
    AggregationEnvelope,
    AggregationKey,
    AggregationSource,
    CacheRetrievalResult,
    StoredAggregationRecord,
)
from aggcache.models.aggregation.AggregationRequest import (
    AggregationComputeContext,
    AggregationRegistration,
    AggregationRequest,
)
from aggcache.models.aggregation.Backfill import (
    BackfillConfig,
    BackfillProgress,
    BackfillReport,
)
from aggcache.models.aggregation.WatchRecord import WatchRecord

__all__ = [
    "FilterOptions",
    "NormalizedFilterSet",
    "Product",
    "Timeframe",
    "AggregationEnvelope",
    "AggregationKey",
    "AggregationSource",
    "CacheRetrievalResult",
    "StoredAggregationRecord",
    "AggregationComputeContext",
    "AggregationRegistration",
    "AggregationRequest",
    "BackfillConfig",
    "BackfillProgress",
    "BackfillReport",
    "WatchRecord",
]
