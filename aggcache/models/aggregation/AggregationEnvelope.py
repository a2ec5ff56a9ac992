import enum
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class AggregationSource(str, enum.Enum):
    MEMORY = "memory"
    DURABLE = "durable"
    COMPUTED = "computed"


class AggregationKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    aggregation_type: str
    filter_hash: str

    @property
    def cache_key(self) -> str:
        return f"{self.user_id}:{self.aggregation_type}:{self.filter_hash}"


class AggregationEnvelope(BaseModel):
    """A cached aggregation result plus the provenance stamped by the service."""
    data: Any
    computed_at: datetime
    expires_at: datetime
    version: int
    metadata: Optional[Dict[str, Any]] = None
    source: AggregationSource

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def with_source(self, source: AggregationSource) -> "AggregationEnvelope":
        return self.model_copy(update={"source": source})


class StoredAggregationRecord(BaseModel):
    """Durable-tier wire shape. Timestamps are ISO-8601 UTC strings."""
    id: Optional[str] = None
    user_id: str
    aggregation_type: str
    filter_hash: str
    data: Any
    computed_at: str
    expires_at: str
    version: int
    metadata: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> AggregationKey:
        return AggregationKey(
            user_id=self.user_id,
            aggregation_type=self.aggregation_type,
            filter_hash=self.filter_hash,
        )


class CacheRetrievalResult(BaseModel):
    entry: AggregationEnvelope
    hit_layer: AggregationSource
