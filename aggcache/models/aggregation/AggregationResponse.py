from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from aggcache.models.aggregation.AggregationEnvelope import AggregationSource
from aggcache.models.aggregation.FilterOptions import FilterOptions


class AggregationResponse(BaseModel):
    """Envelope as returned over HTTP."""
    aggregation_type: str
    data: Any
    computed_at: datetime
    expires_at: datetime
    version: int
    metadata: Optional[Dict[str, Any]] = None
    source: AggregationSource


class AggregationTypesResponse(BaseModel):
    aggregation_types: List[str]


class BackfillRequest(BaseModel):
    aggregation_types: List[str] = Field(default_factory=list)
    filter_sets: List[FilterOptions] = Field(default_factory=list)
    batch_size: int = Field(default=10, ge=1, le=500)
