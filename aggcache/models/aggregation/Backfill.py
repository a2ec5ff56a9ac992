from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from aggcache.models.aggregation.FilterOptions import FilterOptions


class BackfillProgress(BaseModel):
    """Emitted after every (aggregation type, filter set) refresh."""
    user_id: str
    aggregation_type: str
    processed: int = Field(ge=1)
    total: int = Field(ge=1)


class BackfillConfig(BaseModel):
    user_id: str
    aggregation_types: List[str] = Field(default_factory=list)
    filter_sets: List[FilterOptions] = Field(default_factory=list)
    batch_size: int = 10
    on_progress: Optional[Callable[[BackfillProgress], None]] = None


class BackfillReport(BaseModel):
    user_id: str
    processed: int = Field(ge=0)
    total: int = Field(ge=0)
    batches: int = Field(ge=0)
