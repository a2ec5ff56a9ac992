from typing import Any, Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from aggcache.models.aggregation.FilterOptions import FilterOptions


class AggregationRequest(BaseModel):
    """
    One request against the aggregation service.

    `fallback_compute` is a zero-argument callable (plain or async) used only
    when the primary compute path fails or the cache path is switched off.
    """
    user_id: str
    type: str
    filters: FilterOptions = Field(default_factory=FilterOptions)
    force_refresh: bool = False
    fallback_compute: Optional[Callable[[], Any]] = None


class AggregationComputeContext(BaseModel):
    filters: FilterOptions
    records: List[Any]
    user_id: Optional[str] = None


class AggregationRegistration(BaseModel):
    """
    Binds an aggregation type to its compute function and optional validator.

    compute(context) -> result
    validate(result, context) -> None, raising on an invalid result
    """
    type: str
    compute: Callable[..., Any]
    validate_result: Optional[Callable[..., Any]] = Field(default=None, alias="validate")

    model_config = ConfigDict(populate_by_name=True)
