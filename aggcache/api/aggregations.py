from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from aggcache.api.deps import get_container, get_current_user_id, get_filter_options
from aggcache.core.container import ServiceContainer
from aggcache.models.aggregation import (
    AggregationEnvelope,
    AggregationRequest,
    FilterOptions,
)
from aggcache.models.aggregation.AggregationResponse import (
    AggregationResponse,
    AggregationTypesResponse,
)

router = APIRouter()


def _ensure_registered(container: ServiceContainer, aggregation_type: str) -> None:
    if not container.data_processor.has(aggregation_type):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown aggregation type: {aggregation_type}",
        )


def _build_request(
    container: ServiceContainer,
    user_id: str,
    aggregation_type: str,
    filters: FilterOptions,
    force_refresh: bool = False,
) -> AggregationRequest:
    async def compute_directly():
        return await container.data_processor.compute(
            aggregation_type, filters, user_id=user_id
        )

    return AggregationRequest(
        user_id=user_id,
        type=aggregation_type,
        filters=filters,
        force_refresh=force_refresh,
        fallback_compute=compute_directly,
    )


def _to_response(aggregation_type: str, envelope: AggregationEnvelope) -> AggregationResponse:
    return AggregationResponse(
        aggregation_type=aggregation_type,
        data=envelope.data,
        computed_at=envelope.computed_at,
        expires_at=envelope.expires_at,
        version=envelope.version,
        metadata=envelope.metadata,
        source=envelope.source,
    )


@router.get("", response_model=AggregationTypesResponse)
async def list_aggregations(container: ServiceContainer = Depends(get_container)):
    return AggregationTypesResponse(aggregation_types=container.data_processor.list())


@router.get("/{aggregation_type}", response_model=AggregationResponse)
async def get_aggregation(
    aggregation_type: str,
    force_refresh: bool = Query(default=False),
    filters: FilterOptions = Depends(get_filter_options),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """
    GET /api/aggregations/{type} - cached aggregation for the current user

    Serves from the cache when the precomputation service flag is on.
    With the flag off, or when the cached compute path fails, the
    aggregation is computed directly and returned with metadata.fallback.
    """
    _ensure_registered(container, aggregation_type)
    request = _build_request(container, user_id, aggregation_type, filters, force_refresh)
    envelope = await container.service.get_aggregation(request)
    return _to_response(aggregation_type, envelope)


@router.post("/{aggregation_type}/refresh", response_model=AggregationResponse)
async def refresh_aggregation(
    aggregation_type: str,
    filters: FilterOptions = Depends(get_filter_options),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    _ensure_registered(container, aggregation_type)
    envelope = await container.service.refresh_aggregation(
        AggregationRequest(user_id=user_id, type=aggregation_type, filters=filters)
    )
    return _to_response(aggregation_type, envelope)


@router.delete("/{aggregation_type}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_aggregation(
    aggregation_type: str,
    filters: FilterOptions = Depends(get_filter_options),
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    await container.service.clear_aggregation(
        AggregationRequest(user_id=user_id, type=aggregation_type, filters=filters)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
