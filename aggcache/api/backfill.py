from fastapi import APIRouter, Depends, HTTPException, status

from aggcache.api.deps import get_container, get_current_user_id
from aggcache.core.container import ServiceContainer
from aggcache.models.aggregation import BackfillConfig, BackfillReport
from aggcache.models.aggregation.AggregationResponse import BackfillRequest

router = APIRouter()


@router.post("", response_model=BackfillReport)
async def run_backfill(
    body: BackfillRequest,
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
):
    """
    POST /api/backfill - recompute every (type, filter set) pair for the user

    Runs inline and sequentially; the response reports how many refreshes
    were done. Requires the precomputation_backfill flag (409 otherwise).
    """
    unknown = [t for t in body.aggregation_types if not container.data_processor.has(t)]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown aggregation types: {', '.join(unknown)}",
        )

    return await container.backfill.run(
        BackfillConfig(
            user_id=user_id,
            aggregation_types=body.aggregation_types,
            filter_sets=body.filter_sets,
            batch_size=body.batch_size,
        )
    )
