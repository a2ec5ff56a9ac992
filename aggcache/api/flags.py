from fastapi import APIRouter, Depends, HTTPException, Response, status

from aggcache.api.deps import get_container
from aggcache.core.container import ServiceContainer
from aggcache.models.flags.FeatureFlag import (
    FeatureFlagName,
    FeatureFlagState,
    FeatureFlagUpdate,
)

router = APIRouter()


@router.get("", response_model=dict[str, FeatureFlagState])
async def list_flags(container: ServiceContainer = Depends(get_container)):
    return {flag.value: state for flag, state in container.flags.list_all().items()}


@router.put("/{flag}", response_model=FeatureFlagState)
async def set_flag(
    flag: str,
    update: FeatureFlagUpdate,
    container: ServiceContainer = Depends(get_container),
):
    try:
        flag_name = FeatureFlagName(flag)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown feature flag: {flag}")
    return container.flags.set_runtime_override(flag_name, update.enabled)


@router.delete("/overrides", status_code=status.HTTP_204_NO_CONTENT)
async def clear_overrides(container: ServiceContainer = Depends(get_container)):
    container.flags.clear_runtime_overrides()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
