import time
import psutil
from fastapi import APIRouter, Depends

from aggcache.api.deps import get_container
from aggcache.core.container import ServiceContainer

router = APIRouter()


@router.get("/health")
async def health_check(container: ServiceContainer = Depends(get_container)):
    # Fast layer lives in this process
    process = psutil.Process()

    return {
        "status": "healthy",
        "timestamp": time.time(),
        "components": {
            "api": "up",
            "cache": {
                "memory_entries": len(container.cache_manager),
                "process_rss_mb": round(process.memory_info().rss / (1024 * 1024), 2),
                "system_memory_percent": psutil.virtual_memory().percent,
            },
        },
        "flags": {
            flag.value: state.enabled for flag, state in container.flags.list_all().items()
        },
        "aggregation_types": container.data_processor.list(),
        "schema_version": container.service.schema_version,
    }
