import asyncio
import logging

from aggcache.services.aggregation_service import AggregationService

logger = logging.getLogger(__name__)


async def aggregation_sweeper_process(service: AggregationService, interval_seconds: int):
    """
    Background loop that drops expired envelopes from both cache layers.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await service.sweep_expired()
        except Exception:
            logger.exception("Aggregation sweep failed")
