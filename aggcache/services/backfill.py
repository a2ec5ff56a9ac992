"""
Backfill: force recomputation across aggregation types x filter sets.

Sequential on purpose so compute load on the record source stays bounded.
Requests are built without a fallback, so a broken compute path fails the
job loudly instead of being papered over.
"""

import logging
from typing import Sequence, TypeVar

from aggcache.core.errors import BackfillDisabledError
from aggcache.models.aggregation import (
    AggregationRequest,
    BackfillConfig,
    BackfillProgress,
    BackfillReport,
)
from aggcache.models.flags.FeatureFlag import FeatureFlagName
from aggcache.services.aggregation_service import AggregationService
from aggcache.services.feature_flags import FeatureFlagRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    size = max(1, size)
    return [list(items[index:index + size]) for index in range(0, len(items), size)]


class BackfillJob:
    def __init__(self, service: AggregationService, flags: FeatureFlagRegistry):
        self._service = service
        self._flags = flags

    async def run(self, config: BackfillConfig) -> BackfillReport:
        if not self._flags.is_enabled(FeatureFlagName.PRECOMPUTATION_BACKFILL):
            raise BackfillDisabledError()

        total = len(config.filter_sets) * len(config.aggregation_types)
        if total == 0:
            logger.info("Backfill for user %s has nothing to do", config.user_id)
            return BackfillReport(user_id=config.user_id, processed=0, total=0, batches=0)

        batches = chunk(config.filter_sets, config.batch_size)
        logger.info(
            "Backfill started for user %s: %d refreshes in %d batches",
            config.user_id,
            total,
            len(batches),
        )

        processed = 0
        for batch_index, batch in enumerate(batches, start=1):
            for aggregation_type in config.aggregation_types:
                for filters in batch:
                    await self._service.refresh_aggregation(
                        AggregationRequest(
                            user_id=config.user_id,
                            type=aggregation_type,
                            filters=filters,
                        )
                    )
                    processed += 1
                    if config.on_progress is not None:
                        config.on_progress(
                            BackfillProgress(
                                user_id=config.user_id,
                                aggregation_type=aggregation_type,
                                processed=processed,
                                total=total,
                            )
                        )
            logger.info(
                "Backfill batch %d/%d done for user %s (%d/%d)",
                batch_index,
                len(batches),
                config.user_id,
                processed,
                total,
            )

        return BackfillReport(
            user_id=config.user_id, processed=processed, total=total, batches=len(batches)
        )
