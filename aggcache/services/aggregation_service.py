"""
Aggregation service: the public entry point of the cache.

Per request:

    START -> flag check -> FALLBACK_ONLY | CACHE_LOOKUP
    CACHE_LOOKUP -> HIT -> RETURN
                 -> MISS -> COMPUTE
    COMPUTE -> OK -> PERSIST -> RETURN
            -> FAIL -> FALLBACK_OK -> RETURN_DEGRADED
                    -> FALLBACK_UNAVAILABLE -> ERROR

The service stamps every envelope (timestamps, TTL, schema version) and is
the only writer to the cache tier. Fallback envelopes are never written:
they carry metadata.fallback = True and are recomputed on the next call.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Mapping, Optional

from aggcache.core.awaitables import resolve
from aggcache.core.clock import Clock, default_clock
from aggcache.core.errors import (
    AggregationValidationError,
    FallbackUnavailableError,
    UnregisteredAggregationError,
)
from aggcache.models.aggregation import (
    AggregationEnvelope,
    AggregationKey,
    AggregationRequest,
    AggregationSource,
)
from aggcache.models.flags.FeatureFlag import FeatureFlagName
from aggcache.services.cache_manager import CacheManager
from aggcache.services.data_processor import DataProcessor
from aggcache.services.feature_flags import FeatureFlagRegistry
from aggcache.services.filters import build_key

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=15)

AggregationMetadataFactory = Callable[[Any, AggregationRequest], Optional[dict]]

# Never routed to a fallback: these mean the caller or the registration is wrong
_HARD_ERRORS = (UnregisteredAggregationError, AggregationValidationError)


class AggregationService:
    def __init__(
        self,
        cache_manager: CacheManager,
        data_processor: DataProcessor,
        flags: FeatureFlagRegistry,
        clock: Clock | None = None,
        default_ttl: timedelta = DEFAULT_TTL,
        ttl_overrides: Mapping[str, timedelta] | None = None,
        schema_version: int = 1,
        metadata_factory: AggregationMetadataFactory | None = None,
    ):
        self.cache_manager = cache_manager
        self.data_processor = data_processor
        self.flags = flags
        self._clock = clock or default_clock
        self._default_ttl = default_ttl
        self._ttl_overrides = dict(ttl_overrides or {})
        self.schema_version = schema_version
        self._metadata_factory = metadata_factory
        self._in_flight: dict[AggregationKey, asyncio.Task] = {}

    # ==========================================================================
    # PUBLIC API
    # ==========================================================================
    async def get_aggregation(self, request: AggregationRequest) -> AggregationEnvelope:
        """
        Return the cached envelope for the request's canonical key, computing
        it on a miss.

        With the precomputation service flag off the cache is skipped and the
        caller's fallback produces the data; without a fallback this raises
        FallbackUnavailableError. Cached envelopes stamped with a different
        schema version are ignored, so old shapes never reach callers.
        Concurrent misses for one key share a single computation.
        """
        if not self.flags.is_enabled(FeatureFlagName.PRECOMPUTATION_SERVICE):
            return await self._compute_via_fallback(request)

        key = self._to_key(request)

        if not request.force_refresh:
            cached = await self.cache_manager.get(key)
            if cached is not None:
                if cached.entry.version == self.schema_version:
                    return cached.entry
                logger.info(
                    "Ignoring cached %s at version %s (current %s)",
                    key.cache_key,
                    cached.entry.version,
                    self.schema_version,
                )
            return await self._compute_and_persist(request, key, coalesce=True)

        return await self._compute_and_persist(request, key, coalesce=False)

    async def refresh_aggregation(self, request: AggregationRequest) -> AggregationEnvelope:
        """Recompute and persist, bypassing the cache read and the master flag."""
        key = self._to_key(request)
        return await self._compute_and_persist(request, key, coalesce=False)

    async def clear_aggregation(self, request: AggregationRequest) -> None:
        key = self._to_key(request)
        await self.cache_manager.delete(key)
        logger.info("Cleared aggregation %s", key.cache_key)

    async def sweep_expired(self) -> int:
        removed = await self.cache_manager.sweep_expired()
        if removed:
            logger.info("Swept %d expired aggregation entries", removed)
        return removed

    def resolve_ttl(self, aggregation_type: str) -> timedelta:
        return self._ttl_overrides.get(aggregation_type, self._default_ttl)

    # ==========================================================================
    # COMPUTE PATHS
    # ==========================================================================
    async def _compute_and_persist(
        self, request: AggregationRequest, key: AggregationKey, coalesce: bool
    ) -> AggregationEnvelope:
        try:
            if coalesce:
                return await self._single_flight(key, request)
            return await self._persist_fresh(request, key)
        except _HARD_ERRORS:
            raise
        except Exception as e:
            if request.fallback_compute is not None and self.flags.is_enabled(
                FeatureFlagName.PRECOMPUTATION_FALLBACKS
            ):
                logger.warning(
                    "Compute failed for %s, serving fallback: %s", key.cache_key, e
                )
                return await self._compute_via_fallback(request, reason=e)
            raise

    async def _persist_fresh(
        self, request: AggregationRequest, key: AggregationKey
    ) -> AggregationEnvelope:
        data = await self.data_processor.compute(
            request.type, request.filters, user_id=request.user_id
        )
        envelope = self._build_envelope(data, request)
        await self.cache_manager.set(key, envelope)
        return envelope

    async def _single_flight(
        self, key: AggregationKey, request: AggregationRequest
    ) -> AggregationEnvelope:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(self._persist_fresh(request, key))
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._finish_flight(key, done))
        else:
            logger.debug("Joining in-flight computation for %s", key.cache_key)
        # shield: cancelling any one caller, leader included, leaves the shared task running
        return await asyncio.shield(task)

    def _finish_flight(self, key: AggregationKey, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            # mark retrieved so a task whose callers all went away doesn't log a warning
            task.exception()

    async def _compute_via_fallback(
        self, request: AggregationRequest, reason: BaseException | None = None
    ) -> AggregationEnvelope:
        if request.fallback_compute is None:
            raise FallbackUnavailableError(request.type)

        result = await resolve(request.fallback_compute())
        envelope = self._build_envelope(result, request)

        metadata = dict(envelope.metadata or {})
        metadata["fallback"] = True
        if reason is not None:
            metadata["reason"] = str(reason) or type(reason).__name__
        return envelope.model_copy(update={"metadata": metadata})

    def _build_envelope(self, result: Any, request: AggregationRequest) -> AggregationEnvelope:
        computed_at = self._clock.now()
        metadata = (
            self._metadata_factory(result, request) if self._metadata_factory else None
        )
        return AggregationEnvelope(
            data=result,
            computed_at=computed_at,
            expires_at=computed_at + self.resolve_ttl(request.type),
            version=self.schema_version,
            metadata=metadata,
            source=AggregationSource.COMPUTED,
        )

    def _to_key(self, request: AggregationRequest) -> AggregationKey:
        return build_key(request.user_id, request.type, request.filters)
