"""
Aggregation registry.

Maps an aggregation type to its compute function (and optional validator)
and runs the compute pipeline:

1. clone the caller's filters and pass them through every preprocessor,
   in registration order
2. load raw records from the record source with the prepared filters
3. compute(context)
4. validate(result, context) if a validator is registered

A validator exception aborts the request as AggregationValidationError;
an unregistered type raises before any record is loaded.
"""

import logging
from typing import Any, Awaitable, Callable, Iterable, Sequence, Union

from aggcache.core.awaitables import resolve
from aggcache.core.errors import AggregationValidationError, UnregisteredAggregationError
from aggcache.models.aggregation import (
    AggregationComputeContext,
    AggregationRegistration,
    FilterOptions,
)
from aggcache.services.filters import clone_filters

logger = logging.getLogger(__name__)

FilterPreprocessor = Callable[
    [FilterOptions], Union[FilterOptions, Awaitable[FilterOptions]]
]
RecordSource = Callable[[FilterOptions, Union[str, None]], Union[Sequence[Any], Awaitable[Sequence[Any]]]]


class DataProcessor:
    def __init__(
        self,
        load_records: RecordSource,
        preprocessors: Iterable[FilterPreprocessor] = (),
    ):
        self._load_records = load_records
        self._preprocessors = list(preprocessors)
        self._registry: dict[str, AggregationRegistration] = {}

    def register(self, registration: AggregationRegistration) -> None:
        if registration.type in self._registry:
            logger.warning("Replacing registration for aggregation %r", registration.type)
        self._registry[registration.type] = registration

    def register_many(self, registrations: Iterable[AggregationRegistration]) -> None:
        for registration in registrations:
            self.register(registration)

    def has(self, aggregation_type: str) -> bool:
        return aggregation_type in self._registry

    def list(self) -> list[str]:
        return list(self._registry)

    def get_registration(self, aggregation_type: str) -> AggregationRegistration:
        registration = self._registry.get(aggregation_type)
        if registration is None:
            raise UnregisteredAggregationError(aggregation_type)
        return registration

    async def compute(
        self,
        aggregation_type: str,
        filters: FilterOptions,
        user_id: str | None = None,
    ) -> Any:
        registration = self.get_registration(aggregation_type)

        prepared = await self._run_preprocessors(filters)
        records = list(await resolve(self._load_records(prepared, user_id)))

        context = AggregationComputeContext(filters=prepared, records=records, user_id=user_id)
        result = await resolve(registration.compute(context))

        if registration.validate_result is not None:
            try:
                await resolve(registration.validate_result(result, context))
            except Exception as e:
                raise AggregationValidationError(aggregation_type, str(e) or type(e).__name__) from e

        logger.debug(
            "Computed aggregation %s over %d records for user %s",
            aggregation_type,
            len(records),
            user_id,
        )
        return result

    async def _run_preprocessors(self, filters: FilterOptions) -> FilterOptions:
        current = clone_filters(filters)
        for preprocessor in self._preprocessors:
            current = await resolve(preprocessor(current))
        return current
