"""
Error taxonomy for the aggregation cache.

Only programmer errors (unregistered type, failed validation) and the
"no viable path to data" cases reach callers. Durable-tier and config
problems are logged and degraded instead of raised.
"""


class AggregationError(Exception):
    """Base class for every error raised by the aggregation cache."""


class UnregisteredAggregationError(AggregationError):
    def __init__(self, aggregation_type: str):
        self.aggregation_type = aggregation_type
        super().__init__(f'No aggregation registered for type "{aggregation_type}"')


class AggregationValidationError(AggregationError):
    def __init__(self, aggregation_type: str, reason: str):
        self.aggregation_type = aggregation_type
        self.reason = reason
        super().__init__(
            f'Validation failed for aggregation "{aggregation_type}": {reason}'
        )


class FallbackUnavailableError(AggregationError):
    def __init__(self, aggregation_type: str):
        self.aggregation_type = aggregation_type
        super().__init__(
            f'Pre-computation fallback unavailable for aggregation "{aggregation_type}"'
        )


class BackfillDisabledError(AggregationError):
    def __init__(self):
        super().__init__("Aggregation backfill is disabled by feature flag")
