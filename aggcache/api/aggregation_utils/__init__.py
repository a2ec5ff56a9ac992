"""
Built-in aggregations.

Registered at startup; anything else is registered by the embedding app.
"""

from aggcache.models.aggregation import AggregationRegistration

from aggcache.api.aggregation_utils.kpi_overview import compute_kpi_overview
from aggcache.api.aggregation_utils.kpi_top_channels import (
    compute_top_channels,
    validate_top_channels,
)

DEFAULT_REGISTRATIONS = [
    AggregationRegistration(type="kpi", compute=compute_kpi_overview),
    AggregationRegistration(
        type="top_channels",
        compute=compute_top_channels,
        validate=validate_top_channels,
    ),
]

__all__ = [
    "DEFAULT_REGISTRATIONS",
    "compute_kpi_overview",
    "compute_top_channels",
    "validate_top_channels",
]
