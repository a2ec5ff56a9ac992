"""
Filter normalization and canonical cache keys.

Two filter sets that select the same data must produce the same key, so
collection fields are de-duplicated and sorted before hashing. Nothing in
this module does I/O or raises for a well-typed FilterOptions.
"""

import hashlib
import json

from aggcache.models.aggregation import AggregationKey, FilterOptions, NormalizedFilterSet


def normalize_filters(filters: FilterOptions) -> NormalizedFilterSet:
    return NormalizedFilterSet(
        timeframe=filters.timeframe,
        product=filters.product,
        topics=sorted(set(filters.topics or [])),
        channels=sorted(set(filters.channels or [])),
    )


def hash_filters(normalized: NormalizedFilterSet) -> str:
    payload = json.dumps(
        normalized.model_dump(mode="json"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def create_filter_hash(filters: FilterOptions) -> str:
    return hash_filters(normalize_filters(filters))


def build_key(user_id: str, aggregation_type: str, filters: FilterOptions) -> AggregationKey:
    return AggregationKey(
        user_id=user_id,
        aggregation_type=aggregation_type,
        filter_hash=create_filter_hash(filters),
    )


def clone_filters(filters: FilterOptions) -> FilterOptions:
    """Copy that preprocessors may mutate without touching the caller's object."""
    return filters.model_copy(deep=True)
