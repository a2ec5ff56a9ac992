"""Tests for filter normalization and canonical keys."""

from aggcache.models.aggregation import FilterOptions, Product, Timeframe
from aggcache.services.filters import (
    build_key,
    clone_filters,
    create_filter_hash,
    normalize_filters,
)


class TestNormalizeFilters:
    def test_collections_are_sorted_and_deduplicated(self) -> None:
        normalized = normalize_filters(
            FilterOptions(topics=["music", "gaming", "music"], channels=["b", "a"])
        )

        assert normalized.topics == ["gaming", "music"]
        assert normalized.channels == ["a", "b"]

    def test_missing_collections_normalize_to_empty(self) -> None:
        normalized = normalize_filters(FilterOptions())

        assert normalized.topics == []
        assert normalized.channels == []
        assert normalized.timeframe == Timeframe.ALL
        assert normalized.product == Product.ALL


class TestFilterHash:
    def test_order_does_not_change_key(self) -> None:
        first = FilterOptions(
            timeframe=Timeframe.YTD,
            product=Product.YOUTUBE,
            topics=["science", "math", "history"],
            channels=["Veritasium", "3Blue1Brown"],
        )
        second = FilterOptions(
            timeframe=Timeframe.YTD,
            product=Product.YOUTUBE,
            topics=["history", "science", "math"],
            channels=["3Blue1Brown", "Veritasium"],
        )

        assert build_key("u1", "kpi", first) == build_key("u1", "kpi", second)

    def test_none_and_empty_collections_hash_identically(self) -> None:
        assert create_filter_hash(FilterOptions(topics=None)) == create_filter_hash(
            FilterOptions(topics=[])
        )

    def test_scalar_fields_change_key(self) -> None:
        base = create_filter_hash(FilterOptions(timeframe=Timeframe.MTD))

        assert base != create_filter_hash(FilterOptions(timeframe=Timeframe.QTD))
        assert base != create_filter_hash(
            FilterOptions(timeframe=Timeframe.MTD, product=Product.YOUTUBE_MUSIC)
        )

    def test_topics_and_channels_are_not_interchangeable(self) -> None:
        assert create_filter_hash(FilterOptions(topics=["x"])) != create_filter_hash(
            FilterOptions(channels=["x"])
        )

    def test_hash_is_fixed_length_hex(self) -> None:
        filter_hash = create_filter_hash(FilterOptions(topics=["a"]))

        assert len(filter_hash) == 64
        int(filter_hash, 16)


class TestBuildKey:
    def test_key_carries_user_and_type(self) -> None:
        key = build_key("u1", "kpi", FilterOptions())

        assert key.user_id == "u1"
        assert key.aggregation_type == "kpi"
        assert key.cache_key.startswith("u1:kpi:")

    def test_different_users_get_different_keys(self) -> None:
        filters = FilterOptions()

        assert build_key("u1", "kpi", filters) != build_key("u2", "kpi", filters)

    def test_keys_are_hashable(self) -> None:
        filters = FilterOptions(channels=["b", "a"])
        keys = {build_key("u1", "kpi", filters), build_key("u1", "kpi", filters)}

        assert len(keys) == 1


def test_clone_filters_is_independent() -> None:
    original = FilterOptions(topics=["a"])
    clone = clone_filters(original)
    clone.topics.append("b")

    assert original.topics == ["a"]
