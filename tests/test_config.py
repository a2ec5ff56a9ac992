from datetime import timedelta

from aggcache.core.config import (
    DEFAULT_DATABASE_URL,
    DEFAULT_TTL_SECONDS,
    AggregationSettings,
)


def test_defaults_when_environment_is_empty():
    settings = AggregationSettings.from_env({})

    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.default_ttl == timedelta(minutes=15)
    assert settings.ttl_overrides == {}
    assert settings.schema_version == 1


def test_reads_every_key():
    settings = AggregationSettings.from_env(
        {
            "DATABASE_URL": "sqlite+aiosqlite:///cache.db",
            "AGGREGATION_DEFAULT_TTL_SECONDS": "60",
            "AGGREGATION_TTL_OVERRIDES": '{"kpi": 30}',
            "AGGREGATION_SCHEMA_VERSION": "3",
            "AGGREGATION_SWEEP_INTERVAL_SECONDS": "0",
            "LOG_LEVEL": "DEBUG",
        }
    )

    assert settings.database_url == "sqlite+aiosqlite:///cache.db"
    assert settings.default_ttl_seconds == 60
    assert settings.ttl_override_map == {"kpi": timedelta(seconds=30)}
    assert settings.schema_version == 3
    assert settings.sweep_interval_seconds == 0
    assert settings.log_level == "DEBUG"


def test_malformed_values_fall_back_to_defaults():
    settings = AggregationSettings.from_env(
        {
            "AGGREGATION_DEFAULT_TTL_SECONDS": "fifteen",
            "AGGREGATION_TTL_OVERRIDES": "{broken",
            "AGGREGATION_SCHEMA_VERSION": "0",
        }
    )

    assert settings.default_ttl_seconds == DEFAULT_TTL_SECONDS
    assert settings.ttl_overrides == {}
    assert settings.schema_version == 1


def test_invalid_ttl_overrides_are_skipped():
    settings = AggregationSettings.from_env(
        {"AGGREGATION_TTL_OVERRIDES": '{"kpi": 0, "top_channels": true, "trends": 120, "x": "5"}'}
    )

    assert settings.ttl_overrides == {"trends": 120}


def test_negative_default_ttl_is_rejected():
    settings = AggregationSettings.from_env({"AGGREGATION_DEFAULT_TTL_SECONDS": "-5"})

    assert settings.default_ttl_seconds == DEFAULT_TTL_SECONDS
