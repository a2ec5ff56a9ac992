"""
Runtime settings for the aggregation cache.

Everything is plain environment configuration (loaded from `.env` by
python-dotenv in main.py). Malformed values are logged and replaced by
defaults; nothing in here is allowed to stop the service from booting.
"""

import json
import logging
import os
from datetime import timedelta
from typing import Mapping

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "postgresql+asyncpg://localhost/aggcache"
DEFAULT_TTL_SECONDS = 15 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 600


def _env_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", key, raw, default)
        return default


def _env_ttl_overrides(environ: Mapping[str, str], key: str) -> dict[str, int]:
    raw = environ.get(key)
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring malformed %s: %s", key, e)
        return {}
    if not isinstance(parsed, dict):
        logger.warning("Ignoring %s: expected a JSON object", key)
        return {}

    overrides = {}
    for aggregation_type, seconds in parsed.items():
        # bool is an int subclass, reject it explicitly
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
            logger.warning(
                "Ignoring TTL override %s=%r: expected a positive integer",
                aggregation_type,
                seconds,
            )
            continue
        overrides[str(aggregation_type)] = seconds
    return overrides


class AggregationSettings(BaseModel):
    database_url: str = DEFAULT_DATABASE_URL
    default_ttl_seconds: int = Field(default=DEFAULT_TTL_SECONDS, gt=0)
    ttl_overrides: dict[str, int] = Field(default_factory=dict)
    schema_version: int = Field(default=1, ge=1)
    sweep_interval_seconds: int = Field(default=DEFAULT_SWEEP_INTERVAL_SECONDS, ge=0)
    log_level: str = "INFO"
    frontend_url: str = "http://localhost:5173"

    @property
    def default_ttl(self) -> timedelta:
        return timedelta(seconds=self.default_ttl_seconds)

    @property
    def ttl_override_map(self) -> dict[str, timedelta]:
        return {
            aggregation_type: timedelta(seconds=seconds)
            for aggregation_type, seconds in self.ttl_overrides.items()
        }

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AggregationSettings":
        environ = os.environ if environ is None else environ

        default_ttl = _env_int(environ, "AGGREGATION_DEFAULT_TTL_SECONDS", DEFAULT_TTL_SECONDS)
        if default_ttl <= 0:
            logger.warning("AGGREGATION_DEFAULT_TTL_SECONDS must be positive, using default")
            default_ttl = DEFAULT_TTL_SECONDS

        schema_version = _env_int(environ, "AGGREGATION_SCHEMA_VERSION", 1)
        if schema_version < 1:
            logger.warning("AGGREGATION_SCHEMA_VERSION must be >= 1, using 1")
            schema_version = 1

        sweep_interval = _env_int(
            environ, "AGGREGATION_SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS
        )

        return cls(
            database_url=environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
            default_ttl_seconds=default_ttl,
            ttl_overrides=_env_ttl_overrides(environ, "AGGREGATION_TTL_OVERRIDES"),
            schema_version=schema_version,
            sweep_interval_seconds=max(sweep_interval, 0),
            log_level=environ.get("LOG_LEVEL", "INFO"),
            frontend_url=environ.get("FRONTEND_URL", "http://localhost:5173"),
        )
