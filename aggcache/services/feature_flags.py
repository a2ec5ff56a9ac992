"""
Feature flags gating the precomputation paths.

Resolution order is fixed: runtime override > environment override >
built-in default. The environment is read once, from a single JSON object
in PRECOMPUTATION_FLAGS, e.g.

    PRECOMPUTATION_FLAGS='{"precomputation_service": true}'

Bad input there is logged and skipped. Runtime overrides live for the
process lifetime only; operators use them as an escape hatch.
"""

import json
import logging
import os
import threading
from typing import Mapping

from aggcache.core.clock import Clock, default_clock
from aggcache.models.flags.FeatureFlag import (
    FeatureFlagName,
    FeatureFlagSource,
    FeatureFlagState,
)

logger = logging.getLogger(__name__)

ENV_FLAG_KEY = "PRECOMPUTATION_FLAGS"

DEFAULT_FLAG_VALUES: dict[FeatureFlagName, bool] = {
    FeatureFlagName.PRECOMPUTATION_SERVICE: False,
    FeatureFlagName.PRECOMPUTATION_BACKFILL: False,
    FeatureFlagName.PRECOMPUTATION_FALLBACKS: True,
}


def _coerce_flag(flag: FeatureFlagName | str) -> FeatureFlagName:
    try:
        return FeatureFlagName(flag)
    except ValueError:
        raise ValueError(f"Unknown feature flag: {flag!r}") from None


def parse_env_flags(raw: str | None) -> dict[FeatureFlagName, bool]:
    """Parse the PRECOMPUTATION_FLAGS value. Never raises."""
    if not raw or not raw.strip():
        return {}

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse %s, using defaults: %s", ENV_FLAG_KEY, e)
        return {}

    if not isinstance(parsed, dict):
        logger.warning("Ignoring %s: expected a JSON object of flag -> bool", ENV_FLAG_KEY)
        return {}

    flags: dict[FeatureFlagName, bool] = {}
    for name, value in parsed.items():
        try:
            flag = FeatureFlagName(name)
        except ValueError:
            logger.warning("Ignoring unknown feature flag %r in %s", name, ENV_FLAG_KEY)
            continue
        if not isinstance(value, bool):
            logger.warning(
                "Ignoring feature flag %s=%r in %s: expected true or false",
                name,
                value,
                ENV_FLAG_KEY,
            )
            continue
        flags[flag] = value
    return flags


class FeatureFlagRegistry:
    def __init__(
        self,
        env_overrides: Mapping[FeatureFlagName, bool] | None = None,
        clock: Clock | None = None,
        defaults: Mapping[FeatureFlagName, bool] | None = None,
    ):
        self._clock = clock or default_clock
        self._booted_at = self._clock.now()
        self._defaults = {**DEFAULT_FLAG_VALUES, **(defaults or {})}
        self._env: dict[FeatureFlagName, FeatureFlagState] = {
            _coerce_flag(flag): FeatureFlagState(
                enabled=enabled,
                last_updated=self._booted_at,
                source=FeatureFlagSource.ENV,
            )
            for flag, enabled in (env_overrides or {}).items()
        }
        self._runtime: dict[FeatureFlagName, FeatureFlagState] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, clock: Clock | None = None
    ) -> "FeatureFlagRegistry":
        environ = os.environ if environ is None else environ
        overrides = parse_env_flags(environ.get(ENV_FLAG_KEY))
        if overrides:
            logger.info(
                "Feature flag env overrides: %s",
                {flag.value: enabled for flag, enabled in overrides.items()},
            )
        return cls(env_overrides=overrides, clock=clock)

    def get_state(self, flag: FeatureFlagName | str) -> FeatureFlagState:
        flag = _coerce_flag(flag)
        with self._lock:
            runtime = self._runtime.get(flag)
        if runtime is not None:
            return runtime
        if flag in self._env:
            return self._env[flag]
        return FeatureFlagState(
            enabled=self._defaults[flag],
            last_updated=self._booted_at,
            source=FeatureFlagSource.DEFAULT,
        )

    def is_enabled(self, flag: FeatureFlagName | str) -> bool:
        return self.get_state(flag).enabled

    def set_runtime_override(self, flag: FeatureFlagName | str, enabled: bool) -> FeatureFlagState:
        flag = _coerce_flag(flag)
        state = FeatureFlagState(
            enabled=enabled,
            last_updated=self._clock.now(),
            source=FeatureFlagSource.RUNTIME,
        )
        with self._lock:
            self._runtime[flag] = state
        logger.info("Feature flag %s overridden at runtime: enabled=%s", flag.value, enabled)
        return state

    def clear_runtime_overrides(self) -> None:
        with self._lock:
            self._runtime.clear()
        logger.info("Runtime feature flag overrides cleared")

    def list_all(self) -> dict[FeatureFlagName, FeatureFlagState]:
        return {flag: self.get_state(flag) for flag in FeatureFlagName}
