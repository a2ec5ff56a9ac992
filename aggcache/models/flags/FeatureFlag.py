import enum
from datetime import datetime

from pydantic import BaseModel


class FeatureFlagName(str, enum.Enum):
    PRECOMPUTATION_SERVICE = "precomputation_service"
    PRECOMPUTATION_FALLBACKS = "precomputation_fallbacks"
    PRECOMPUTATION_BACKFILL = "precomputation_backfill"


class FeatureFlagSource(str, enum.Enum):
    DEFAULT = "default"
    ENV = "env"
    RUNTIME = "runtime"


class FeatureFlagState(BaseModel):
    enabled: bool
    last_updated: datetime
    source: FeatureFlagSource


class FeatureFlagUpdate(BaseModel):
    enabled: bool
