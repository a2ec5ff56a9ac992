import enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Timeframe(str, enum.Enum):
    MTD = "MTD"
    QTD = "QTD"
    YTD = "YTD"
    LAST_6M = "Last6M"
    LAST_12M = "Last12M"
    ALL = "All"


class Product(str, enum.Enum):
    YOUTUBE = "YouTube"
    YOUTUBE_MUSIC = "YouTube Music"
    ALL = "All"


class FilterOptions(BaseModel):
    """Caller-facing filter set. Collection order is not significant."""
    timeframe: Timeframe = Timeframe.ALL
    product: Product = Product.ALL
    topics: Optional[List[str]] = None
    channels: Optional[List[str]] = None


class NormalizedFilterSet(BaseModel):
    """Canonical form of FilterOptions; the only shape that gets hashed."""
    timeframe: Timeframe
    product: Product
    topics: List[str] = Field(default_factory=list)
    channels: List[str] = Field(default_factory=list)
