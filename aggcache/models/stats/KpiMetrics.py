from pydantic import BaseModel, Field
from typing import List


class KpiMetrics(BaseModel):
    """Headline numbers for the analytics overview."""
    total_videos: int = Field(ge=0)
    unique_channels: int = Field(ge=0)
    unique_topics: int = Field(ge=0)


class ChannelShare(BaseModel):
    """Single channel with its watch count and share of all watches."""
    channel: str
    count: int = Field(ge=0)
    percentage: float = Field(ge=0, le=100)


class TopChannels(BaseModel):
    channels: List[ChannelShare]
    total_watches: int = Field(ge=0)
