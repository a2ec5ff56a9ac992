from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from aggcache.models.aggregation.FilterOptions import Product


class WatchRecord(BaseModel):
    """A single watch event as handed to aggregation functions."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    watched_at: Optional[datetime] = None
    video_id: Optional[str] = None
    video_title: Optional[str] = None
    channel_title: Optional[str] = None
    product: Product = Product.YOUTUBE
    topics: List[str] = Field(default_factory=list)
