from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
import uuid
from aggcache.database import Base


class WatchEvent(Base):
    __tablename__ = "watch_events"
    __table_args__ = (
        Index("ix_watch_events_user_time", "user_id", "watched_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    video_id: Mapped[str | None] = mapped_column(String, nullable=True)
    video_title: Mapped[str | None] = mapped_column(String, nullable=True)
    channel_title: Mapped[str | None] = mapped_column(String, nullable=True)
    product: Mapped[str] = mapped_column(String, nullable=False, default="YouTube")
    topics: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    watched_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc)
    )
