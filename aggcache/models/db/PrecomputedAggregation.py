from sqlalchemy import JSON, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import uuid
from aggcache.database import Base


class PrecomputedAggregation(Base):
    __tablename__ = "precomputed_aggregations"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "aggregation_type", "filter_hash", name="uq_precomputed_aggregation_key"
        ),
        Index("ix_precomputed_aggregations_user_type", "user_id", "aggregation_type"),
        Index("ix_precomputed_aggregations_expires_at", "expires_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    aggregation_type: Mapped[str] = mapped_column(String, nullable=False)
    filter_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    data: Mapped[dict] = mapped_column(JSON, nullable=True)
    # ISO-8601 UTC strings; fixed format so lexical order == time order
    computed_at: Mapped[str] = mapped_column(String(32), nullable=False)
    expires_at: Mapped[str] = mapped_column(String(32), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # "metadata" is reserved on declarative classes
    meta: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
