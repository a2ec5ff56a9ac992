"""
Record source over the `watch_events` table.

Resolves the timeframe filter to a cutoff date (like the temporal trends
window) and narrows by product and channel in SQL. Topic matching happens
in Python because topics live in a JSON column.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aggcache.core.clock import Clock, default_clock
from aggcache.models.aggregation import FilterOptions, Product, Timeframe, WatchRecord
from aggcache.models.db.WatchEvent import WatchEvent


def _months_back(now: datetime, months: int) -> datetime:
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    # Clamp to the last valid day of the target month
    day = now.day
    while True:
        try:
            return now.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def timeframe_start(timeframe: Timeframe, now: datetime) -> datetime | None:
    """First instant covered by `timeframe`, or None for an unbounded window."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if timeframe == Timeframe.MTD:
        return midnight.replace(day=1)
    if timeframe == Timeframe.QTD:
        quarter_month = 3 * ((now.month - 1) // 3) + 1
        return midnight.replace(month=quarter_month, day=1)
    if timeframe == Timeframe.YTD:
        return midnight.replace(month=1, day=1)
    if timeframe == Timeframe.LAST_6M:
        return _months_back(now, 6)
    if timeframe == Timeframe.LAST_12M:
        return _months_back(now, 12)
    return None


class SqlRecordSource:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or default_clock

    async def __call__(self, filters: FilterOptions, user_id: str | None) -> list[WatchRecord]:
        query = select(WatchEvent)

        if user_id is not None:
            query = query.where(WatchEvent.user_id == user_id)
        if filters.product != Product.ALL:
            query = query.where(WatchEvent.product == filters.product.value)

        start = timeframe_start(filters.timeframe, self._clock.now())
        if start is not None:
            # watched_at is stored as naive UTC
            naive_start = start.astimezone(timezone.utc).replace(tzinfo=None)
            query = query.where(WatchEvent.watched_at >= naive_start)

        if filters.channels:
            query = query.where(WatchEvent.channel_title.in_(filters.channels))

        query = query.order_by(WatchEvent.watched_at.asc())

        async with self._session_factory() as session:
            result = await session.execute(query)
            rows = result.scalars().all()

        records = [WatchRecord.model_validate(row) for row in rows]
        if filters.topics:
            wanted = set(filters.topics)
            records = [record for record in records if wanted.intersection(record.topics)]
        return records
