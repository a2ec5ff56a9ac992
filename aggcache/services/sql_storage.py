import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aggcache.models.aggregation import AggregationKey, StoredAggregationRecord
from aggcache.models.db.PrecomputedAggregation import PrecomputedAggregation
from aggcache.services.storage_layer import StorageAdapter

logger = logging.getLogger(__name__)


def _key_clause(key: AggregationKey):
    return (
        PrecomputedAggregation.user_id == key.user_id,
        PrecomputedAggregation.aggregation_type == key.aggregation_type,
        PrecomputedAggregation.filter_hash == key.filter_hash,
    )


def _to_record(row: PrecomputedAggregation) -> StoredAggregationRecord:
    return StoredAggregationRecord(
        id=row.id,
        user_id=row.user_id,
        aggregation_type=row.aggregation_type,
        filter_hash=row.filter_hash,
        data=row.data,
        computed_at=row.computed_at,
        expires_at=row.expires_at,
        version=row.version,
        metadata=row.meta,
    )


class SqlStorageAdapter(StorageAdapter):
    """
    Durable adapter over the `precomputed_aggregations` table.

    One row per (user_id, aggregation_type, filter_hash). `store` updates the
    existing row in place so the persistence id stays stable across refreshes.
    SELECT ... FOR UPDATE cannot lock a row that does not exist yet, so two
    writers inserting the same new key race on the unique constraint; the
    loser retries once as an update.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def store(self, record: StoredAggregationRecord) -> None:
        try:
            await self._upsert(record)
        except IntegrityError:
            # A concurrent writer inserted the same key first; the row exists now
            logger.info("Insert race on %s, retrying as update", record.key.cache_key)
            await self._upsert(record)

    async def _upsert(self, record: StoredAggregationRecord) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(PrecomputedAggregation)
                    .where(*_key_clause(record.key))
                    .with_for_update()
                )
                row = result.scalar_one_or_none()

                if row is None:
                    row = PrecomputedAggregation(
                        user_id=record.user_id,
                        aggregation_type=record.aggregation_type,
                        filter_hash=record.filter_hash,
                    )
                    if record.id:
                        row.id = record.id
                    session.add(row)

                row.data = record.data
                row.computed_at = record.computed_at
                row.expires_at = record.expires_at
                row.version = record.version
                row.meta = record.metadata

    async def fetch(self, key: AggregationKey) -> StoredAggregationRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PrecomputedAggregation).where(*_key_clause(key)).limit(1)
            )
            row = result.scalar_one_or_none()
            return _to_record(row) if row else None

    async def remove(self, key: AggregationKey) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(PrecomputedAggregation).where(*_key_clause(key)))
            await session.commit()

    async def fetch_expired(self, before_iso: str) -> list[StoredAggregationRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PrecomputedAggregation)
                .where(PrecomputedAggregation.expires_at <= before_iso)
                .order_by(PrecomputedAggregation.expires_at.asc())
            )
            return [_to_record(row) for row in result.scalars().all()]
