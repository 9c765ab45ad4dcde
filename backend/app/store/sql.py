"""PostgreSQL-backed state store.

Each primitive runs in its own short session and commits immediately, so
concurrent coroutines never share an ``AsyncSession`` and every call is
atomic on its own.
"""

import logging

from sqlalchemy import delete, func, literal_column, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import utc_now
from app.errors import StoreError
from app.models import StoreCounter, StoreHashField, StoreSetMember, StoreSortedSetMember
from app.store.base import StateStore

logger = logging.getLogger(__name__)

# True when ON CONFLICT inserted a row rather than updating one
_INSERTED = literal_column("(xmax = 0)").label("inserted")


class SqlStore(StateStore):
    """State store on top of the ``kv_*`` tables."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def _write(self, stmt):
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                rows = result.all() if result.returns_rows else []
                await session.commit()
                return rows
        except SQLAlchemyError as e:
            logger.error(f"State store write failed: {e}")
            raise StoreError("State store unavailable") from e

    async def _read(self, stmt):
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return result.all()
        except SQLAlchemyError as e:
            logger.error(f"State store read failed: {e}")
            raise StoreError("State store unavailable") from e

    # ---- sets ----
    async def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        stmt = (
            pg_insert(StoreSetMember)
            .values([{"store_key": key, "member": m} for m in dict.fromkeys(members)])
            .on_conflict_do_nothing(constraint="uq_kv_set_members_key_member")
            .returning(StoreSetMember.member)
        )
        return len(await self._write(stmt))

    async def scard(self, key: str) -> int:
        rows = await self._read(
            select(func.count()).select_from(StoreSetMember).where(StoreSetMember.store_key == key)
        )
        return rows[0][0]

    async def smembers(self, key: str) -> list[str]:
        rows = await self._read(
            select(StoreSetMember.member)
            .where(StoreSetMember.store_key == key)
            .order_by(StoreSetMember.id)
        )
        return [row.member for row in rows]

    async def sismember(self, key: str, member: str) -> bool:
        rows = await self._read(
            select(StoreSetMember.id)
            .where(StoreSetMember.store_key == key)
            .where(StoreSetMember.member == member)
        )
        return bool(rows)

    # ---- hashes ----
    async def hset(self, key: str, field: str, value: str) -> bool:
        stmt = pg_insert(StoreHashField).values(
            store_key=key, field=field, value=value, written_at=utc_now()
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[StoreHashField.store_key, StoreHashField.field],
            set_={"value": stmt.excluded.value, "written_at": stmt.excluded.written_at},
        ).returning(_INSERTED)
        rows = await self._write(stmt)
        return bool(rows and rows[0].inserted)

    async def hget(self, key: str, field: str) -> str | None:
        rows = await self._read(
            select(StoreHashField.value)
            .where(StoreHashField.store_key == key)
            .where(StoreHashField.field == field)
        )
        return rows[0].value if rows else None

    async def hgetall(self, key: str) -> dict[str, str]:
        rows = await self._read(
            select(StoreHashField.field, StoreHashField.value)
            .where(StoreHashField.store_key == key)
            .order_by(StoreHashField.written_at, StoreHashField.field)
        )
        return {row.field: row.value for row in rows}

    async def hlen(self, key: str) -> int:
        rows = await self._read(
            select(func.count()).select_from(StoreHashField).where(StoreHashField.store_key == key)
        )
        return rows[0][0]

    # ---- counters ----
    async def _increment(self, key: str, field: str, amount: int) -> int:
        stmt = pg_insert(StoreCounter).values(store_key=key, field=field, value=amount)
        stmt = stmt.on_conflict_do_update(
            index_elements=[StoreCounter.store_key, StoreCounter.field],
            set_={"value": StoreCounter.value + stmt.excluded.value},
        ).returning(StoreCounter.value)
        rows = await self._write(stmt)
        return rows[0].value

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        return await self._increment(key, field, amount)

    async def hgetall_int(self, key: str) -> dict[str, int]:
        rows = await self._read(
            select(StoreCounter.field, StoreCounter.value).where(StoreCounter.store_key == key)
        )
        return {row.field: row.value for row in rows}

    async def incrby(self, key: str, amount: int = 1) -> int:
        return await self._increment(key, "", amount)

    async def get_int(self, key: str) -> int:
        rows = await self._read(
            select(StoreCounter.value)
            .where(StoreCounter.store_key == key)
            .where(StoreCounter.field == "")
        )
        return rows[0].value if rows else 0

    # ---- sorted sets ----
    async def zadd(self, key: str, member: str, score: float) -> bool:
        stmt = pg_insert(StoreSortedSetMember).values(store_key=key, member=member, score=score)
        stmt = stmt.on_conflict_do_update(
            index_elements=[StoreSortedSetMember.store_key, StoreSortedSetMember.member],
            set_={"score": stmt.excluded.score},
        ).returning(_INSERTED)
        rows = await self._write(stmt)
        return bool(rows and rows[0].inserted)

    async def zrangebyscore(self, key: str, min_score: float, max_score: float) -> list[str]:
        rows = await self._read(
            select(StoreSortedSetMember.member)
            .where(StoreSortedSetMember.store_key == key)
            .where(StoreSortedSetMember.score.between(min_score, max_score))
            .order_by(StoreSortedSetMember.score, StoreSortedSetMember.member)
        )
        return [row.member for row in rows]

    async def zrevrange_withscores(self, key: str, count: int) -> list[tuple[str, float]]:
        rows = await self._read(
            select(StoreSortedSetMember.member, StoreSortedSetMember.score)
            .where(StoreSortedSetMember.store_key == key)
            .order_by(StoreSortedSetMember.score.desc(), StoreSortedSetMember.member.desc())
            .limit(count)
        )
        return [(row.member, row.score) for row in rows]

    async def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        rows = await self._write(
            delete(StoreSortedSetMember)
            .where(StoreSortedSetMember.store_key == key)
            .where(StoreSortedSetMember.score.between(min_score, max_score))
            .returning(StoreSortedSetMember.member)
        )
        return len(rows)

    # ---- keys ----
    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        existed: set[str] = set()
        for model in (StoreSetMember, StoreHashField, StoreCounter, StoreSortedSetMember):
            rows = await self._write(
                delete(model).where(model.store_key.in_(keys)).returning(model.store_key)
            )
            existed.update(row[0] for row in rows)
        logger.info(f"Deleted store keys: {sorted(existed)}")
        return len(existed)

    async def ping(self) -> bool:
        rows = await self._read(select(1))
        return bool(rows)
