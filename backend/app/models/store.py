"""Tables backing the PostgreSQL state store.

Each table holds one kind of key-value structure; ``key`` is the logical
store key (e.g. ``revealed:cells``).
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Double, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, utc_now


class StoreSetMember(Base):
    """A member of a set; ``id`` preserves insertion order."""

    __tablename__ = "kv_set_members"
    __table_args__ = (UniqueConstraint("key", "member", name="uq_kv_set_members_key_member"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    store_key: Mapped[str] = mapped_column("key", String(200), nullable=False)
    member: Mapped[str] = mapped_column(String(500), nullable=False)


class StoreHashField(Base):
    """A string field of a hash."""

    __tablename__ = "kv_hash_fields"

    store_key: Mapped[str] = mapped_column("key", String(200), primary_key=True)
    field: Mapped[str] = mapped_column(String(500), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    written_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )


class StoreCounter(Base):
    """An integer counter; plain counters use an empty ``field``."""

    __tablename__ = "kv_counters"

    store_key: Mapped[str] = mapped_column("key", String(200), primary_key=True)
    field: Mapped[str] = mapped_column(String(500), primary_key=True, default="")
    value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class StoreSortedSetMember(Base):
    """A scored member of a sorted set."""

    __tablename__ = "kv_sorted_set_members"
    __table_args__ = (Index("ix_kv_sorted_set_members_key_score", "key", "score"),)

    store_key: Mapped[str] = mapped_column("key", String(200), primary_key=True)
    member: Mapped[str] = mapped_column(String(500), primary_key=True)
    score: Mapped[float] = mapped_column(Double, nullable=False)
