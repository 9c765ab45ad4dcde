"""State store interface.

A small subset of key-value primitives (sets, hashes, integer counters,
sorted sets). Every call is atomic on its own; callers never get a
transaction spanning several calls.

Ordering contract: ``smembers`` returns members in insertion order and
``hgetall`` returns fields in order of their last write, oldest first.
"""

from abc import ABC, abstractmethod


class StateStore(ABC):
    """Abstract async key-value store."""

    # ---- sets ----
    @abstractmethod
    async def sadd(self, key: str, *members: str) -> int:
        """Add members; return how many were not already present."""

    @abstractmethod
    async def scard(self, key: str) -> int:
        """Number of members in the set."""

    @abstractmethod
    async def smembers(self, key: str) -> list[str]:
        """All members, oldest first."""

    @abstractmethod
    async def sismember(self, key: str, member: str) -> bool:
        """Whether ``member`` is in the set."""

    # ---- hashes ----
    @abstractmethod
    async def hset(self, key: str, field: str, value: str) -> bool:
        """Set a field; return True when the field is new."""

    @abstractmethod
    async def hget(self, key: str, field: str) -> str | None:
        """Value of a field, or None."""

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        """All fields, least recently written first."""

    @abstractmethod
    async def hlen(self, key: str) -> int:
        """Number of fields."""

    # ---- counters ----
    @abstractmethod
    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        """Increment an integer hash field; return the new value."""

    @abstractmethod
    async def hgetall_int(self, key: str) -> dict[str, int]:
        """All integer fields of a counter hash."""

    @abstractmethod
    async def incrby(self, key: str, amount: int = 1) -> int:
        """Increment a plain counter; return the new value."""

    @abstractmethod
    async def get_int(self, key: str) -> int:
        """Value of a plain counter (0 when missing)."""

    # ---- sorted sets ----
    @abstractmethod
    async def zadd(self, key: str, member: str, score: float) -> bool:
        """Add or re-score a member; return True when the member is new."""

    @abstractmethod
    async def zrangebyscore(self, key: str, min_score: float, max_score: float) -> list[str]:
        """Members with ``min_score <= score <= max_score``, lowest score first."""

    @abstractmethod
    async def zrevrange_withscores(self, key: str, count: int) -> list[tuple[str, float]]:
        """The ``count`` highest-scored members, highest first."""

    @abstractmethod
    async def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        """Remove members with ``min_score <= score <= max_score``; return how many."""

    # ---- keys ----
    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys of any type; return how many existed."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the store is reachable."""

    async def close(self) -> None:
        """Release resources held by the store."""
