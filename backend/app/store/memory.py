"""In-process state store for single-instance development and tests."""

from app.store.base import StateStore


class MemoryStore(StateStore):
    """Keeps everything in dictionaries owned by this process."""

    def __init__(self):
        self._sets: dict[str, dict[str, None]] = {}
        self._hashes: dict[str, dict[str, str]] = {}
        self._counter_hashes: dict[str, dict[str, int]] = {}
        self._counters: dict[str, int] = {}
        self._zsets: dict[str, dict[str, float]] = {}

    async def sadd(self, key: str, *members: str) -> int:
        members_set = self._sets.setdefault(key, {})
        added = 0
        for member in members:
            if member not in members_set:
                members_set[member] = None
                added += 1
        return added

    async def scard(self, key: str) -> int:
        return len(self._sets.get(key, {}))

    async def smembers(self, key: str) -> list[str]:
        return list(self._sets.get(key, {}))

    async def sismember(self, key: str, member: str) -> bool:
        return member in self._sets.get(key, {})

    async def hset(self, key: str, field: str, value: str) -> bool:
        fields = self._hashes.setdefault(key, {})
        is_new = fields.pop(field, None) is None
        fields[field] = value
        return is_new

    async def hget(self, key: str, field: str) -> str | None:
        return self._hashes.get(key, {}).get(field)

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(self._hashes.get(key, {}))

    async def hlen(self, key: str) -> int:
        return len(self._hashes.get(key, {}))

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        fields = self._counter_hashes.setdefault(key, {})
        fields[field] = fields.get(field, 0) + amount
        return fields[field]

    async def hgetall_int(self, key: str) -> dict[str, int]:
        return dict(self._counter_hashes.get(key, {}))

    async def incrby(self, key: str, amount: int = 1) -> int:
        self._counters[key] = self._counters.get(key, 0) + amount
        return self._counters[key]

    async def get_int(self, key: str) -> int:
        return self._counters.get(key, 0)

    async def zadd(self, key: str, member: str, score: float) -> bool:
        members = self._zsets.setdefault(key, {})
        is_new = member not in members
        members[member] = score
        return is_new

    async def zrangebyscore(self, key: str, min_score: float, max_score: float) -> list[str]:
        members = self._zsets.get(key, {})
        in_range = [(score, member) for member, score in members.items() if min_score <= score <= max_score]
        return [member for _, member in sorted(in_range)]

    async def zrevrange_withscores(self, key: str, count: int) -> list[tuple[str, float]]:
        members = self._zsets.get(key, {})
        ranked = sorted(members.items(), key=lambda item: (item[1], item[0]), reverse=True)
        return ranked[:count]

    async def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        members = self._zsets.get(key, {})
        doomed = [member for member, score in members.items() if min_score <= score <= max_score]
        for member in doomed:
            del members[member]
        return len(doomed)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            existed = False
            for namespace in (
                self._sets,
                self._hashes,
                self._counter_hashes,
                self._counters,
                self._zsets,
            ):
                if namespace.pop(key, None) is not None:
                    existed = True
            deleted += int(existed)
        return deleted

    async def ping(self) -> bool:
        return True
