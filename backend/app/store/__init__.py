"""State store backends."""

from app.store.base import StateStore
from app.store.memory import MemoryStore

__all__ = ["MemoryStore", "StateStore"]
