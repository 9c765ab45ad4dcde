"""SQLAlchemy ORM models."""

from app.models.store import StoreCounter, StoreHashField, StoreSetMember, StoreSortedSetMember

__all__ = [
    "StoreCounter",
    "StoreHashField",
    "StoreSetMember",
    "StoreSortedSetMember",
]
