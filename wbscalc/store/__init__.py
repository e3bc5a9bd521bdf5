"""Item store implementations."""

from wbscalc.store.base import ItemStore
from wbscalc.store.memory import InMemoryStore

__all__ = ["InMemoryStore", "ItemStore"]
