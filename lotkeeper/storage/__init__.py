# lotkeeper/storage/__init__.py

from .base_store import BaseLotStore
from .memory_store import InMemoryLotStore
from .sqlite_store import SqliteLotStore

__all__ = ["BaseLotStore", "InMemoryLotStore", "SqliteLotStore"]
