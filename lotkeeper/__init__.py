# lotkeeper/__init__.py

from .errors import (
    InsufficientQuantityError,
    InvalidInputError,
    LotKeeperError,
    LotNotFoundError,
    PriceLookupError,
    StorageError,
)
from .ledger import Lot, LotDepletionEngine, SellResult
from .portfolio import InvestmentService
from .storage import BaseLotStore, InMemoryLotStore, SqliteLotStore

__all__ = [
    "BaseLotStore",
    "InMemoryLotStore",
    "InsufficientQuantityError",
    "InvalidInputError",
    "InvestmentService",
    "Lot",
    "LotDepletionEngine",
    "LotKeeperError",
    "LotNotFoundError",
    "PriceLookupError",
    "SellResult",
    "SqliteLotStore",
    "StorageError",
]
