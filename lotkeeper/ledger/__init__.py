# lotkeeper/ledger/__init__.py

from .depletion import LotDepletionEngine, plan_depletion
from .lot import Lot, LotDepletion, SellResult

__all__ = ["LotDepletionEngine", "plan_depletion", "Lot", "LotDepletion", "SellResult"]
