"""In-process lot store.

Keeps lots in a dict keyed by lot id.  Used by the test-suite and by the
``storage.type=memory`` configuration for throwaway sessions.
"""

import copy
import itertools
import threading
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal

from lotkeeper.errors import LotNotFoundError
from lotkeeper.ledger.lot import Lot

from .base_store import BaseLotStore


class InMemoryLotStore(BaseLotStore):
    """Dict-backed :class:`BaseLotStore`.

    A re-entrant lock guards every access.  :meth:`transaction` holds that lock
    for the whole block and restores a snapshot of the lots if the block
    raises, so a failed multi-step write leaves no trace.
    """

    def __init__(self):
        self._lots: dict[str, Lot] = {}
        self._sequence = itertools.count(1)
        self._lock = threading.RLock()

    def insert_lot(self, lot: Lot) -> Lot:
        with self._lock:
            stored = replace(lot, sequence=next(self._sequence))
            self._lots[stored.lot_id] = stored
            return replace(stored)

    def get_lot(self, lot_id: str) -> Lot:
        with self._lock:
            return replace(self._get(lot_id))

    def find_lots(self, owner: str, ticker: str, category: str) -> list[Lot]:
        with self._lock:
            matches = [
                replace(lot)
                for lot in self._lots.values()
                if lot.owner == owner and lot.ticker == ticker and lot.category == category
            ]
        return sorted(matches, key=Lot.fifo_key)

    def list_lots(self, owner: str) -> list[Lot]:
        with self._lock:
            lots = [replace(lot) for lot in self._lots.values() if lot.owner == owner]
        return sorted(lots, key=lambda lot: lot.sequence, reverse=True)

    def delete_lot(self, lot_id: str) -> None:
        with self._lock:
            self._get(lot_id)
            del self._lots[lot_id]

    def update_lot_quantity(self, lot_id: str, new_quantity: Decimal) -> None:
        self._check_quantity(new_quantity)
        with self._lock:
            self._get(lot_id).quantity = new_quantity

    def update_lot_details(self, lot: Lot) -> Lot:
        with self._lock:
            stored = self._get(lot.lot_id)
            stored.category = lot.category
            stored.purchase_date = lot.purchase_date
            stored.book_price = lot.book_price
            return replace(stored)

    @contextmanager
    def transaction(self):
        with self._lock:
            snapshot = copy.deepcopy(self._lots)
            try:
                yield
            except BaseException:
                self._lots = snapshot
                raise

    def _get(self, lot_id: str) -> Lot:
        try:
            return self._lots[lot_id]
        except KeyError:
            raise LotNotFoundError(lot_id) from None
