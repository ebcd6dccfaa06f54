"""Shared fixtures for the lotkeeper test suite.

Provides an in-memory store, a store that records every call made to it, a
store that fails on demand, and a helper for seeding lots, so that no test
ever hits the network or a database file it did not create.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from lotkeeper.errors import StorageError
from lotkeeper.ledger.depletion import LotDepletionEngine
from lotkeeper.ledger.lot import Lot
from lotkeeper.portfolio.investments import InvestmentService
from lotkeeper.storage.memory_store import InMemoryLotStore

OWNER = "me@example.com"

# ---------------------------------------------------------------------------
# Mock helpers
# ---------------------------------------------------------------------------


class RecordingStore(InMemoryLotStore):
    """In-memory store that keeps a log of every public call."""

    def __init__(self):
        super().__init__()
        self.calls: list[tuple] = []

    def insert_lot(self, lot):
        self.calls.append(("insert_lot", lot.lot_id))
        return super().insert_lot(lot)

    def find_lots(self, owner, ticker, category):
        self.calls.append(("find_lots", owner, ticker, category))
        return super().find_lots(owner, ticker, category)

    def delete_lot(self, lot_id):
        self.calls.append(("delete_lot", lot_id))
        return super().delete_lot(lot_id)

    def update_lot_quantity(self, lot_id, new_quantity):
        self.calls.append(("update_lot_quantity", lot_id, new_quantity))
        return super().update_lot_quantity(lot_id, new_quantity)

    def transaction(self):
        self.calls.append(("transaction",))
        return super().transaction()

    def mutations(self):
        return [c for c in self.calls if c[0] in ("delete_lot", "update_lot_quantity")]


class FailingStore(InMemoryLotStore):
    """In-memory store whose writes start failing after *fail_after* succeed."""

    def __init__(self, fail_after=0):
        super().__init__()
        self.fail_after = fail_after
        self.armed = False
        self._writes = 0

    def _maybe_fail(self):
        if not self.armed:
            return
        if self._writes >= self.fail_after:
            raise StorageError("simulated write failure")
        self._writes += 1

    def delete_lot(self, lot_id):
        self._maybe_fail()
        return super().delete_lot(lot_id)

    def update_lot_quantity(self, lot_id, new_quantity):
        self._maybe_fail()
        return super().update_lot_quantity(lot_id, new_quantity)


def seed_lots(store, lots, owner=OWNER, ticker="XEQT", category="TFSA"):
    """Insert ``(quantity, purchase_date)`` pairs and return the stored lots.

    ``book_price`` defaults to 10 when a pair is given; a triple
    ``(quantity, purchase_date, book_price)`` sets it explicitly.
    """
    stored = []
    for entry in lots:
        quantity, purchase_date = entry[0], entry[1]
        book_price = entry[2] if len(entry) > 2 else 10
        stored.append(
            store.insert_lot(
                Lot(
                    owner=owner,
                    ticker=ticker,
                    category=category,
                    quantity=Decimal(str(quantity)),
                    purchase_date=purchase_date,
                    book_price=Decimal(str(book_price)),
                )
            )
        )
    return stored


def total_quantity(store, owner=OWNER, ticker="XEQT", category="TFSA"):
    return sum((lot.quantity for lot in store.find_lots(owner, ticker, category)), Decimal("0"))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store():
    return InMemoryLotStore()


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
def engine(store):
    return LotDepletionEngine(store)


@pytest.fixture
def service(store):
    return InvestmentService(store)


@pytest.fixture
def two_lots(store):
    """Lots of 10 (2024-01-01) and 5 (2024-02-01) XEQT in the TFSA."""
    return seed_lots(
        store,
        [
            (10, datetime(2024, 1, 1), 20),
            (5, datetime(2024, 2, 1), 25),
        ],
    )
