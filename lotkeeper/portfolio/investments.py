"""Investment portfolio operations for one storage backend.

:class:`InvestmentService` is the surface the command line (or any other
front end) talks to.  Every method takes the ``owner`` explicitly; resolving
who the caller is belongs to whatever sits in front of the service.

Buys, edits and deletes are plain single-lot writes.  Sells go through the
:class:`~lotkeeper.ledger.depletion.LotDepletionEngine`, which is the only
path that changes a lot's quantity.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import pandas as pd

from lotkeeper.errors import InvalidInputError, LotNotFoundError
from lotkeeper.ledger.depletion import LotDepletionEngine
from lotkeeper.ledger.lot import (
    Lot,
    SellResult,
    normalize_category,
    normalize_ticker,
    require_identifier,
    to_decimal,
    to_utc_naive,
)
from lotkeeper.storage.base_store import BaseLotStore
from lotkeeper.utils.lot_csv_loader import read_lot_csv

from . import valuation

log = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ("RRSP", "TFSA", "RESP", "CASH")


@dataclass
class ImportResult:
    count: int
    skipped: int


def _parse_date(value) -> datetime:
    """Parse a purchase date into naive UTC."""
    if isinstance(value, datetime):
        return to_utc_naive(value)
    try:
        parsed = pd.Timestamp(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"purchase_date must be a date, got {value!r}") from None
    if pd.isna(parsed):
        raise InvalidInputError(f"purchase_date must be a date, got {value!r}")
    return to_utc_naive(parsed.to_pydatetime())


class InvestmentService:
    """Buy, edit, delete, sell and summarize investment lots.

    Args:
        store: Storage backend for the lots.
        categories: Allowed account categories.  ``None`` accepts any.
    """

    def __init__(self, store: BaseLotStore, categories=DEFAULT_CATEGORIES):
        assert isinstance(
            store, BaseLotStore
        ), f"store must be an instance of BaseLotStore, got {type(store)}"
        self.store = store
        self.categories = (
            None if categories is None else tuple(normalize_category(c) for c in categories)
        )
        self.engine = LotDepletionEngine(store)

    def _check_category(self, category) -> str:
        category = normalize_category(category)
        if self.categories is not None and category not in self.categories:
            raise InvalidInputError(
                f"Unknown category {category!r}; expected one of {list(self.categories)}"
            )
        return category

    def _owned_lot(self, owner: str, lot_id: str) -> Lot:
        lot = self.store.get_lot(lot_id)
        if lot.owner != owner:
            raise LotNotFoundError(lot_id)
        return lot

    def _build_lot(self, owner, ticker, quantity, book_price, category, purchase_date) -> Lot:
        quantity = to_decimal(quantity, "quantity")
        if quantity <= 0:
            raise InvalidInputError(f"quantity must be positive, got {quantity}")
        book_price = to_decimal(book_price, "book_price")
        if book_price < 0:
            raise InvalidInputError(f"book_price cannot be negative, got {book_price}")
        return Lot(
            owner=owner,
            ticker=normalize_ticker(ticker),
            category=self._check_category(category),
            quantity=quantity,
            purchase_date=(
                datetime.now(timezone.utc) if purchase_date is None else _parse_date(purchase_date)
            ),
            book_price=book_price,
        )

    def buy(
        self,
        owner: str,
        ticker: str,
        quantity,
        book_price,
        category: str,
        purchase_date=None,
    ) -> Lot:
        """Record a purchase as a new lot.

        Args:
            owner: Account making the purchase.
            ticker: Instrument symbol; trimmed and upper-cased.
            quantity: Units bought (> 0).
            book_price: Cost per unit (>= 0).
            category: Account bucket, one of :attr:`categories`.
            purchase_date: When the units were bought.  Defaults to now.

        Returns:
            The stored :class:`Lot`.
        """
        owner = require_identifier(owner, "owner")
        lot = self._build_lot(owner, ticker, quantity, book_price, category, purchase_date)
        stored = self.store.insert_lot(lot)
        log.info(
            "Bought %s %s (%s) at %s for %s as lot %s",
            stored.quantity, stored.ticker, stored.category, stored.book_price, owner, stored.lot_id,
        )
        return stored

    def list_lots(self, owner: str) -> list[Lot]:
        """All of *owner*'s open lots, most recently added first."""
        return self.store.list_lots(require_identifier(owner, "owner"))

    def update_lot(
        self,
        owner: str,
        lot_id: str,
        purchase_date=None,
        book_price=None,
        category: Optional[str] = None,
    ) -> Lot:
        """Correct the descriptive fields of a lot.

        Quantity cannot be edited here; sell (or delete and re-buy) instead.

        Raises:
            LotNotFoundError: No such lot, or it belongs to someone else.
        """
        owner = require_identifier(owner, "owner")
        lot = self._owned_lot(owner, lot_id)

        changes = {}
        if purchase_date is not None:
            changes["purchase_date"] = _parse_date(purchase_date)
        if book_price is not None:
            price = to_decimal(book_price, "book_price")
            if price < 0:
                raise InvalidInputError(f"book_price cannot be negative, got {price}")
            changes["book_price"] = price
        if category is not None:
            changes["category"] = self._check_category(category)
        if not changes:
            return lot

        updated = self.store.update_lot_details(replace(lot, **changes))
        log.info("Updated lot %s: %s", lot_id, sorted(changes))
        return updated

    def delete_lot(self, owner: str, lot_id: str) -> None:
        """Remove a lot entered by mistake.

        Raises:
            LotNotFoundError: No such lot, or it belongs to someone else.
        """
        owner = require_identifier(owner, "owner")
        with self.store.transaction():
            self._owned_lot(owner, lot_id)
            self.store.delete_lot(lot_id)
        log.info("Deleted lot %s for %s", lot_id, owner)

    def sell(self, owner: str, ticker: str, category: str, quantity) -> SellResult:
        """Sell units of a position FIFO.  See :meth:`LotDepletionEngine.sell`."""
        return self.engine.sell(owner, ticker, category, quantity)

    def import_csv(self, owner: str, path) -> ImportResult:
        """Buy every valid row of a lot export, all or nothing.

        Rows the reader cannot parse are skipped; a row that parses but fails
        validation (say, an unknown category) aborts the whole import.
        """
        owner = require_identifier(owner, "owner")
        records, skipped = read_lot_csv(path)
        lots = [
            self._build_lot(
                owner,
                r["ticker"],
                r["quantity"],
                r["book_price"],
                r["category"],
                r["purchase_date"],
            )
            for r in records
        ]
        with self.store.transaction():
            for lot in lots:
                self.store.insert_lot(lot)
        log.info("Imported %d lot(s) for %s from %s (%d skipped)", len(lots), owner, path, skipped)
        return ImportResult(count=len(lots), skipped=skipped)

    def total_quantity(self, owner: str, ticker: str, category: str) -> Decimal:
        lots = self.store.find_lots(
            require_identifier(owner, "owner"), normalize_ticker(ticker), normalize_category(category)
        )
        return sum((lot.quantity for lot in lots), Decimal("0"))

    def holdings(self, owner: str) -> pd.DataFrame:
        """Positions of *owner* grouped by (category, ticker)."""
        return valuation.holdings_summary(self.list_lots(owner))

    def category_totals(self, owner: str, prices=None) -> pd.DataFrame:
        """Book value, market value and gain per category for *owner*."""
        return valuation.category_totals(self.list_lots(owner), prices)
