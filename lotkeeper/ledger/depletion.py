"""FIFO lot depletion for investment sells.

A sell of *N* units of one ``(owner, ticker, category)`` position consumes
the oldest lots first.  Lots that are fully consumed are deleted; at most one
lot (the boundary lot) survives with a reduced quantity.

Example::

    from lotkeeper.ledger.depletion import LotDepletionEngine
    from lotkeeper.storage import InMemoryLotStore

    engine = LotDepletionEngine(InMemoryLotStore())
    # ... lots of 10 (Jan) and 5 (Feb) XEQT in the TFSA ...
    result = engine.sell("me@example.com", "XEQT", "TFSA", 12)
    # Jan lot deleted, Feb lot reduced to 3.

The whole read, check and mutate sequence runs under a per-triple lock and
inside one store transaction, so concurrent sells of the same position are
serialized and a storage failure half-way leaves the lots as they were.
"""

import logging
import threading
from contextlib import contextmanager
from decimal import Decimal

from lotkeeper.errors import InsufficientQuantityError, InvalidInputError

from .lot import (
    Lot,
    LotDepletion,
    SellResult,
    normalize_category,
    normalize_ticker,
    require_identifier,
    to_decimal,
)

log = logging.getLogger(__name__)


def plan_depletion(lots: list[Lot], requested: Decimal) -> list[LotDepletion]:
    """Work out which lots a sell of *requested* units consumes.

    Pure function: *lots* must already be in FIFO order and hold at least
    *requested* units in total.

    Args:
        lots: Open lots of one position, oldest first.
        requested: Positive number of units to sell.

    Returns:
        One :class:`LotDepletion` per lot touched, in the order consumed.
    """
    remaining = requested
    plan: list[LotDepletion] = []

    for lot in lots:
        if remaining <= 0:
            break

        if lot.quantity <= remaining:
            sold = lot.quantity
            remaining -= lot.quantity
        else:
            sold = remaining
            remaining = Decimal("0")

        plan.append(
            LotDepletion(
                lot_id=lot.lot_id,
                purchase_date=lot.purchase_date,
                book_price=lot.book_price,
                quantity_sold=sold,
                remaining_quantity=lot.quantity - sold,
            )
        )

    return plan


class LotDepletionEngine:
    """Applies FIFO sells against a :class:`~lotkeeper.storage.BaseLotStore`.

    Args:
        store: Where the lots live.
    """

    def __init__(self, store):
        self.store = store
        # key -> [lock, number of sells holding or waiting on it]
        self._locks: dict[tuple[str, str, str], list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _position_lock(self, key: tuple[str, str, str]):
        """Hold the lock of one position; it is dropped once no sell uses it."""
        with self._locks_guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def sell(self, owner: str, ticker: str, category: str, quantity) -> SellResult:
        """Sell *quantity* units of a position, oldest lots first.

        Args:
            owner: Account whose lots are sold.
            ticker: Instrument symbol (case-insensitive).
            category: Account bucket the lots are held in.
            quantity: Units to sell; anything :func:`to_decimal` accepts.

        Returns:
            A :class:`SellResult` describing every lot touched.

        Raises:
            InvalidInputError: Missing identifiers or a non-positive quantity.
                Raised before the store is touched.
            InsufficientQuantityError: The position holds fewer units than
                requested.  No lot is changed.
            StorageError: The store failed; the transaction is rolled back.
        """
        owner = require_identifier(owner, "owner")
        ticker = normalize_ticker(ticker)
        category = normalize_category(category)
        requested = to_decimal(quantity, "quantity")
        if requested <= 0:
            raise InvalidInputError(f"quantity must be positive, got {requested}")

        key = (owner, ticker, category)
        with self._position_lock(key), self.store.transaction():
            lots = self.store.find_lots(owner, ticker, category)
            owned = sum((lot.quantity for lot in lots), Decimal("0"))

            if owned < requested:
                log.info(
                    "Rejected sell of %s %s (%s) for %s: only %s held",
                    requested, ticker, category, owner, owned,
                )
                raise InsufficientQuantityError(ticker, category, owned, requested)

            plan = plan_depletion(lots, requested)
            for step in plan:
                if step.closed:
                    self.store.delete_lot(step.lot_id)
                    log.debug("Closed lot %s (%s units)", step.lot_id, step.quantity_sold)
                else:
                    self.store.update_lot_quantity(step.lot_id, step.remaining_quantity)
                    log.debug(
                        "Reduced lot %s by %s to %s",
                        step.lot_id, step.quantity_sold, step.remaining_quantity,
                    )

        log.info(
            "Sold %s %s (%s) for %s across %d lot(s)",
            requested, ticker, category, owner, len(plan),
        )
        return SellResult(
            owner=owner,
            ticker=ticker,
            category=category,
            requested_quantity=requested,
            owned_before=owned,
            depletions=plan,
        )
