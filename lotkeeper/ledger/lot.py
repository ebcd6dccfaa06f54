"""Investment lots and the records a FIFO sell produces.

Each purchase is stored as a :class:`Lot` that records the owner, instrument,
account category, date, units and cost basis.  When units are sold the
:class:`~lotkeeper.ledger.depletion.LotDepletionEngine` consumes lots in FIFO
order and reports each lot it touched as a :class:`LotDepletion`, collected
in a :class:`SellResult`.

Quantities and prices are :class:`~decimal.Decimal` so that selling the
exact amount held leaves exactly zero behind.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

from lotkeeper.errors import InvalidInputError


def to_decimal(value, name: str = "value") -> Decimal:
    """Parse *value* into a finite :class:`Decimal`.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Raises:
        InvalidInputError: If *value* is missing, not numeric, or not finite.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"{name} is required")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidInputError(f"{name} must be a finite number, got {value}")
        value = str(value)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidInputError(f"{name} must be a number, got {value!r}") from None
    if not result.is_finite():
        raise InvalidInputError(f"{name} must be a finite number, got {value}")
    return result


def normalize_ticker(ticker) -> str:
    """Trim and upper-case a ticker symbol, rejecting blanks."""
    if ticker is None or not str(ticker).strip():
        raise InvalidInputError("ticker is required")
    return str(ticker).strip().upper()


def normalize_category(category) -> str:
    """Account buckets are matched case-insensitively: ``"tfsa"`` is ``"TFSA"``."""
    if category is None or not str(category).strip():
        raise InvalidInputError("category is required")
    return str(category).strip().upper()


def to_utc_naive(value: datetime) -> datetime:
    """Convert an aware timestamp to naive UTC; naive values are taken as UTC.

    Lots are ordered by comparing purchase dates, and Python refuses to
    compare naive with aware datetimes, so every stored date is naive UTC.
    """
    if value.tzinfo is not None and value.utcoffset() is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(tzinfo=None)


def require_identifier(value, name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidInputError(f"{name} is required")
    return str(value).strip()


@dataclass
class Lot:
    """A single purchase lot of an instrument.

    Attributes:
        owner: Account the lot belongs to.
        ticker: Instrument symbol (upper case).
        category: Account bucket, e.g. ``"TFSA"``.  Lots are only fungible
            within the same ``(ticker, category)`` pair.
        quantity: Units remaining in this lot (reduced on sells).
        purchase_date: When the units were bought; defines FIFO order.
        book_price: Cost per unit at purchase.
        lot_id: Auto-generated 8-character identifier.
        sequence: Insertion order assigned by the store; breaks ties between
            lots bought on the same date.
    """

    owner: str
    ticker: str
    category: str
    quantity: Decimal
    purchase_date: datetime
    book_price: Decimal
    lot_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    sequence: int = 0

    def __post_init__(self):
        if isinstance(self.purchase_date, datetime):
            self.purchase_date = to_utc_naive(self.purchase_date)

    @property
    def book_value(self) -> Decimal:
        return self.quantity * self.book_price

    def fifo_key(self) -> tuple:
        return (self.purchase_date, self.sequence)


@dataclass
class LotDepletion:
    """Units taken out of one lot by a sell.

    Attributes:
        lot_id: Identifier of the lot that was (partially) sold.
        purchase_date: Date the lot was bought.
        book_price: Cost per unit of the lot.
        quantity_sold: Units taken from this lot.
        remaining_quantity: Units left in the lot afterwards (0 when closed).
    """

    lot_id: str
    purchase_date: datetime
    book_price: Decimal
    quantity_sold: Decimal
    remaining_quantity: Decimal

    @property
    def closed(self) -> bool:
        """True when the lot was fully consumed and deleted."""
        return self.remaining_quantity == 0

    @property
    def cost_basis(self) -> Decimal:
        return self.quantity_sold * self.book_price


@dataclass
class SellResult:
    """Outcome of a successful FIFO sell."""

    owner: str
    ticker: str
    category: str
    requested_quantity: Decimal
    owned_before: Decimal
    depletions: list[LotDepletion] = field(default_factory=list)

    @property
    def owned_after(self) -> Decimal:
        return self.owned_before - self.requested_quantity

    @property
    def cost_basis(self) -> Decimal:
        """Total book cost of the units sold."""
        return sum((d.cost_basis for d in self.depletions), Decimal("0"))

    @property
    def closed_lot_ids(self) -> list[str]:
        return [d.lot_id for d in self.depletions if d.closed]

    @property
    def partial_lot_id(self) -> Optional[str]:
        """Id of the boundary lot left open with a reduced quantity, if any."""
        for d in self.depletions:
            if not d.closed:
                return d.lot_id
        return None

    def realized_gain(self, price_per_unit) -> Decimal:
        """Gain (or loss) of this sell at *price_per_unit*."""
        price = to_decimal(price_per_unit, "price_per_unit")
        return price * self.requested_quantity - self.cost_basis
