# lotkeeper/errors.py

from decimal import Decimal


class LotKeeperError(Exception):
    """Base class for every error raised by lotkeeper."""


class InvalidInputError(LotKeeperError, ValueError):
    """A request carried missing or malformed parameters."""


class InsufficientQuantityError(LotKeeperError, ValueError):
    """A sell asked for more units than the open lots hold.

    Attributes:
        owned: Total quantity across the matching lots.
        requested: Quantity the caller tried to sell.
    """

    def __init__(self, ticker: str, category: str, owned: Decimal, requested: Decimal):
        self.ticker = ticker
        self.category = category
        self.owned = owned
        self.requested = requested
        super().__init__(
            f"Insufficient shares of {ticker} ({category}). "
            f"You have {owned}, but tried to sell {requested}."
        )


class LotNotFoundError(LotKeeperError, LookupError):
    """No lot exists with the given id (or it belongs to another owner)."""

    def __init__(self, lot_id: str):
        self.lot_id = lot_id
        super().__init__(f"Investment lot not found: {lot_id}")


class StorageError(LotKeeperError):
    """The storage backend failed to read or write."""


class PriceLookupError(LotKeeperError):
    """A price quote could not be fetched."""
