# lotkeeper/storage/base_store.py

from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator

from lotkeeper.errors import InvalidInputError
from lotkeeper.ledger.lot import Lot


class BaseLotStore(ABC):
    """
    Abstract base class for lot storage backends.
    Subclass this to keep lots somewhere new (a file, a database, a service).

    Every method returns copies: mutating a returned Lot never changes the
    stored one. Quantities are only changed through update_lot_quantity.

    Ordering contract for find_lots:
        - purchase_date ascending
        - ties broken by sequence ascending (insertion order)
    """

    @abstractmethod
    def insert_lot(self, lot: Lot) -> Lot:
        """
        Persist a new lot and return the stored copy with its sequence set.
        """

    @abstractmethod
    def get_lot(self, lot_id: str) -> Lot:
        """
        Return the lot with this id. Raises LotNotFoundError if absent.
        """

    @abstractmethod
    def find_lots(self, owner: str, ticker: str, category: str) -> list[Lot]:
        """
        All surviving lots for one (owner, ticker, category) triple in FIFO order.
        """

    @abstractmethod
    def list_lots(self, owner: str) -> list[Lot]:
        """
        All of an owner's lots, newest insertion first.
        """

    @abstractmethod
    def delete_lot(self, lot_id: str) -> None:
        """
        Remove a lot. Raises LotNotFoundError if absent.
        """

    @abstractmethod
    def update_lot_quantity(self, lot_id: str, new_quantity: Decimal) -> None:
        """
        Set a lot's remaining quantity. Raises LotNotFoundError if absent.
        """

    @abstractmethod
    def update_lot_details(self, lot: Lot) -> Lot:
        """
        Overwrite category, purchase_date and book_price of an existing lot.
        The stored quantity is left as it is.
        """

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Group several writes so they all apply or none do.
        Re-raises whatever error aborted the block after rolling back.
        """

    def close(self) -> None:
        pass

    @staticmethod
    def _check_quantity(new_quantity: Decimal) -> None:
        if new_quantity <= 0:
            raise InvalidInputError(
                f"Lot quantity must stay positive, got {new_quantity}; delete the lot instead"
            )

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
