"""
SQLite-backed lot store.

Schema (table ``lots``):
    - seq (INTEGER PRIMARY KEY AUTOINCREMENT): insertion order, FIFO tie-break
    - lot_id (TEXT UNIQUE)
    - owner, ticker, category (TEXT)
    - quantity, book_price (TEXT): Decimal values stored as text to keep precision
    - purchase_date (TEXT): fixed-width naive UTC ISO timestamp, so text order is time order

Every sqlite3.Error is re-raised as StorageError.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal

from lotkeeper.errors import LotNotFoundError, StorageError
from lotkeeper.ledger.lot import Lot, to_utc_naive

from .base_store import BaseLotStore

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS lots (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    lot_id TEXT NOT NULL UNIQUE,
    owner TEXT NOT NULL,
    ticker TEXT NOT NULL,
    category TEXT NOT NULL,
    quantity TEXT NOT NULL,
    purchase_date TEXT NOT NULL,
    book_price TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_lots_triple ON lots (owner, ticker, category);
"""

_COLUMNS = "seq, lot_id, owner, ticker, category, quantity, purchase_date, book_price"


def _format_date(value: datetime) -> str:
    return to_utc_naive(value).isoformat(sep=" ", timespec="microseconds")


def _row_to_lot(row) -> Lot:
    seq, lot_id, owner, ticker, category, quantity, purchase_date, book_price = row
    return Lot(
        owner=owner,
        ticker=ticker,
        category=category,
        quantity=Decimal(quantity),
        purchase_date=datetime.fromisoformat(purchase_date),
        book_price=Decimal(book_price),
        lot_id=lot_id,
        sequence=seq,
    )


class SqliteLotStore(BaseLotStore):
    """Persist lots in a SQLite database file (or ``":memory:"``).

    The connection runs in autocommit mode; :meth:`transaction` opens an
    explicit ``BEGIN IMMEDIATE`` so the write lock is taken before the first
    read of a sell.  A re-entrant lock serializes threads sharing the store.

    Args:
        path: Database file path, or ``":memory:"``.
        timeout: Seconds to wait for another connection's lock before a
            statement fails with :class:`StorageError`.
    """

    def __init__(self, path: str = ":memory:", timeout: float = 5.0):
        self.path = path
        self.timeout = timeout
        self._lock = threading.RLock()
        self._depth = 0
        try:
            self.conn = sqlite3.connect(
                path, timeout=timeout, isolation_level=None, check_same_thread=False
            )
            self.conn.executescript(_SCHEMA)
        except sqlite3.Error as e:
            raise StorageError(f"Could not open lot database at {path}: {e}") from e
        log.debug("Opened lot database at %s", path)

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"Lot database error: {e}") from e

    def insert_lot(self, lot: Lot) -> Lot:
        with self._lock:
            cursor = self._execute(
                "INSERT INTO lots (lot_id, owner, ticker, category, quantity, purchase_date, book_price) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    lot.lot_id,
                    lot.owner,
                    lot.ticker,
                    lot.category,
                    str(lot.quantity),
                    _format_date(lot.purchase_date),
                    str(lot.book_price),
                ),
            )
            return self.get_lot_by_seq(cursor.lastrowid)

    def get_lot_by_seq(self, seq: int) -> Lot:
        with self._lock:
            row = self._execute(f"SELECT {_COLUMNS} FROM lots WHERE seq = ?", (seq,)).fetchone()
        if row is None:
            raise LotNotFoundError(str(seq))
        return _row_to_lot(row)

    def get_lot(self, lot_id: str) -> Lot:
        with self._lock:
            row = self._execute(f"SELECT {_COLUMNS} FROM lots WHERE lot_id = ?", (lot_id,)).fetchone()
        if row is None:
            raise LotNotFoundError(lot_id)
        return _row_to_lot(row)

    def find_lots(self, owner: str, ticker: str, category: str) -> list[Lot]:
        with self._lock:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM lots WHERE owner = ? AND ticker = ? AND category = ? "
                "ORDER BY purchase_date ASC, seq ASC",
                (owner, ticker, category),
            ).fetchall()
        return [_row_to_lot(row) for row in rows]

    def list_lots(self, owner: str) -> list[Lot]:
        with self._lock:
            rows = self._execute(
                f"SELECT {_COLUMNS} FROM lots WHERE owner = ? ORDER BY seq DESC", (owner,)
            ).fetchall()
        return [_row_to_lot(row) for row in rows]

    def delete_lot(self, lot_id: str) -> None:
        with self._lock:
            cursor = self._execute("DELETE FROM lots WHERE lot_id = ?", (lot_id,))
        if cursor.rowcount == 0:
            raise LotNotFoundError(lot_id)

    def update_lot_quantity(self, lot_id: str, new_quantity: Decimal) -> None:
        self._check_quantity(new_quantity)
        with self._lock:
            cursor = self._execute(
                "UPDATE lots SET quantity = ? WHERE lot_id = ?", (str(new_quantity), lot_id)
            )
        if cursor.rowcount == 0:
            raise LotNotFoundError(lot_id)

    def update_lot_details(self, lot: Lot) -> Lot:
        with self._lock:
            cursor = self._execute(
                "UPDATE lots SET category = ?, purchase_date = ?, book_price = ? WHERE lot_id = ?",
                (lot.category, _format_date(lot.purchase_date), str(lot.book_price), lot.lot_id),
            )
            if cursor.rowcount == 0:
                raise LotNotFoundError(lot.lot_id)
            return self.get_lot(lot.lot_id)

    def _rollback(self) -> None:
        if not self.conn.in_transaction:
            return
        try:
            self.conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            log.warning("Rollback of lot transaction failed: %s", e)
        else:
            log.debug("Rolled back lot transaction")

    @contextmanager
    def transaction(self):
        with self._lock:
            if self._depth > 0:
                # Already inside a transaction on this connection; join it.
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self._execute("BEGIN IMMEDIATE")
            self._depth = 1
            try:
                try:
                    yield
                except BaseException:
                    self._rollback()
                    raise
                try:
                    self._execute("COMMIT")
                except StorageError:
                    # A failed COMMIT (e.g. SQLITE_BUSY) leaves the transaction open.
                    self._rollback()
                    raise
            finally:
                self._depth = 0

    def close(self) -> None:
        with self._lock:
            self.conn.close()
