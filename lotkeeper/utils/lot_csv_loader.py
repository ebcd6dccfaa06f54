"""
Reader for brokerage-style lot exports (CSV or TSV).

Expected columns (header names are matched case-insensitively, and the
usual spellings are accepted):

  ticker         ticker | symbol
  quantity       quantity | qty | units | shares
  book_price     bookPrice | book_price | price | cost
  category       category | account
  purchase_date  purchaseDate | purchase_date | date   (optional)

Comma- and tab-separated files are both accepted; the delimiter is sniffed
from the file.  Rows missing a required value or carrying a number that
does not parse are skipped and counted rather than failing the whole file.

Usage::

    from lotkeeper.utils.lot_csv_loader import read_lot_csv

    records, skipped = read_lot_csv("exports/tfsa.tsv")
"""

import csv
import logging

import pandas as pd

from lotkeeper.errors import InvalidInputError
from lotkeeper.ledger.lot import normalize_category, normalize_ticker, to_decimal

log = logging.getLogger(__name__)

_COLUMN_ALIASES = {
    "ticker": "ticker",
    "symbol": "ticker",
    "quantity": "quantity",
    "qty": "quantity",
    "units": "quantity",
    "shares": "quantity",
    "bookprice": "book_price",
    "book_price": "book_price",
    "price": "book_price",
    "cost": "book_price",
    "category": "category",
    "account": "category",
    "purchasedate": "purchase_date",
    "purchase_date": "purchase_date",
    "date": "purchase_date",
}

REQUIRED_COLUMNS = ("ticker", "quantity", "book_price", "category")


def _normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    rename = {}
    for col in df.columns:
        key = str(col).strip().lower().replace(" ", "_")
        if key in _COLUMN_ALIASES and _COLUMN_ALIASES[key] not in rename.values():
            rename[col] = _COLUMN_ALIASES[key]
    return df.rename(columns=rename)


def _parse_amount(value, name):
    # "$1,234.50" -> Decimal("1234.50")
    cleaned = str(value).replace(",", "").replace("$", "").strip()
    return to_decimal(cleaned, name)


def read_lot_csv(path) -> tuple[list[dict], int]:
    """Parse a lot export into buy records.

    Args:
        path: File path (or buffer) of the CSV/TSV export.

    Returns:
        ``(records, skipped)`` where each record is a dict with ``ticker``,
        ``quantity``, ``book_price``, ``category`` and ``purchase_date``
        (a :class:`datetime` or ``None``), and *skipped* counts rejected rows.

    Raises:
        InvalidInputError: The file has no header row or lacks a required
            column.
    """
    try:
        df = pd.read_csv(path, sep=None, engine="python", dtype=str, skipinitialspace=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, csv.Error) as e:
        raise InvalidInputError(f"Could not read lot file {path}: {e}") from e

    df = _normalize_columns(df)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise InvalidInputError(
            f"Lot file is missing column(s) {missing}. Got: {list(df.columns)}"
        )

    if "purchase_date" in df.columns:
        # Offsets are folded into naive UTC; dates without one are taken as UTC.
        dates = pd.to_datetime(
            df["purchase_date"], errors="coerce", utc=True, format="mixed"
        ).dt.tz_localize(None)
    else:
        dates = pd.Series(pd.NaT, index=df.index)

    records = []
    skipped = 0
    for idx, row in df.iterrows():
        if any(pd.isna(row[c]) or not str(row[c]).strip() for c in REQUIRED_COLUMNS):
            skipped += 1
            continue
        try:
            record = {
                "ticker": normalize_ticker(row["ticker"]),
                "quantity": _parse_amount(row["quantity"], "quantity"),
                "book_price": _parse_amount(row["book_price"], "book_price"),
                "category": normalize_category(row["category"]),
                "purchase_date": None if pd.isna(dates[idx]) else dates[idx].to_pydatetime(),
            }
        except InvalidInputError as e:
            log.debug("Skipping row %s of %s: %s", idx, path, e)
            skipped += 1
            continue
        records.append(record)

    log.info("Read %d lot(s) from %s (%d skipped)", len(records), path, skipped)
    return records, skipped
