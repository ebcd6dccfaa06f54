"""Tests for reading lot exports from CSV / TSV files."""

from datetime import datetime
from decimal import Decimal

import pytest

from lotkeeper.errors import InvalidInputError
from lotkeeper.utils.lot_csv_loader import read_lot_csv


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


class TestReadLotCsv:
    def test_comma_separated(self, tmp_path):
        path = _write(
            tmp_path,
            "lots.csv",
            "ticker,quantity,bookPrice,category,purchaseDate\n"
            "xeqt,10,28.50,tfsa,2024-01-15\n",
        )
        records, skipped = read_lot_csv(path)
        assert skipped == 0
        assert records == [
            {
                "ticker": "XEQT",
                "quantity": Decimal("10"),
                "book_price": Decimal("28.50"),
                "category": "TFSA",
                "purchase_date": datetime(2024, 1, 15),
            }
        ]

    def test_tab_separated_with_aliases(self, tmp_path):
        path = _write(
            tmp_path,
            "lots.tsv",
            "Symbol\tShares\tCost\tAccount\tDate\n"
            "VFV\t3\t$1,101.25\tRRSP\t2024-02-01\n",
        )
        records, skipped = read_lot_csv(path)
        assert skipped == 0
        assert records[0]["ticker"] == "VFV"
        assert records[0]["quantity"] == Decimal("3")
        assert records[0]["book_price"] == Decimal("1101.25")
        assert records[0]["category"] == "RRSP"

    def test_dates_with_offsets_become_naive_utc(self, tmp_path):
        path = _write(
            tmp_path,
            "lots.csv",
            "ticker,quantity,bookPrice,category,purchaseDate\n"
            "XEQT,1,10,TFSA,2024-03-01\n"
            "XEQT,1,10,TFSA,2024-03-01T10:00:00+05:00\n"
            "XEQT,1,10,TFSA,2024-03-01T07:00:00Z\n",
        )
        records, skipped = read_lot_csv(path)
        assert skipped == 0
        assert [r["purchase_date"] for r in records] == [
            datetime(2024, 3, 1),
            datetime(2024, 3, 1, 5, 0),
            datetime(2024, 3, 1, 7, 0),
        ]
        assert all(r["purchase_date"].tzinfo is None for r in records)

    def test_missing_date_column_leaves_date_empty(self, tmp_path):
        path = _write(tmp_path, "lots.csv", "ticker,qty,price,category\nXEQT,1,2,TFSA\n")
        records, _ = read_lot_csv(path)
        assert records[0]["purchase_date"] is None

    def test_bad_rows_are_skipped(self, tmp_path):
        path = _write(
            tmp_path,
            "lots.csv",
            "ticker,quantity,price,category,date\n"
            "XEQT,ten,2,TFSA,2024-01-01\n"
            ",1,2,TFSA,2024-01-01\n"
            "XEQT,1,,TFSA,2024-01-01\n"
            "XEQT,1,2,TFSA,someday\n",
        )
        records, skipped = read_lot_csv(path)
        assert skipped == 3
        assert len(records) == 1
        assert records[0]["purchase_date"] is None

    def test_missing_required_column(self, tmp_path):
        path = _write(tmp_path, "lots.csv", "ticker,quantity\nXEQT,1\n")
        with pytest.raises(InvalidInputError, match="missing column"):
            read_lot_csv(path)

    def test_empty_file(self, tmp_path):
        path = _write(tmp_path, "lots.csv", "")
        with pytest.raises(InvalidInputError):
            read_lot_csv(path)
