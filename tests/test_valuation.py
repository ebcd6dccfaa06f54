"""Tests for the pandas portfolio summaries."""

from datetime import datetime
from decimal import Decimal

import pandas as pd
import pytest

from lotkeeper.portfolio.valuation import (
    LOT_COLUMNS,
    category_totals,
    holdings_summary,
    lots_frame,
)

from tests.conftest import seed_lots


@pytest.fixture
def mixed_lots(store):
    seed_lots(store, [(10, datetime(2024, 1, 1), 20), (10, datetime(2024, 2, 1), 30)])
    seed_lots(store, [(4, datetime(2024, 1, 1), 100)], ticker="VFV", category="RRSP")
    seed_lots(store, [("0.5", datetime(2024, 1, 1), 50)], ticker="CASH.TO", category="CASH")
    return store.list_lots("me@example.com")


class TestLotsFrame:
    def test_columns_and_book_value(self, mixed_lots):
        df = lots_frame(mixed_lots)
        assert list(df.columns) == LOT_COLUMNS
        assert len(df) == 4
        assert df["book_value"].sum() == pytest.approx(200 + 300 + 400 + 25)

    def test_empty(self):
        df = lots_frame([])
        assert df.empty
        assert list(df.columns) == LOT_COLUMNS


class TestHoldingsSummary:
    def test_groups_by_category_and_ticker(self, mixed_lots):
        summary = holdings_summary(mixed_lots)
        assert summary.index.names == ["category", "ticker"]
        xeqt = summary.loc[("TFSA", "XEQT")]
        assert xeqt["quantity"] == pytest.approx(20.0)
        assert xeqt["book_value"] == pytest.approx(500.0)
        assert xeqt["avg_book_price"] == pytest.approx(25.0)
        assert xeqt["lots"] == 2
        assert summary.loc[("CASH", "CASH.TO"), "quantity"] == pytest.approx(0.5)

    def test_empty(self):
        summary = holdings_summary([])
        assert summary.empty
        assert list(summary.columns) == ["quantity", "book_value", "avg_book_price", "lots"]


class TestCategoryTotals:
    def test_uses_quoted_prices(self, mixed_lots):
        totals = category_totals(mixed_lots, {"XEQT": Decimal("27"), "VFV": 90.0})
        assert totals.loc["TFSA", "book_value"] == pytest.approx(500.0)
        assert totals.loc["TFSA", "market_value"] == pytest.approx(540.0)
        assert totals.loc["TFSA", "gain"] == pytest.approx(40.0)
        assert totals.loc["RRSP", "gain"] == pytest.approx(-40.0)

    def test_missing_price_falls_back_to_book(self, mixed_lots):
        totals = category_totals(mixed_lots, {"XEQT": 27})
        assert totals.loc["CASH", "market_value"] == pytest.approx(25.0)
        assert totals.loc["CASH", "gain"] == pytest.approx(0.0)

    def test_no_prices_at_all(self, mixed_lots):
        totals = category_totals(mixed_lots)
        assert (totals["gain"] == 0).all()
        assert sorted(totals.index) == ["CASH", "RRSP", "TFSA"]

    def test_empty(self):
        totals = category_totals([], {"XEQT": 1})
        assert isinstance(totals, pd.DataFrame)
        assert totals.empty
