# lotkeeper/portfolio/valuation.py

import pandas as pd

LOT_COLUMNS = [
    "lot_id",
    "ticker",
    "category",
    "quantity",
    "purchase_date",
    "book_price",
    "book_value",
]


def lots_frame(lots) -> pd.DataFrame:
    """
    One row per lot, with float columns for analysis.

    :param lots: Iterable of Lot objects.
    :return: DataFrame with columns LOT_COLUMNS (empty when there are no lots).
    """
    records = [
        {
            "lot_id": lot.lot_id,
            "ticker": lot.ticker,
            "category": lot.category,
            "quantity": float(lot.quantity),
            "purchase_date": pd.Timestamp(lot.purchase_date),
            "book_price": float(lot.book_price),
            "book_value": float(lot.quantity * lot.book_price),
        }
        for lot in lots
    ]
    return pd.DataFrame.from_records(records, columns=LOT_COLUMNS)


def holdings_summary(lots) -> pd.DataFrame:
    """
    Aggregate lots into positions.

    :param lots: Iterable of Lot objects.
    :return: DataFrame indexed by (category, ticker) with columns:
        - quantity: total units held
        - book_value: total cost basis
        - avg_book_price: book_value / quantity
        - lots: number of open lots
    """
    df = lots_frame(lots)
    if df.empty:
        empty_index = pd.MultiIndex.from_tuples([], names=["category", "ticker"])
        return pd.DataFrame(
            columns=["quantity", "book_value", "avg_book_price", "lots"], index=empty_index
        )

    summary = df.groupby(["category", "ticker"]).agg(
        quantity=("quantity", "sum"),
        book_value=("book_value", "sum"),
        lots=("lot_id", "count"),
    )
    summary["avg_book_price"] = summary["book_value"] / summary["quantity"]
    return summary[["quantity", "book_value", "avg_book_price", "lots"]]


def category_totals(lots, prices=None) -> pd.DataFrame:
    """
    Book value, market value and unrealized gain per account category.

    :param lots: Iterable of Lot objects.
    :param prices: Dictionary of current prices
        Key: Ticker (string)
        Value: Last price (number). Tickers without a price are valued at book.
    :return: DataFrame indexed by category with columns book_value,
        market_value and gain.
    """
    prices = {ticker: float(price) for ticker, price in (prices or {}).items()}
    df = lots_frame(lots)
    if df.empty:
        return pd.DataFrame(
            columns=["book_value", "market_value", "gain"],
            index=pd.Index([], name="category"),
        )

    current = df["ticker"].map(prices).fillna(df["book_price"])
    df["market_value"] = df["quantity"] * current
    totals = df.groupby("category")[["book_value", "market_value"]].sum()
    totals["gain"] = totals["market_value"] - totals["book_value"]
    return totals
