"""
Last-price quotes for ticker symbols.

Uses the API Ninjas stock price endpoint:
  GET https://api.api-ninjas.com/v1/stockprice?ticker=XEQT
  header X-Api-Key: <key>
which answers with a JSON object such as
  {"ticker": "XEQT", "name": "...", "price": 31.42, ...}

Usage::

    from lotkeeper.utils.price_client import ApiNinjasPriceClient

    client = ApiNinjasPriceClient(api_key="...")
    client.get_price("XEQT")              # Decimal("31.42")
    client.get_prices(["XEQT", "VFV"])    # {"XEQT": Decimal(...), ...}
"""

import logging
from decimal import Decimal

import requests

from lotkeeper.errors import InvalidInputError, PriceLookupError
from lotkeeper.ledger.lot import normalize_ticker, to_decimal

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.api-ninjas.com/v1/stockprice"


class ApiNinjasPriceClient:
    """Fetch current prices over HTTP.

    Args:
        api_key: API Ninjas key.  Quotes fail with :class:`PriceLookupError`
            while it is unset.
        base_url: Stock price endpoint.
        timeout: Seconds to wait for each response.
        session: Optional :class:`requests.Session` to reuse connections.
    """

    def __init__(self, api_key=None, base_url=DEFAULT_BASE_URL, timeout=10, session=None):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_price(self, ticker: str) -> Decimal:
        """Return the last traded price of *ticker*.

        Raises:
            PriceLookupError: No API key, a network or HTTP failure, or a
                response without a ``price`` field.
        """
        ticker = normalize_ticker(ticker)
        if not self.api_key:
            raise PriceLookupError("Price API key is not configured (set API_NINJAS_KEY)")

        try:
            response = self.session.get(
                self.base_url,
                params={"ticker": ticker},
                headers={"X-Api-Key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            raise PriceLookupError(f"Error fetching price for {ticker}: {e}") from e

        # An unknown ticker comes back as an empty list rather than an error.
        if not isinstance(payload, dict) or payload.get("price") is None:
            raise PriceLookupError(f"No price returned for {ticker}")
        try:
            return to_decimal(payload["price"], "price")
        except InvalidInputError as e:
            raise PriceLookupError(f"Bad price returned for {ticker}: {e}") from e

    def get_prices(self, tickers) -> dict[str, Decimal]:
        """Quote every unique ticker, skipping the ones that fail."""
        prices = {}
        for ticker in sorted({normalize_ticker(t) for t in tickers}):
            try:
                prices[ticker] = self.get_price(ticker)
            except PriceLookupError as e:
                log.warning("Skipping price for %s: %s", ticker, e)
        return prices
