"""Tests for the HTTP price client.  The network is always mocked."""

from decimal import Decimal

import pytest
import requests

from lotkeeper.errors import PriceLookupError
from lotkeeper.utils.price_client import ApiNinjasPriceClient

# ---------------------------------------------------------------------------
# Mock helpers
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, payload=None, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """Stands in for ``requests.Session``; answers from a ticker -> response map."""

    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        response = self.responses[params["ticker"]]
        if isinstance(response, Exception):
            raise response
        return response


# ---------------------------------------------------------------------------
# get_price
# ---------------------------------------------------------------------------


class TestGetPrice:
    def test_returns_decimal_price(self):
        session = FakeSession({"XEQT": FakeResponse({"ticker": "XEQT", "price": 31.42})})
        client = ApiNinjasPriceClient(api_key="secret", timeout=5, session=session)

        assert client.get_price("xeqt") == Decimal("31.42")
        sent = session.requests[0]
        assert sent["params"] == {"ticker": "XEQT"}
        assert sent["headers"] == {"X-Api-Key": "secret"}
        assert sent["timeout"] == 5

    def test_missing_api_key(self):
        session = FakeSession({})
        client = ApiNinjasPriceClient(api_key=None, session=session)
        with pytest.raises(PriceLookupError, match="API_NINJAS_KEY"):
            client.get_price("XEQT")
        assert session.requests == []

    @pytest.mark.parametrize(
        "response",
        [
            FakeResponse(status=500),
            FakeResponse([]),
            FakeResponse({"ticker": "XEQT"}),
            FakeResponse({"price": "n/a"}),
            FakeResponse(ValueError("not json")),
            requests.ConnectionError("offline"),
        ],
    )
    def test_failures_become_price_lookup_errors(self, response):
        client = ApiNinjasPriceClient(api_key="secret", session=FakeSession({"XEQT": response}))
        with pytest.raises(PriceLookupError):
            client.get_price("XEQT")

    def test_default_session_uses_requests(self, monkeypatch):
        captured = {}

        def fake_get(self, url, **kwargs):
            captured["url"] = url
            return FakeResponse({"price": 10})

        monkeypatch.setattr(requests.Session, "get", fake_get)
        client = ApiNinjasPriceClient(api_key="secret", base_url="https://example.test/price")
        assert client.get_price("VFV") == Decimal("10")
        assert captured["url"] == "https://example.test/price"


# ---------------------------------------------------------------------------
# get_prices
# ---------------------------------------------------------------------------


class TestGetPrices:
    def test_quotes_unique_tickers_and_skips_failures(self):
        session = FakeSession(
            {
                "XEQT": FakeResponse({"price": 31}),
                "VFV": FakeResponse(status=404),
            }
        )
        client = ApiNinjasPriceClient(api_key="secret", session=session)

        prices = client.get_prices(["xeqt", "XEQT", "VFV"])

        assert prices == {"XEQT": Decimal("31")}
        assert len(session.requests) == 2
