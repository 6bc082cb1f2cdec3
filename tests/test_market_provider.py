"""Tests for the historical market data providers."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import patch

import pandas as pd
import pytest
import requests

from market_pulse.core.errors import ConfigurationError, ProviderError
from market_pulse.providers import market
from market_pulse.providers.market import FMPMarketProvider, YFinanceProvider
from tests.conftest import json_response

FMP_ROWS = [
    {"date": "2024-05-29", "open": 189.6, "close": 190.29, "volume": 53068016, "changePercent": 0.2},
    {"date": "2024-05-31", "open": 191.4, "close": 192.25, "volume": 75158277, "changePercent": 0.5},
    {"date": "2024-05-30", "open": 190.8, "close": 191.29, "volume": 49947941, "changePercent": 0.5},
]


@pytest.fixture
def provider():
    return FMPMarketProvider("test-key", base_url="https://fmp.test/api/v3", timeout=5)


class TestFMPMarketProvider:

    @patch("market_pulse.providers.market.requests.get")
    def test_returns_newest_first_with_extra_fields(self, mock_get, provider):
        mock_get.return_value = json_response({"symbol": "AAPL", "historical": FMP_ROWS})

        points = provider.fetch_history("AAPL")

        assert [p.date for p in points] == [date(2024, 5, 31), date(2024, 5, 30), date(2024, 5, 29)]
        assert points[0].close == 192.25
        assert points[0].volume == 75158277
        assert points[0].to_dict() == {
            "date": "2024-05-31", "open": 191.4, "close": 192.25,
            "volume": 75158277, "changePercent": 0.5,
        }
        mock_get.assert_called_once_with(
            "https://fmp.test/api/v3/historical-price-full/AAPL",
            params={"apikey": "test-key"},
            timeout=5,
        )

    @pytest.mark.parametrize("payload", [{}, {"historical": []}, {"Error Message": "bad"}, []])
    @patch("market_pulse.providers.market.requests.get")
    def test_missing_history_means_no_data(self, mock_get, provider, payload):
        mock_get.return_value = json_response(payload)

        with pytest.raises(ProviderError, match='No time series data found for "ZZ99".'):
            provider.fetch_history("ZZ99")

    @patch("market_pulse.providers.market.requests.get")
    def test_non_json_body_means_no_data(self, mock_get, provider):
        mock_get.return_value = json_response(ValueError("not json"))

        with pytest.raises(ProviderError, match="No time series data found"):
            provider.fetch_history("AAPL")

    @patch("market_pulse.providers.market.requests.get")
    def test_non_success_status(self, mock_get, provider):
        mock_get.return_value = json_response({"Error Message": "Invalid API KEY."}, status_code=401)

        with pytest.raises(ProviderError, match="HTTP 401"):
            provider.fetch_history("AAPL")

    @patch("market_pulse.providers.market.requests.get")
    def test_timeout_is_provider_error(self, mock_get, provider):
        mock_get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(ProviderError, match="timed out"):
            provider.fetch_history("AAPL")

    @patch("market_pulse.providers.market.requests.get")
    def test_unreachable_is_provider_error(self, mock_get, provider):
        mock_get.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(ProviderError, match="unreachable"):
            provider.fetch_history("AAPL")

    @patch("market_pulse.providers.market.requests.get")
    def test_missing_key_fails_before_request(self, mock_get):
        with pytest.raises(ConfigurationError, match="FMP API key not configured."):
            FMPMarketProvider(None).fetch_history("AAPL")
        mock_get.assert_not_called()

    @patch("market_pulse.providers.market.requests.get")
    def test_skips_malformed_rows(self, mock_get, provider):
        rows = [
            {"date": "2024-05-31", "close": 192.25},
            {"date": "not-a-date", "close": 1.0},
            {"date": "2024-05-30"},
            "garbage",
            {"date": "2024-05-29 00:00:00", "close": "190.29", "volume": None},
        ]
        mock_get.return_value = json_response({"historical": rows})

        points = provider.fetch_history("AAPL")

        assert [p.date for p in points] == [date(2024, 5, 31), date(2024, 5, 29)]
        assert points[0].volume is None
        assert points[1].close == 190.29
        assert "volume" not in points[0].to_dict()

    @patch("market_pulse.providers.market.requests.get")
    def test_all_rows_malformed_means_no_data(self, mock_get, provider):
        mock_get.return_value = json_response({"historical": [{"close": 1.0}]})

        with pytest.raises(ProviderError, match="No time series data found"):
            provider.fetch_history("AAPL")


class TestYFinanceProvider:

    def test_converts_frame_to_newest_first_points(self, monkeypatch):
        captured = {}
        frame = pd.DataFrame(
            {
                "Open": [10.0, 11.0, 12.0],
                "High": [10.5, 11.5, 12.5],
                "Low": [9.5, 10.5, 11.5],
                "Close": [10.25, 11.25, 12.25],
                "Volume": [100, 200, 300],
            },
            index=pd.DatetimeIndex(
                pd.to_datetime(["2024-05-29", "2024-05-30", "2024-05-31"]).tz_localize("America/New_York"),
                name="Date",
            ),
        )

        class FakeTicker:
            def __init__(self, symbol):
                captured["symbol"] = symbol

            def history(self, **kwargs):
                captured["kwargs"] = kwargs
                return frame

        monkeypatch.setattr(market, "yf", SimpleNamespace(Ticker=FakeTicker))

        points = YFinanceProvider(period="1mo").fetch_history("AAPL")

        assert captured == {"symbol": "AAPL", "kwargs": {"period": "1mo", "interval": "1d"}}
        assert [p.date for p in points] == [date(2024, 5, 31), date(2024, 5, 30), date(2024, 5, 29)]
        assert points[0].close == 12.25
        assert points[0].volume == 300
        assert points[0].extra == {"open": 12.0, "high": 12.5, "low": 11.5}

    def test_empty_frame_means_no_data(self, monkeypatch):
        fake = SimpleNamespace(history=lambda **kwargs: pd.DataFrame())
        monkeypatch.setattr(market, "yf", SimpleNamespace(Ticker=lambda symbol: fake))

        with pytest.raises(ProviderError, match='No time series data found for "ZZ99".'):
            YFinanceProvider().fetch_history("ZZ99")

    def test_library_error_is_provider_error(self, monkeypatch):
        def _boom(symbol):
            raise RuntimeError("rate limited")
        monkeypatch.setattr(market, "yf", SimpleNamespace(Ticker=_boom))

        with pytest.raises(ProviderError, match="rate limited"):
            YFinanceProvider().fetch_history("AAPL")
