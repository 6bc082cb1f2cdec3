"""Shared fakes and fixtures for the market-pulse tests."""

from datetime import date, timedelta
from typing import List, Optional, Sequence
from unittest.mock import MagicMock

import pytest
import requests

from market_pulse.core.cache import ResultCache
from market_pulse.models.datatypes import (
    Confidence, HistoricalDataPoint, NewsItem, Pulse, SentimentAnalysis,
)
from market_pulse.pipeline.engine import PulseEngine
from market_pulse.providers.base import MarketDataProvider, NewsProvider, SentimentProvider


def make_history(n: int, latest: date = date(2024, 5, 31), start_close: float = 190.0) -> List[HistoricalDataPoint]:
    """``n`` newest-first daily bars; the latest close is ``start_close``."""
    return [
        HistoricalDataPoint(
            date=latest - timedelta(days=i),
            close=round(start_close - i * 0.5, 2),
            volume=1_000_000 + i,
        )
        for i in range(n)
    ]


def make_news(n: int) -> List[NewsItem]:
    return [
        NewsItem(title=f"Headline {i}", text=f"Body {i}", url=f"https://news.example/{i}")
        for i in range(n)
    ]


def json_response(payload, status_code: int = 200) -> MagicMock:
    """A stand-in for ``requests.Response``."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = str(payload)
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMarket(MarketDataProvider):
    def __init__(self, history: Optional[List[HistoricalDataPoint]] = None, error: Optional[Exception] = None) -> None:
        self.history = history if history is not None else make_history(25)
        self.error = error
        self.calls: List[str] = []

    def fetch_history(self, ticker: str) -> List[HistoricalDataPoint]:
        self.calls.append(ticker)
        if self.error is not None:
            raise self.error
        return list(self.history)


class FakeNews(NewsProvider):
    def __init__(self, items: Optional[List[NewsItem]] = None, error: Optional[Exception] = None) -> None:
        self.items = items if items is not None else make_news(3)
        self.error = error
        self.calls: List[str] = []

    def fetch_news(self, ticker: str) -> List[NewsItem]:
        self.calls.append(ticker)
        if self.error is not None:
            raise self.error
        return list(self.items)


class FakeSentiment(SentimentProvider):
    def __init__(self, analysis: Optional[SentimentAnalysis] = None, error: Optional[Exception] = None) -> None:
        self.analysis = analysis or SentimentAnalysis(
            pulse=Pulse.BULLISH,
            reason="Closes have risen steadily on firm volume.",
            confidence=Confidence.HIGH,
        )
        self.error = error
        self.calls: List[tuple] = []

    def analyze(self, ticker: str, history: Sequence[HistoricalDataPoint]) -> SentimentAnalysis:
        self.calls.append((ticker, len(history)))
        if self.error is not None:
            raise self.error
        return self.analysis


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> ResultCache:
    return ResultCache(ttl_seconds=600, max_entries=16, clock=clock)


@pytest.fixture
def market() -> FakeMarket:
    return FakeMarket()


@pytest.fixture
def news() -> FakeNews:
    return FakeNews()


@pytest.fixture
def sentiment() -> FakeSentiment:
    return FakeSentiment()


@pytest.fixture
def engine(market, news, sentiment, cache) -> PulseEngine:
    return PulseEngine(market, news, sentiment, cache)


@pytest.fixture
def no_network(monkeypatch):
    """Fail loudly if any code path reaches the real network."""
    def _blocked(*args, **kwargs):
        raise AssertionError("unexpected network call")
    monkeypatch.setattr(requests, "get", _blocked)
    monkeypatch.setattr(requests, "post", _blocked)
