"""Abstract base classes for upstream data providers.

Implementations are blocking (``requests``/``yfinance``); the engine runs them
in worker threads.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence

from market_pulse.models.datatypes import HistoricalDataPoint, NewsItem, SentimentAnalysis


class MarketDataProvider(ABC):
    """Abstract interface for fetching daily price history."""

    @abstractmethod
    def fetch_history(self, ticker: str) -> List[HistoricalDataPoint]:
        """
        Fetch the full available daily history for a ticker.

        Args:
            ticker (str): Normalized ticker symbol.

        Returns:
            List[HistoricalDataPoint]: Non-empty, ordered newest-first.

        Raises:
            ProviderError: Upstream unreachable, non-success status, or no data.
        """
        pass


class NewsProvider(ABC):
    """Abstract interface for fetching recent company headlines."""

    @abstractmethod
    def fetch_news(self, ticker: str) -> List[NewsItem]:
        """
        Fetch the most recent headlines for a ticker.

        Args:
            ticker (str): Normalized ticker symbol.

        Returns:
            List[NewsItem]: Up to the provider limit; empty on any failure.
        """
        pass


class SentimentProvider(ABC):
    """Abstract interface for judging short-term market sentiment."""

    @abstractmethod
    def analyze(self, ticker: str, history: Sequence[HistoricalDataPoint]) -> SentimentAnalysis:
        """
        Judge sentiment from the most recent price history.

        Args:
            ticker (str): Normalized ticker symbol.
            history (Sequence[HistoricalDataPoint]): Newest-first daily bars.

        Returns:
            SentimentAnalysis: Validated pulse, reason, and confidence.

        Raises:
            AnalysisError: Service failure or unusable response.
        """
        pass
