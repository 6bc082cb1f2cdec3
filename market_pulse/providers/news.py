"""Recent headlines from Financial Modeling Prep ``/stock_news``.

News is supplementary: every failure (missing key, network, timeout, non-200,
malformed payload) is logged and absorbed into an empty list so that a news
outage never blocks sentiment delivery.
"""

from typing import Any, List, Optional

import requests

from market_pulse.core.errors import NewsUnavailable
from market_pulse.core.logger import logger
from market_pulse.models.datatypes import NewsItem
from market_pulse.providers.base import NewsProvider
from market_pulse.providers.market import DEFAULT_TIMEOUT, FMP_BASE_URL

DEFAULT_NEWS_LIMIT = 5


class FMPNewsProvider(NewsProvider):
    """FMP stock-news client.

    Args:
        api_key: FMP credential (the same key as the history endpoint).
        base_url: API root.
        timeout: Per-request timeout in seconds.
        limit: Maximum number of headlines returned.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = FMP_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        limit: int = DEFAULT_NEWS_LIMIT,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.limit = limit

    def fetch_news(self, ticker: str) -> List[NewsItem]:
        try:
            items = self._call_api(ticker)
        except NewsUnavailable as exc:
            logger.error(f"FMPNewsProvider: news unavailable for {ticker}: {exc}")
            return []
        logger.info(f"FMPNewsProvider: {len(items)} headlines for {ticker}")
        return items

    def _call_api(self, ticker: str) -> List[NewsItem]:
        """Call /stock_news. Raises NewsUnavailable on any failure."""
        if not self.api_key:
            raise NewsUnavailable("FMP API key not configured.")

        params = {"tickers": ticker, "limit": self.limit, "apikey": self.api_key}
        try:
            resp = requests.get(f"{self.base_url}/stock_news", params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise NewsUnavailable(f"request failed: {exc}") from exc

        if resp.status_code != 200:
            raise NewsUnavailable(f"HTTP {resp.status_code}: {resp.text[:200]}")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise NewsUnavailable("response body is not JSON") from exc

        if not payload:
            return []
        if not isinstance(payload, list):
            raise NewsUnavailable(f"expected a list, got {type(payload).__name__}")

        items = [item for item in (_parse_article(a) for a in payload) if item is not None]
        return items[: self.limit]


def _parse_article(article: Any) -> Optional[NewsItem]:
    if not isinstance(article, dict):
        return None
    title = (article.get("title") or "").strip()
    if not title:
        return None
    return NewsItem(
        title=title,
        text=(article.get("text") or "").strip(),
        url=article.get("url") or "",
        published_at=article.get("publishedDate"),
        site=article.get("site"),
    )
