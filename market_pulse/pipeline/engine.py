"""Pulse engine — orchestrates validation, caching, and the upstream fan-out.

Flow per request:
  1. Validate   — validate_ticker (ValidationError before any network call)
  2. Cache      — fresh entry → return immediately
  3. Fan-out    — market history ‖ news, concurrently (single flight per ticker)
  4. Sentiment  — GeminiProvider.analyze(ticker, history)
  5. Assemble   — MarketPulseResult, written to the cache and returned

History and sentiment failures abort the request and nothing is cached.
News failures are absorbed into an empty list. No retries.
"""

import asyncio
from typing import Any, Dict, List, Optional

from market_pulse.core.cache import DEFAULT_MAX_ENTRIES, DEFAULT_TTL_SECONDS, ResultCache
from market_pulse.core.config import FMP_KEY_ENV, GEMINI_KEY_ENV, get_api_key, section
from market_pulse.core.logger import logger
from market_pulse.models.datatypes import MarketPulseResult, NewsItem, utc_now
from market_pulse.pipeline.momentum import compute_momentum
from market_pulse.pipeline.validator import validate_ticker
from market_pulse.providers.base import MarketDataProvider, NewsProvider, SentimentProvider
from market_pulse.providers.market import (
    DEFAULT_TIMEOUT, FMP_BASE_URL, FMPMarketProvider, YFinanceProvider, no_data_error,
)
from market_pulse.providers.news import DEFAULT_NEWS_LIMIT, FMPNewsProvider
from market_pulse.providers.sentiment import (
    ANALYSIS_WINDOW, DEFAULT_MODEL, GEMINI_BASE_URL, GeminiProvider,
)

HISTORY_LIMIT = 20


class PulseEngine:
    """Builds (or serves from cache) the market pulse for one ticker.

    Args:
        market: Historical data provider (critical path).
        news: News provider (optional branch).
        sentiment: Sentiment provider, fed the full history.
        cache: Result cache owned by this engine.
        history_limit: Number of most recent bars kept in the result.
    """

    def __init__(
        self,
        market: MarketDataProvider,
        news: NewsProvider,
        sentiment: SentimentProvider,
        cache: Optional[ResultCache] = None,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.market = market
        self.news = news
        self.sentiment = sentiment
        self.cache = cache if cache is not None else ResultCache()
        self.history_limit = history_limit
        self._inflight: Dict[str, "asyncio.Task[MarketPulseResult]"] = {}

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PulseEngine":
        """Wire providers and cache from a loaded ``config.yaml`` dict."""
        providers_cfg = section(config, "providers")
        fmp_cfg = section(config, "fmp")
        gemini_cfg = section(config, "gemini")
        cache_cfg = section(config, "cache")

        timeout = float(providers_cfg.get("timeout_seconds", DEFAULT_TIMEOUT))
        fmp_key = get_api_key(FMP_KEY_ENV)
        fmp_url = fmp_cfg.get("base_url", FMP_BASE_URL)

        history_source = providers_cfg.get("history", "fmp")
        if history_source == "fmp":
            market: MarketDataProvider = FMPMarketProvider(fmp_key, base_url=fmp_url, timeout=timeout)
        elif history_source == "yfinance":
            market = YFinanceProvider(period=providers_cfg.get("yfinance_period", "6mo"))
        else:
            raise ValueError(f"Unknown history provider '{history_source}' (expected fmp or yfinance)")

        news = FMPNewsProvider(
            fmp_key, base_url=fmp_url, timeout=timeout,
            limit=int(providers_cfg.get("news_limit", DEFAULT_NEWS_LIMIT)),
        )
        sentiment = GeminiProvider(
            get_api_key(GEMINI_KEY_ENV),
            model=gemini_cfg.get("model", DEFAULT_MODEL),
            base_url=gemini_cfg.get("base_url", GEMINI_BASE_URL),
            timeout=timeout,
            window=int(gemini_cfg.get("analysis_window", ANALYSIS_WINDOW)),
        )
        cache = ResultCache(
            ttl_seconds=float(cache_cfg.get("ttl_seconds", DEFAULT_TTL_SECONDS)),
            max_entries=int(cache_cfg.get("max_entries", DEFAULT_MAX_ENTRIES)),
        )
        logger.info(
            f"PulseEngine: history={history_source} ttl={cache.ttl_seconds}s "
            f"max_entries={cache.max_entries} timeout={timeout}s"
        )
        return cls(market, news, sentiment, cache,
                   history_limit=int(providers_cfg.get("history_limit", HISTORY_LIMIT)))

    # ── public ────────────────────────────────────────────────────────────────

    async def get_market_pulse(self, raw_ticker: object) -> MarketPulseResult:
        """Return the pulse for ``raw_ticker``.

        Raises:
            ValidationError: Bad ticker syntax (no upstream call is made).
            ProviderError: Historical data unavailable.
            AnalysisError: Sentiment service failed.
        """
        ticker = validate_ticker(raw_ticker)

        entry = self.cache.get(ticker)
        if entry is not None:
            logger.info(f"PulseEngine: cache hit for {ticker}")
            return entry.result

        task = self._inflight.get(ticker)
        if task is not None:
            logger.info(f"PulseEngine: joining in-flight fetch for {ticker}")
        else:
            logger.info(f"PulseEngine: cache miss for {ticker}, fetching upstream")
            task = asyncio.create_task(self._build(ticker))
            self._inflight[ticker] = task
            task.add_done_callback(lambda t, key=ticker: self._finish_flight(key, t))

        # shielded so one cancelled caller does not cancel the fetch for the others
        return await asyncio.shield(task)

    # ── internal ──────────────────────────────────────────────────────────────

    async def _build(self, ticker: str) -> MarketPulseResult:
        # wait for both branches; a history failure then discards the news result
        history, news = await asyncio.gather(
            asyncio.to_thread(self.market.fetch_history, ticker),
            self._fetch_news_safely(ticker),
            return_exceptions=True,
        )
        if isinstance(history, BaseException):
            raise history
        if isinstance(news, BaseException):
            logger.error(f"PulseEngine: news branch failed for {ticker}: {news}")
            news = []
        if not history:
            # providers raise on missing data; guards the index below
            raise no_data_error(ticker)

        analysis = await asyncio.to_thread(self.sentiment.analyze, ticker, history)

        recent = tuple(history[: self.history_limit])
        result = MarketPulseResult(
            ticker=ticker,
            pulse=analysis.pulse,
            reason=analysis.reason,
            confidence=analysis.confidence,
            last_price=float(recent[0].close),
            history=recent,
            news=tuple(news),
            momentum=compute_momentum(recent),
            timestamp=utc_now(),
        )
        self.cache.put(ticker, result)
        logger.info(
            f"PulseEngine: {ticker} → {result.pulse.value}/{result.confidence.value} "
            f"last={result.last_price:.2f} history={len(recent)} news={len(result.news)}"
        )
        return result

    async def _fetch_news_safely(self, ticker: str) -> List[NewsItem]:
        try:
            return list(await asyncio.to_thread(self.news.fetch_news, ticker))
        except Exception as exc:
            logger.error(f"PulseEngine: news provider raised for {ticker}: {exc}")
            return []

    def _finish_flight(self, ticker: str, task: "asyncio.Task[MarketPulseResult]") -> None:
        if self._inflight.get(ticker) is task:
            del self._inflight[ticker]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"PulseEngine: request for {ticker} failed: {exc}")
