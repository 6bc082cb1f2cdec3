"""Historical market data via Financial Modeling Prep (default) or yfinance."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd
import requests
import yfinance as yf

from market_pulse.core.errors import ConfigurationError, ProviderError
from market_pulse.core.logger import logger
from market_pulse.models.datatypes import HistoricalDataPoint
from market_pulse.providers.base import MarketDataProvider

FMP_BASE_URL = "https://financialmodelingprep.com/api/v3"
DEFAULT_TIMEOUT = 15

# Fields lifted into HistoricalDataPoint attributes; everything else goes to ``extra``
_CORE_FIELDS = ("date", "close", "volume")


def no_data_error(ticker: str) -> ProviderError:
    return ProviderError(f'No time series data found for "{ticker}".')


class FMPMarketProvider(MarketDataProvider):
    """Financial Modeling Prep ``/historical-price-full/{ticker}`` client.

    Args:
        api_key: FMP credential. ``None`` is accepted here and reported as a
            :class:`ConfigurationError` on first use.
        base_url: API root, e.g. ``https://financialmodelingprep.com/api/v3``.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = FMP_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        if not api_key:
            logger.warning("FMPMarketProvider: FMP API key not configured — history requests will fail.")

    def fetch_history(self, ticker: str) -> List[HistoricalDataPoint]:
        if not self.api_key:
            raise ConfigurationError("FMP API key not configured.")

        url = f"{self.base_url}/historical-price-full/{ticker}"
        logger.info(f"FMPMarketProvider: fetching history for {ticker}")
        try:
            resp = requests.get(url, params={"apikey": self.api_key}, timeout=self.timeout)
        except requests.Timeout as exc:
            logger.error(f"FMPMarketProvider: timeout after {self.timeout}s for {ticker}")
            raise ProviderError(f"Historical data request for {ticker} timed out.") from exc
        except requests.RequestException as exc:
            logger.error(f"FMPMarketProvider: request failed for {ticker}: {exc}")
            raise ProviderError(f"Historical data provider unreachable: {exc}") from exc

        if resp.status_code != 200:
            logger.error(
                f"FMPMarketProvider: HTTP {resp.status_code} for {ticker}: {resp.text[:200]}"
            )
            raise ProviderError(
                f"Historical data provider returned HTTP {resp.status_code} for {ticker}."
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            logger.error(f"FMPMarketProvider: non-JSON body for {ticker}")
            raise no_data_error(ticker) from exc

        rows = payload.get("historical") if isinstance(payload, dict) else None
        if not rows or not isinstance(rows, list):
            logger.error(f"FMPMarketProvider: no 'historical' field for {ticker}")
            raise no_data_error(ticker)

        points = [p for p in (_parse_row(row, ticker) for row in rows) if p is not None]
        if not points:
            raise no_data_error(ticker)

        points.sort(key=lambda p: p.date, reverse=True)
        logger.info(f"FMPMarketProvider: {len(points)} points for {ticker} (latest {points[0].date})")
        return points


class YFinanceProvider(MarketDataProvider):
    """Yahoo Finance daily history through ``yfinance``.

    Args:
        period: yfinance lookback period (``"3mo"``, ``"1y"``, ...).
    """

    def __init__(self, period: str = "6mo") -> None:
        self.period = period

    def fetch_history(self, ticker: str) -> List[HistoricalDataPoint]:
        logger.info(f"YFinanceProvider: fetching {self.period} history for {ticker}")
        try:
            hist = yf.Ticker(ticker).history(period=self.period, interval="1d")
        except Exception as exc:
            logger.error(f"YFinanceProvider: yfinance raised for {ticker}: {exc}")
            raise ProviderError(f"Historical data provider unreachable: {exc}") from exc

        if hist is None or hist.empty:
            logger.warning(f"YFinanceProvider: no rows returned for {ticker}")
            raise no_data_error(ticker)

        hist = hist.reset_index()
        # yfinance dates are timezone-aware; keep the exchange-local calendar date
        hist["Date"] = pd.to_datetime(hist["Date"]).dt.tz_localize(None).dt.date
        hist["Close"] = pd.to_numeric(hist["Close"], errors="coerce")
        hist = hist.dropna(subset=["Close"]).sort_values("Date", ascending=False)
        if hist.empty:
            raise no_data_error(ticker)

        points = []
        for _, row in hist.iterrows():
            extra = {
                key.lower(): round(float(row[key]), 4)
                for key in ("Open", "High", "Low")
                if key in row and pd.notna(row[key])
            }
            volume = row.get("Volume")
            points.append(HistoricalDataPoint(
                date=row["Date"],
                close=round(float(row["Close"]), 4),
                volume=int(volume) if volume is not None and pd.notna(volume) else None,
                extra=extra,
            ))

        logger.info(f"YFinanceProvider: {len(points)} points for {ticker} (latest {points[0].date})")
        return points


# ── helpers ───────────────────────────────────────────────────────────────────

def _parse_row(row: Any, ticker: str) -> Optional[HistoricalDataPoint]:
    """Convert one FMP ``historical`` row; None (with a warning) if unusable."""
    if not isinstance(row, dict):
        logger.warning(f"FMPMarketProvider: skipping non-object row for {ticker}: {row!r}")
        return None
    try:
        day = _parse_date(row["date"])
        close = float(row["close"])
    except (KeyError, TypeError, ValueError):
        logger.warning(f"FMPMarketProvider: skipping malformed row for {ticker}: {row!r}")
        return None

    volume = row.get("volume")
    try:
        volume = int(float(volume)) if volume is not None else None
    except (TypeError, ValueError):
        volume = None

    extra: Dict[str, Any] = {k: v for k, v in row.items() if k not in _CORE_FIELDS}
    return HistoricalDataPoint(date=day, close=close, volume=volume, extra=extra)


def _parse_date(value: Any) -> date:
    """Parse ``YYYY-MM-DD`` (a trailing time component is ignored)."""
    return datetime.strptime(str(value)[:10], "%Y-%m-%d").date()
