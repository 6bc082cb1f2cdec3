"""Data structures for the market-pulse service."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


class Pulse(str, Enum):
    """Categorical sentiment verdict."""
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class Confidence(str, Enum):
    """Confidence label attached to a verdict."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class HistoricalDataPoint:
    """
    One daily bar. ``extra`` carries any other upstream fields (open, high,
    low, change, ...) and is merged into the serialized form.
    """
    date: date
    close: float
    volume: Optional[int] = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        # read-only copy; points are shared through the result cache
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data["date"] = self.date.isoformat()
        data["close"] = self.close
        if self.volume is not None:
            data["volume"] = self.volume
        return data


@dataclass(frozen=True)
class NewsItem:
    """A normalized headline from the news provider."""
    title: str
    text: str
    url: str
    published_at: Optional[str] = None
    site: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"title": self.title, "text": self.text, "url": self.url}
        if self.published_at:
            data["publishedDate"] = self.published_at
        if self.site:
            data["site"] = self.site
        return data


@dataclass(frozen=True)
class SentimentAnalysis:
    """Validated judgment returned by the sentiment provider."""
    pulse: Pulse
    reason: str
    confidence: Confidence


@dataclass(frozen=True)
class Momentum:
    """
    Short-term momentum over the five most recent sessions.

    Attributes:
        score: Sum of the signs of the daily % changes, in ``[-5, 5]``.
        label: ``"Strong Positive"``, ``"Positive"``, ``"Neutral"`` or ``"Negative"``.
        daily_changes: ``(date, pct_change)`` pairs, oldest first.
    """
    score: int
    label: str
    daily_changes: Tuple[Tuple[date, float], ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "label": self.label,
            "dailyChanges": [
                {"date": day.isoformat(), "change": round(change, 4)}
                for day, change in self.daily_changes
            ],
        }


@dataclass(frozen=True)
class MarketPulseResult:
    """
    The assembled snapshot returned to callers and stored in the cache.
    """
    ticker: str
    pulse: Pulse
    reason: str
    confidence: Confidence
    last_price: float
    history: Tuple[HistoricalDataPoint, ...]
    news: Tuple[NewsItem, ...]
    timestamp: datetime
    momentum: Optional[Momentum] = None

    def to_dict(self) -> Dict[str, Any]:
        """Render the public JSON contract."""
        return {
            "ticker": self.ticker,
            "pulse": self.pulse.value,
            "reason": self.reason,
            "confidence": self.confidence.value,
            "analysis": {
                "lastPrice": f"{self.last_price:.2f}",
                "momentum": self.momentum.to_dict() if self.momentum else None,
            },
            "history": [point.to_dict() for point in self.history],
            "news": [item.to_dict() for item in self.news],
            "timestamp": isoformat_utc(self.timestamp),
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat_utc(moment: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
