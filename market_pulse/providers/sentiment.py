"""Short-term sentiment judgment from Google Gemini.

Pipeline:
    history → recent window (20 bars) → prompt → generateContent → JSON → SentimentAnalysis

The model is asked for a single JSON object with keys ``pulse``, ``reason``
and ``confidence``. Values are checked against the closed vocabularies
(Bullish/Bearish/Neutral, Low/Medium/High); anything else is rejected with
:class:`AnalysisError` rather than coerced to a default.
"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence

import requests

from market_pulse.core.errors import AnalysisError
from market_pulse.core.logger import logger
from market_pulse.models.datatypes import (
    Confidence, HistoricalDataPoint, Pulse, SentimentAnalysis,
)
from market_pulse.providers.base import SentimentProvider
from market_pulse.providers.market import DEFAULT_TIMEOUT

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash-latest"
ANALYSIS_WINDOW = 20

_FAILURE_MESSAGE = "Failed to get analysis from Gemini API."

_PROMPT_TEMPLATE = """\
You are a concise financial analyst. Analyze the recent daily stock data for "{ticker}".
1.  **Sentiment**: What is the market sentiment for tomorrow? Answer in one word: "Bullish", "Bearish", or "Neutral".
2.  **Reasoning**: Provide a concise, one-sentence explanation for your reasoning.
3.  **Confidence**: How confident are you in this analysis? Answer: "Low", "Medium", or "High".

Data: {data}

Format your response as a single, valid JSON object with keys: "pulse", "reason", and "confidence".
Example: {{"pulse": "Bullish", "reason": "The stock shows consistent upward momentum on high volume.", "confidence": "High"}}
"""

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class GeminiProvider(SentimentProvider):
    """Gemini ``generateContent`` REST client.

    Args:
        api_key: Gemini credential; ``None`` fails on first use.
        model: Model identifier.
        base_url: API root.
        timeout: Per-request timeout in seconds.
        window: Number of most recent bars included in the prompt.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        window: int = ANALYSIS_WINDOW,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.window = window
        if not api_key:
            logger.warning("GeminiProvider: Gemini API key not configured — analysis requests will fail.")

    # ── public API ──────────────────────────────────────────────────────────

    def analyze(self, ticker: str, history: Sequence[HistoricalDataPoint]) -> SentimentAnalysis:
        if not self.api_key:
            raise AnalysisError("Gemini API key not configured.")

        prompt = build_prompt(ticker, history, self.window)
        text = self._generate(ticker, prompt)
        analysis = parse_analysis(text)
        logger.info(
            f"GeminiProvider: [{analysis.pulse.value} / {analysis.confidence.value}] "
            f"for {ticker} — {analysis.reason[:60]!r}"
        )
        return analysis

    # ── internal ─────────────────────────────────────────────────────────────

    def _generate(self, ticker: str, prompt: str) -> str:
        """POST the prompt and return the first candidate's text."""
        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        logger.info(f"GeminiProvider: requesting analysis for {ticker} ({self.model})")
        try:
            resp = requests.post(url, params={"key": self.api_key}, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error(f"GeminiProvider: request failed for {ticker}: {exc}")
            raise AnalysisError(_FAILURE_MESSAGE) from exc

        if resp.status_code != 200:
            logger.error(f"GeminiProvider: HTTP {resp.status_code} for {ticker}: {resp.text[:300]}")
            raise AnalysisError(_FAILURE_MESSAGE)

        try:
            payload = resp.json()
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error(f"GeminiProvider: invalid response structure for {ticker}: {exc}")
            raise AnalysisError(_FAILURE_MESSAGE) from exc

        if not isinstance(text, str) or not text.strip():
            logger.error(f"GeminiProvider: empty candidate text for {ticker}")
            raise AnalysisError(_FAILURE_MESSAGE)
        return text


# ── helpers ───────────────────────────────────────────────────────────────────

def recent_window(history: Sequence[HistoricalDataPoint], size: int = ANALYSIS_WINDOW) -> List[Dict[str, Any]]:
    """The ``size`` most recent bars as ``{date, close, volume}`` dicts, newest first."""
    return [
        {"date": p.date.isoformat(), "close": p.close, "volume": p.volume}
        for p in list(history)[:size]
    ]


def build_prompt(ticker: str, history: Sequence[HistoricalDataPoint], size: int = ANALYSIS_WINDOW) -> str:
    data = json.dumps(recent_window(history, size), indent=2)
    return _PROMPT_TEMPLATE.format(ticker=ticker, data=data)


def parse_analysis(text: str) -> SentimentAnalysis:
    """Parse and validate the model's JSON reply.

    Args:
        text: Raw candidate text; a surrounding Markdown code fence is tolerated.

    Returns:
        :class:`SentimentAnalysis` with canonical-case labels.
    """
    stripped = text.strip()
    fenced = _FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1)

    try:
        data = json.loads(stripped)
    except ValueError as exc:
        logger.error(f"GeminiProvider: unparseable reply: {text[:200]!r}")
        raise AnalysisError(_FAILURE_MESSAGE) from exc

    if not isinstance(data, dict):
        raise AnalysisError(f"Gemini API returned {type(data).__name__}, expected a JSON object.")

    missing = [k for k in ("pulse", "reason", "confidence") if k not in data]
    if missing:
        raise AnalysisError(f"Gemini API response is missing keys: {missing}")

    reason = data["reason"]
    if not isinstance(reason, str) or not reason.strip():
        raise AnalysisError("Gemini API returned an empty reason.")

    return SentimentAnalysis(
        pulse=_match_label(Pulse, data["pulse"], "pulse"),
        reason=reason.strip(),
        confidence=_match_label(Confidence, data["confidence"], "confidence"),
    )


def _match_label(enum_cls, value: Any, field_name: str):
    """Case-insensitive lookup in a closed vocabulary; AnalysisError otherwise."""
    if isinstance(value, str):
        wanted = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == wanted:
                return member
    raise AnalysisError(f"Gemini API returned an unrecognized {field_name} value: {value!r}")
