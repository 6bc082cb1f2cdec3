"""Error taxonomy for the market-pulse service.

Mapping to HTTP:
  ValidationError      → 400  (bad ticker syntax, user-correctable)
  ProviderError        → 500  (historical data unavailable / unreachable)
  ConfigurationError   → 500  (missing provider credential, first use)
  AnalysisError        → 500  (AI service unavailable or unparseable output)
  NewsUnavailable      → never surfaced, absorbed into an empty news list
"""


class MarketPulseError(Exception):
    """Base class for every error raised by the pulse pipeline."""


class ValidationError(MarketPulseError):
    """Raised when a raw ticker does not match the accepted symbol grammar.

    Attributes:
        raw_ticker: The input exactly as received from the caller.
    """

    def __init__(self, raw_ticker: object) -> None:
        self.raw_ticker = raw_ticker
        super().__init__("Invalid ticker format.")


class ProviderError(MarketPulseError):
    """Historical market data could not be obtained."""


class ConfigurationError(ProviderError):
    """A required provider credential is not configured."""


class AnalysisError(MarketPulseError):
    """The sentiment service failed or returned an unusable judgment."""


class NewsUnavailable(MarketPulseError):
    """News could not be fetched. Only raised inside the news client."""
