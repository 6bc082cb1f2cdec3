"""Ticker validator: normalizes raw input before any upstream call.

Accepted grammar (after uppercasing): ``^[A-Z0-9.-]{1,10}$``.

Usage:
    python -m market_pulse.pipeline.validator aapl brk.b "AA PL"
"""

import re
import sys

from market_pulse.core.errors import ValidationError

_TICKER_RE = re.compile(r"^[A-Z0-9.-]{1,10}$")


def is_valid_ticker(ticker: str) -> bool:
    """True if ``ticker`` already matches the grammar. Does not normalize."""
    return bool(_TICKER_RE.fullmatch(ticker))


def validate_ticker(raw_ticker: object) -> str:
    """Return the normalized ticker or raise :class:`ValidationError`.

    Surrounding whitespace is not stripped; ``" AAPL"`` is rejected.

    Args:
        raw_ticker: Caller-supplied symbol, e.g. ``"aapl"`` or ``"brk.b"``.

    Returns:
        Uppercased ticker, e.g. ``"AAPL"``.
    """
    if not isinstance(raw_ticker, str):
        raise ValidationError(raw_ticker)
    ticker = raw_ticker.upper()
    if not is_valid_ticker(ticker):
        raise ValidationError(raw_ticker)
    return ticker


def main() -> int:
    if len(sys.argv) < 2:
        print("Usage: python -m market_pulse.pipeline.validator <ticker> [<ticker> ...]")
        return 1
    ok = True
    for raw in sys.argv[1:]:
        try:
            print(f"PASS  {raw!r} → {validate_ticker(raw)}")
        except ValidationError:
            print(f"FAIL  {raw!r}")
            ok = False
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
