"""Five-session momentum score derived from the returned price history."""

from typing import Optional, Sequence

import pandas as pd

from market_pulse.models.datatypes import HistoricalDataPoint, Momentum

MOMENTUM_SESSIONS = 5


def compute_momentum(history: Sequence[HistoricalDataPoint]) -> Optional[Momentum]:
    """Score the last five daily moves.

    Each session contributes the sign of its % change versus the previous
    close; the sum maps to a label (``>=3`` Strong Positive, ``>0`` Positive,
    ``0`` Neutral, otherwise Negative).

    Args:
        history: Newest-first bars. Fewer than six bars yields ``None``.
    """
    if len(history) < MOMENTUM_SESSIONS + 1:
        return None

    recent = list(history)[: MOMENTUM_SESSIONS + 1]
    # pct_change() compares each row to the one before it, so order oldest-first
    closes = pd.Series(
        [p.close for p in reversed(recent)],
        index=[p.date for p in reversed(recent)],
        dtype="float64",
    )
    changes = (closes.pct_change(fill_method=None) * 100.0).iloc[1:]

    score = int(sum(_sign(c) for c in changes))
    return Momentum(
        score=score,
        label=_label(score),
        daily_changes=tuple((day, float(change)) for day, change in changes.items()),
    )


def _sign(value: float) -> int:
    if pd.isna(value) or value == 0:
        return 0
    return 1 if value > 0 else -1


def _label(score: int) -> str:
    if score >= 3:
        return "Strong Positive"
    if score > 0:
        return "Positive"
    if score == 0:
        return "Neutral"
    return "Negative"
