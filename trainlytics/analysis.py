from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Dict, List

import numpy as np

Group = Dict[str, List[int]]


def round_half_up(value: float, places: int = 2) -> float:
    """
    Round to ``places`` decimals with halves going up.

    Mirrors the dashboard's ``Math.round(x * 10**p) / 10**p`` so the numbers
    shown in the browser and in reports agree to the last digit.
    """
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


def consistency_score(values: Sequence[float]) -> float:
    """
    Score how stable a series is on a 0-100 scale.

    Computed as ``100 - CV * 100`` where CV is the population standard
    deviation over the mean (zero when the mean is not positive), clamped to
    [0, 100] and rounded to one decimal. Fewer than two values score 100.
    """
    if len(values) < 2:
        return 100.0

    data = np.asarray(values, dtype=float)
    mean = float(data.mean())
    std = float(data.std(ddof=0))
    cv = std / mean if mean > 0 else 0.0
    score = max(0.0, min(100.0, (1.0 - cv) * 100.0))
    return round_half_up(score, 1)


def week_start(day: date) -> date:
    """Monday of the calendar week containing ``day``."""
    return day - timedelta(days=day.weekday())


def group_by_week(dates: Sequence[date]) -> Group:
    """
    Group positions of chronologically sorted dates by Monday-start week.

    Keys are the ISO date of each week's Monday, in first-seen order.
    """
    grouped: Group = {}
    for index, day in enumerate(dates):
        key = week_start(day).isoformat()
        grouped.setdefault(key, []).append(index)
    return grouped


def group_by_month(dates: Sequence[date]) -> Group:
    """
    Group positions of chronologically sorted dates by calendar month (YYYY-MM).
    """
    grouped: Group = {}
    for index, day in enumerate(dates):
        key = day.strftime("%Y-%m")
        grouped.setdefault(key, []).append(index)
    return grouped
