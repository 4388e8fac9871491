"""Chart-ready shaping of analytics results.

Everything here is presentation-agnostic: the bundles carry labels, tick
positions, series values, an axis range and an optional trend line, and any
renderer (the matplotlib adapter in ``services`` or a browser chart) maps
them onto its own configuration.
"""

from __future__ import annotations

import colorsys
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import numpy as np

from .analysis import group_by_month, group_by_week
from .config import DEFAULT_TREND_MIN_POINTS
from .constants import METRIC_LABELS, METRIC_UNITS, METRICS, RPE_AXIS
from .models import PlayerStat, SessionMetric, SessionStat, coerce_session_date

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
GOLDEN_ANGLE = 137.508
TREND_COLOR = "#ff6b6b"
TEAM_COLOR = "#667eea"
ATHLETE_COLOR = "#1976d2"


@dataclass(frozen=True)
class SmartLabels:
    labels: List[str]
    tick_indices: List[int]


@dataclass(frozen=True)
class AxisRange:
    min: float
    max: float
    step_size: float

    def to_dict(self) -> Dict[str, float]:
        return {"min": self.min, "max": self.max, "stepSize": self.step_size}


@dataclass(frozen=True)
class ChartSeries:
    label: str
    values: List[float]
    colors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "values": list(self.values), "colors": list(self.colors)}


@dataclass(frozen=True)
class ChartBundle:
    title: str
    kind: str
    x_label: str
    y_label: str
    labels: List[str]
    tick_indices: List[int]
    max_ticks: int
    series: List[ChartSeries]
    axis_range: AxisRange
    trend_line: Optional[List[float]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "kind": self.kind,
            "xLabel": self.x_label,
            "yLabel": self.y_label,
            "labels": list(self.labels),
            "tickIndices": list(self.tick_indices),
            "maxTicks": self.max_ticks,
            "series": [series.to_dict() for series in self.series],
            "axisRange": self.axis_range.to_dict(),
            "trendLine": list(self.trend_line) if self.trend_line is not None else None,
        }


def short_date(day: date) -> str:
    return f"{_MONTHS[day.month - 1]} {day.day}"


def month_label(day: date) -> str:
    return f"{_MONTHS[day.month - 1]} {day.year}"


def generate_smart_labels(dates: Sequence[date]) -> SmartLabels:
    """
    Choose x-axis labels whose density follows the number of points.

    Up to 10 points every date is labelled; up to 20 every other date plus
    the last; up to 50 the first session of each Monday-start week gets a
    "Week of" label and every other week is ticked; beyond that the first
    session of each month is labelled and ticked.
    """
    count = len(dates)
    if count <= 10:
        return SmartLabels([short_date(day) for day in dates], list(range(count)))

    if count <= 20:
        ticks = [index for index in range(count) if index % 2 == 0 or index == count - 1]
        return SmartLabels([short_date(day) for day in dates], ticks)

    labels = [""] * count
    ticks: List[int] = []
    if count <= 50:
        for week_index, positions in enumerate(group_by_week(dates).values()):
            first = positions[0]
            labels[first] = f"Week of {short_date(dates[first])}"
            if week_index % 2 == 0:
                ticks.append(first)
    else:
        for positions in group_by_month(dates).values():
            first = positions[0]
            labels[first] = month_label(dates[first])
            ticks.append(first)
    return SmartLabels(labels, ticks)


def max_x_ticks(count: int) -> int:
    if count <= 10:
        return count
    if count <= 20:
        return 10
    if count <= 50:
        return 8
    return 6


def calculate_y_axis_range(values: Sequence[float]) -> AxisRange:
    """
    Padded y-axis bounds snapped to a readable step.

    Pads by 10% of the spread (at least 0.5) on both sides, keeps the lower
    bound at zero for non-negative data, then snaps outwards to multiples of
    the step chosen from the padded span.
    """
    if not values:
        return AxisRange(0.0, 10.0, 1.0)

    low = float(min(values))
    high = float(max(values))
    padding = max((high - low) * 0.1, 0.5)
    adjusted_min = max(0.0, low - padding) if low >= 0 else low - padding
    adjusted_max = high + padding

    span = adjusted_max - adjusted_min
    if span <= 5:
        step = 0.5
    elif span <= 10:
        step = 1.0
    elif span <= 25:
        step = 2.0
    elif span <= 50:
        step = 5.0
    else:
        step = 10.0

    return AxisRange(
        min=math.floor(adjusted_min / step) * step,
        max=math.ceil(adjusted_max / step) * step,
        step_size=step,
    )


def calculate_trend_line(values: Sequence[float]) -> List[float]:
    """Least-squares line of value against position; under two points is returned as-is."""
    if len(values) < 2:
        return [float(value) for value in values]

    y = np.asarray(values, dtype=float)
    n = y.size
    x = np.arange(n, dtype=float)
    sum_x = float(x.sum())
    sum_y = float(y.sum())
    sum_xy = float((x * y).sum())
    sum_xx = float((x * x).sum())

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n
    return [float(value) for value in slope * x + intercept]


def palette(count: int) -> List[str]:
    """Distinct bar colours spaced by the golden angle around the hue wheel."""
    colors: List[str] = []
    for index in range(count):
        hue = (index * GOLDEN_ANGLE) % 360
        red, green, blue = colorsys.hls_to_rgb(hue / 360.0, 0.6, 0.7)
        colors.append(f"#{round(red * 255):02x}{round(green * 255):02x}{round(blue * 255):02x}")
    return colors


def metric_label(metric: str) -> str:
    return METRIC_LABELS.get(metric, "Performance")


def metric_unit(metric: str) -> str:
    return METRIC_UNITS.get(metric, "")


def team_trend_bundle(
    session_stats: Sequence[SessionStat],
    *,
    team_name: str = "Team",
    trend_min_points: int = DEFAULT_TREND_MIN_POINTS,
) -> ChartBundle:
    """Line chart of average points per player with a trend once enough sessions exist."""
    points = sorted(
        ((coerce_session_date(stat.session_date), stat.avg_points_per_player) for stat in session_stats),
        key=lambda item: item[0],
    )
    dates = [day for day, _ in points]
    values = [value for _, value in points]
    smart = generate_smart_labels(dates)
    trend = calculate_trend_line(values) if len(values) >= trend_min_points else None
    return ChartBundle(
        title=f"{team_name} - Performance Trend",
        kind="line",
        x_label="Training Sessions",
        y_label="Average Points per Player",
        labels=smart.labels,
        tick_indices=smart.tick_indices,
        max_ticks=max_x_ticks(len(values)),
        series=[ChartSeries("Average Points per Player", values, [TEAM_COLOR])],
        axis_range=calculate_y_axis_range(values),
        trend_line=trend,
    )


def player_average_bundle(
    player_stats: Sequence[PlayerStat],
    *,
    team_name: str = "Team",
) -> ChartBundle:
    """Bar chart of each player's average points, one colour per player."""
    values = [player.average_points for player in player_stats]
    return ChartBundle(
        title=f"{team_name} - Player Average Performance",
        kind="bar",
        x_label="Players",
        y_label="Average Points per Player",
        labels=[player.player_name for player in player_stats],
        tick_indices=list(range(len(values))),
        max_ticks=len(values),
        series=[ChartSeries("Average Points per Player", values, palette(len(values)))],
        axis_range=calculate_y_axis_range(values),
    )


def athlete_metric_bundle(
    session_metrics: Sequence[SessionMetric],
    metric: str,
    *,
    athlete_name: str = "Athlete",
    color: str = ATHLETE_COLOR,
) -> ChartBundle:
    """Line chart of one stat across an athlete's sessions."""
    if metric not in METRICS:
        raise ValueError(f"metric must be one of {', '.join(METRICS)}")

    points = sorted(
        ((coerce_session_date(item.session_date), item.value(metric)) for item in session_metrics),
        key=lambda item: item[0],
    )
    dates = [day for day, _ in points]
    values = [value for _, value in points]
    smart = generate_smart_labels(dates)
    label = metric_label(metric)
    axis = AxisRange(*RPE_AXIS) if metric == "rpe" else calculate_y_axis_range(values)
    return ChartBundle(
        title=f"{athlete_name} - {label} Performance",
        kind="line",
        x_label="Training Sessions",
        y_label=f"{label} {metric_unit(metric)}",
        labels=smart.labels,
        tick_indices=smart.tick_indices,
        max_ticks=max_x_ticks(len(values)),
        series=[ChartSeries(label, values, [color])],
        axis_range=axis,
    )
