from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

from . import charts
from .config import AppConfig, get_config
from .metrics import (
    AthleteMetricsResult,
    PlayerAverageResult,
    RecordInput,
    SessionInput,
    TeamTrendResult,
    calculate_athlete_performance_metrics,
    calculate_player_average_points,
    calculate_team_performance_trend,
    filter_records_for_athlete,
)
from .models import SessionMetric

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceAggregator:
    """
    Stateless entry point for the dashboard analytics.

    Construct one per caller with the configuration it should use; every
    method recomputes from the inputs it is given.
    """

    config: AppConfig = field(default_factory=get_config)

    def team_trend(
        self,
        training_sessions: Sequence[SessionInput],
        athlete_session_data: Sequence[RecordInput],
    ) -> TeamTrendResult:
        return calculate_team_performance_trend(training_sessions, athlete_session_data, config=self.config)

    def player_averages(
        self,
        training_sessions: Sequence[SessionInput],
        athlete_session_data: Sequence[RecordInput],
    ) -> PlayerAverageResult:
        return calculate_player_average_points(training_sessions, athlete_session_data, config=self.config)

    def athlete_metrics(
        self,
        athlete_session_data: Sequence[RecordInput],
        athlete_id: Any | None = None,
    ) -> AthleteMetricsResult:
        records = (
            filter_records_for_athlete(athlete_session_data, athlete_id)
            if athlete_id is not None
            else athlete_session_data
        )
        return calculate_athlete_performance_metrics(records, config=self.config)

    def team_trend_chart(self, result: TeamTrendResult, *, team_name: str = "Team") -> charts.ChartBundle:
        return charts.team_trend_bundle(
            result.session_stats,
            team_name=team_name,
            trend_min_points=self.config.trend_min_points,
        )

    def player_average_chart(self, result: PlayerAverageResult, *, team_name: str = "Team") -> charts.ChartBundle:
        return charts.player_average_bundle(result.player_stats, team_name=team_name)

    def athlete_metric_chart(
        self,
        result: AthleteMetricsResult,
        metric: str,
        *,
        athlete_name: str = "Athlete",
    ) -> charts.ChartBundle:
        return charts.athlete_metric_bundle(result.session_metrics, metric, athlete_name=athlete_name)


def _render_table(headers: Sequence[str], rows: Sequence[Mapping[str, str]]) -> str:
    widths = {key: len(key) for key in headers}
    for row in rows:
        for key in headers:
            widths[key] = max(widths[key], len(row[key]))

    def _format_line(values: Mapping[str, str]) -> str:
        return "  ".join(values[key].rjust(widths[key]) for key in headers)

    header_line = "  ".join(key.upper().rjust(widths[key]) for key in headers)
    body = "\n".join(_format_line(row) for row in rows)
    return "\n".join(filter(None, [header_line, body]))


def _number(value: float) -> str:
    return f"{value:g}" if float(value).is_integer() else f"{value:.2f}"


def render_team_trend_table(result: TeamTrendResult) -> str:
    """Render a fixed-width table of per-session averages."""
    headers = ("date", "session", "athletes", "points", "avg")
    rows = [
        {
            "date": stat.session_date.isoformat() if stat.session_date else "n/a",
            "session": stat.session_name,
            "athletes": str(stat.participating_athletes),
            "points": _number(stat.total_points),
            "avg": f"{stat.avg_points_per_player:.2f}",
        }
        for stat in result.session_stats
    ]
    return _render_table(headers, rows)


def render_player_table(result: PlayerAverageResult) -> str:
    """Render a fixed-width ranking of players by average points."""
    headers = ("rank", "player", "sessions", "points", "avg")
    rows = [
        {
            "rank": str(index),
            "player": player.player_name,
            "sessions": str(player.sessions_participated),
            "points": _number(player.total_points),
            "avg": f"{player.average_points:.2f}",
        }
        for index, player in enumerate(result.player_stats, start=1)
    ]
    return _render_table(headers, rows)


def render_athlete_table(session_metrics: Sequence[SessionMetric]) -> str:
    """Render one row per session with every tracked stat."""
    headers = ("date", "session", "pts", "reb", "ast", "tov", "fouls", "rpe", "attendance")
    rows = [
        {
            "date": item.session_date.isoformat() if item.session_date else "n/a",
            "session": item.session_name,
            "pts": _number(item.points),
            "reb": _number(item.rebounds),
            "ast": _number(item.assists),
            "tov": _number(item.turnovers),
            "fouls": _number(item.fouls),
            "rpe": _number(item.rpe),
            "attendance": item.attendance,
        }
        for item in session_metrics
    ]
    return _render_table(headers, rows)


def generate_plots(
    bundles: Sequence[charts.ChartBundle],
    *,
    output_dir: Path,
) -> list[Path]:
    """Render chart bundles to PNG files with matplotlib."""

    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - exercised via CLI
        raise RuntimeError("matplotlib is required to generate plots.") from exc

    if not bundles:
        raise ValueError("No chart data available to plot.")

    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")

    paths: list[Path] = []
    for bundle in bundles:
        if not bundle.series or not bundle.series[0].values:
            LOGGER.warning("Skipping empty chart: %s", bundle.title)
            continue
        path = output_dir / f"{_slug(bundle.title)}_{timestamp}.png"
        _draw_bundle(bundle, path, plt)
        paths.append(path)
    return paths


def _draw_bundle(bundle: charts.ChartBundle, path: Path, plt: Any) -> None:
    series = bundle.series[0]
    positions = list(range(len(series.values)))

    fig, ax = plt.subplots()
    if bundle.kind == "bar":
        ax.bar(positions, series.values, color=series.colors or None, label=series.label)
    else:
        color = series.colors[0] if series.colors else None
        ax.plot(positions, series.values, marker="o", linewidth=2, color=color, label=series.label)
        if bundle.trend_line is not None:
            ax.plot(
                positions,
                bundle.trend_line,
                linestyle="--",
                linewidth=2,
                color=charts.TREND_COLOR,
                label="Trend",
            )

    ax.set_xticks(bundle.tick_indices)
    ax.set_xticklabels([bundle.labels[index] for index in bundle.tick_indices])
    ax.set_ylim(bundle.axis_range.min, bundle.axis_range.max)
    ax.set_title(bundle.title)
    ax.set_xlabel(bundle.x_label)
    ax.set_ylabel(bundle.y_label)
    if bundle.trend_line is not None:
        ax.legend()
    plt.setp(ax.get_xticklabels(), rotation=45, ha="right")
    fig.tight_layout()
    fig.savefig(path, dpi=150)
    plt.close(fig)


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", value.lower()).strip("_") or "chart"
