from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from .config import as_dict as config_as_dict, configure_logging, get_config
from .constants import METRICS
from .models import ValidationError
from .services import (
    PerformanceAggregator,
    generate_plots,
    render_athlete_table,
    render_player_table,
    render_team_trend_table,
)
from .storage import Dataset, load_dataset

app = typer.Typer(help="Team performance analytics for training sessions.")

DATA_FILE_OPTION = typer.Option(
    None,
    "--data-file",
    "-f",
    help="Dataset JSON/CSV (defaults to TRAINLYTICS_DATA_FILE or data/team_data.json).",
)


def _fail(message: str, *, code: int = 1) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


def _load(data_file: Optional[Path]) -> Dataset:
    try:
        return load_dataset(data_file)
    except ValidationError as exc:
        _fail(f"Could not read dataset: {exc}")


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log per-session and per-player diagnostics.",
    ),
) -> None:
    """Summarise points, rebounds, assists and effort across a team's sessions."""
    logger = configure_logging()
    if verbose:
        logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
        logger.setLevel(logging.DEBUG)


@app.command("team-trend")
def team_trend(
    data_file: Optional[Path] = DATA_FILE_OPTION,
    team_name: str = typer.Option("Team", "--team-name", help="Team name used in chart titles."),
    as_json: bool = typer.Option(False, "--json", help="Print the analytics and chart bundle as JSON."),
) -> None:
    """
    Average points per participating player for every session.

    Examples:
        trainlytics team-trend --data-file data/team_data.json
    """
    dataset = _load(data_file)
    aggregator = PerformanceAggregator(get_config())
    result = aggregator.team_trend(dataset.training_sessions, dataset.athlete_session_data)

    if as_json:
        payload = result.to_dict()
        payload["chart"] = aggregator.team_trend_chart(result, team_name=team_name).to_dict()
        _echo_json(payload)
        return

    if result.summary is None:
        typer.echo("No sessions with participating athletes.")
        raise typer.Exit(code=0)

    summary = result.summary
    typer.echo(render_team_trend_table(result))
    typer.echo(
        f"Totals: {summary.total_sessions} sessions, overall avg {summary.overall_average:.2f} "
        f"(high {summary.highest_average:.2f}, low {summary.lowest_average:.2f}), "
        f"{summary.average_athletes_per_session:.1f} athletes/session, "
        f"consistency {summary.consistency_score:.1f}."
    )


@app.command()
def players(
    data_file: Optional[Path] = DATA_FILE_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the analytics and chart bundle as JSON."),
    team_name: str = typer.Option("Team", "--team-name", help="Team name used in chart titles."),
) -> None:
    """
    Rank players by average points over the sessions they attended.
    """
    dataset = _load(data_file)
    aggregator = PerformanceAggregator(get_config())
    result = aggregator.player_averages(dataset.training_sessions, dataset.athlete_session_data)

    if as_json:
        payload = result.to_dict()
        payload["chart"] = aggregator.player_average_chart(result, team_name=team_name).to_dict()
        _echo_json(payload)
        return

    if result.summary is None:
        typer.echo("No participating players found.")
        raise typer.Exit(code=0)

    summary = result.summary
    typer.echo(render_player_table(result))
    typer.echo(
        f"Top performer: {summary.top_performer.player_name} "
        f"({summary.top_performer.average_points:.2f} avg). "
        f"Spread {summary.performance_spread:.2f}, "
        f"{summary.average_sessions_per_player:.1f} sessions/player."
    )


@app.command()
def athlete(
    athlete_id: str = typer.Option(..., "--athlete-id", "-a", help="Athlete identifier to report on."),
    data_file: Optional[Path] = DATA_FILE_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print the analytics as JSON."),
) -> None:
    """
    Per-session stat lines and averages for a single athlete.
    """
    dataset = _load(data_file)
    aggregator = PerformanceAggregator(get_config())
    result = aggregator.athlete_metrics(dataset.athlete_session_data, athlete_id)

    if as_json:
        _echo_json(result.to_dict())
        return

    if result.summary is None:
        typer.echo(f"No participating sessions for athlete {athlete_id}.")
        raise typer.Exit(code=0)

    summary = result.summary
    name = dataset.athletes().get(athlete_id.strip(), athlete_id)
    typer.echo(f"[{name}] {summary.total_sessions} sessions")
    typer.echo(render_athlete_table(result.session_metrics))
    typer.echo("Averages: " + ", ".join(f"{key}={value:.2f}" for key, value in summary.averages.items()))
    typer.echo(
        f"Best: {summary.best_performance.session} ({summary.best_performance.points:g} pts). "
        f"Worst: {summary.worst_performance.session} ({summary.worst_performance.points:g} pts)."
    )
    typer.echo("Consistency: " + ", ".join(f"{key}={value:.1f}" for key, value in summary.consistency.items()))


@app.command("athletes")
def list_athletes(data_file: Optional[Path] = DATA_FILE_OPTION) -> None:
    """List athlete ids and names found in the dataset."""
    dataset = _load(data_file)
    roster = dataset.athletes()
    if not roster:
        typer.echo("No athletes found.")
        return
    for athlete_id, name in roster.items():
        typer.echo(f"{athlete_id}\t{name}")


@app.command()
def plot(
    data_file: Optional[Path] = DATA_FILE_OPTION,
    output_dir: Path = typer.Option(Path("data/plots"), "--output-dir", "-o", help="Directory for PNG files."),
    athlete_id: Optional[str] = typer.Option(
        None,
        "--athlete-id",
        "-a",
        help="Plot per-metric charts for this athlete instead of team charts.",
    ),
    metric: list[str] = typer.Option(
        [],
        "--metric",
        "-m",
        help="Metric(s) to plot for --athlete-id (repeatable; defaults to all).",
    ),
    team_name: str = typer.Option("Team", "--team-name", help="Team name used in chart titles."),
) -> None:
    """
    Render team or athlete charts to PNG files.

    Examples:
        trainlytics plot
        trainlytics plot --athlete-id a1 --metric points --metric rpe
    """
    dataset = _load(data_file)
    aggregator = PerformanceAggregator(get_config())

    if athlete_id:
        unknown = [name for name in metric if name not in METRICS]
        if unknown:
            raise typer.BadParameter(
                f"Unknown metric(s): {', '.join(unknown)}. Choose from {', '.join(METRICS)}.",
                param_hint="--metric",
            )
        result = aggregator.athlete_metrics(dataset.athlete_session_data, athlete_id)
        name = dataset.athletes().get(athlete_id.strip(), athlete_id)
        bundles = [
            aggregator.athlete_metric_chart(result, metric_name, athlete_name=name)
            for metric_name in (metric or list(METRICS))
        ]
    else:
        trend = aggregator.team_trend(dataset.training_sessions, dataset.athlete_session_data)
        ranking = aggregator.player_averages(dataset.training_sessions, dataset.athlete_session_data)
        bundles = [
            aggregator.team_trend_chart(trend, team_name=team_name),
            aggregator.player_average_chart(ranking, team_name=team_name),
        ]

    try:
        paths = generate_plots(bundles, output_dir=output_dir)
    except RuntimeError as exc:
        _fail(str(exc))
    except ValueError as exc:
        _fail(str(exc), code=0)

    if not paths:
        typer.echo("No chart data available to plot.")
        return
    for path in paths:
        typer.echo(f"Saved plot to {path}")


@app.command("config")
def config_show() -> None:
    """
    Show the effective configuration.
    """
    config = config_as_dict()
    typer.echo(f"Config source: {config.get('source')}")
    typer.echo("Participating statuses: " + ", ".join(config.get("participating_statuses", [])))
    typer.echo(f"Default session name: {config.get('default_session_name')}")
    typer.echo(f"Trend line minimum points: {config.get('trend_min_points')}")
    typer.echo(f"Data file: {config.get('data_file')}")
