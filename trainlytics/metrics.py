from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .analysis import consistency_score, round_half_up
from .config import AppConfig, get_config
from .constants import CONSISTENCY_METRICS, METRICS
from .models import (
    AthleteSessionRecord,
    PlayerSession,
    PlayerStat,
    SessionMetric,
    SessionStat,
    TrainingSession,
    is_participating,
)

LOGGER = logging.getLogger(__name__)

SessionInput = Union[Mapping[str, Any], TrainingSession]
RecordInput = Union[Mapping[str, Any], AthleteSessionRecord]

RECORD_COLUMNS = [
    "session_id",
    "athlete_id",
    "athlete_name",
    "session_name",
    "session_date",
    "attendance",
    *METRICS,
    "participating",
]


@dataclass(frozen=True)
class TeamTrendSummary:
    total_sessions: int
    overall_average: float
    highest_average: float
    lowest_average: float
    total_athletes_tracked: int
    average_athletes_per_session: float
    total_points_scored: float
    consistency_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSessions": self.total_sessions,
            "overallAverage": self.overall_average,
            "highestAverage": self.highest_average,
            "lowestAverage": self.lowest_average,
            "totalAthletesTracked": self.total_athletes_tracked,
            "averageAthletesPerSession": self.average_athletes_per_session,
            "totalPointsScored": self.total_points_scored,
            "consistencyScore": self.consistency_score,
        }


@dataclass(frozen=True)
class TeamTrendResult:
    session_stats: List[SessionStat]
    summary: Optional[TeamTrendSummary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionStats": [stat.to_dict() for stat in self.session_stats],
            "summary": self.summary.to_dict() if self.summary else None,
        }


@dataclass(frozen=True)
class PlayerSummary:
    total_players: int
    highest_average: float
    lowest_average: float
    overall_average: float
    top_performer: PlayerStat
    total_points_all_players: float
    average_sessions_per_player: float
    performance_spread: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPlayers": self.total_players,
            "highestAverage": self.highest_average,
            "lowestAverage": self.lowest_average,
            "overallAverage": self.overall_average,
            "topPerformer": self.top_performer.to_dict(),
            "totalPointsAllPlayers": self.total_points_all_players,
            "averageSessionsPerPlayer": self.average_sessions_per_player,
            "performanceSpread": self.performance_spread,
        }


@dataclass(frozen=True)
class PlayerAverageResult:
    player_stats: List[PlayerStat]
    summary: Optional[PlayerSummary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playerStats": [player.to_dict() for player in self.player_stats],
            "summary": self.summary.to_dict() if self.summary else None,
        }


@dataclass(frozen=True)
class PerformanceMark:
    session: str
    points: float
    date: Optional[date]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session": self.session,
            "points": self.points,
            "date": self.date.isoformat() if self.date else None,
        }


@dataclass(frozen=True)
class AthleteSummary:
    total_sessions: int
    averages: Dict[str, float]
    totals: Dict[str, float]
    best_performance: PerformanceMark
    worst_performance: PerformanceMark
    consistency: Dict[str, float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalSessions": self.total_sessions,
            "averages": dict(self.averages),
            "totals": dict(self.totals),
            "bestPerformance": self.best_performance.to_dict(),
            "worstPerformance": self.worst_performance.to_dict(),
            "consistency": dict(self.consistency),
        }


@dataclass(frozen=True)
class AthleteMetricsResult:
    session_metrics: List[SessionMetric]
    summary: Optional[AthleteSummary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionMetrics": [metric.to_dict() for metric in self.session_metrics],
            "summary": self.summary.to_dict() if self.summary else None,
        }


def normalise_sessions(sessions: Iterable[SessionInput]) -> List[TrainingSession]:
    normalised: List[TrainingSession] = []
    for session in sessions:
        if isinstance(session, TrainingSession):
            normalised.append(session)
        elif isinstance(session, Mapping):
            normalised.append(TrainingSession.from_mapping(session))
        else:
            raise TypeError(f"Unsupported session type: {type(session)!r}")
    return normalised


def normalise_records(records: Iterable[RecordInput]) -> List[AthleteSessionRecord]:
    normalised: List[AthleteSessionRecord] = []
    for record in records:
        if isinstance(record, AthleteSessionRecord):
            normalised.append(record)
        elif isinstance(record, Mapping):
            normalised.append(AthleteSessionRecord.from_mapping(record))
        else:
            raise TypeError(f"Unsupported record type: {type(record)!r}")
    return normalised


def records_to_dataframe(
    records: Iterable[RecordInput],
    *,
    statuses: Sequence[str] | None = None,
) -> pd.DataFrame:
    """Normalise athlete session records into a DataFrame with a participation flag."""
    allowed = tuple(statuses) if statuses is not None else get_config().participating_statuses
    rows: List[Dict[str, Any]] = []
    for record in normalise_records(records):
        payload = asdict(record)
        payload["participating"] = is_participating(record.attendance, allowed)
        rows.append(payload)

    if not rows:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    # Object columns keep missing text as None rather than NaN.
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS, dtype=object)
    df[list(METRICS)] = df[list(METRICS)].astype(float)
    df["participating"] = df["participating"].astype(bool)
    return df


def filter_records_for_athlete(
    records: Iterable[RecordInput],
    athlete_id: Any,
) -> List[AthleteSessionRecord]:
    """Select the records belonging to a single athlete id."""
    wanted = str(athlete_id).strip()
    return [record for record in normalise_records(records) if record.athlete_id == wanted]


def calculate_team_performance_trend(
    training_sessions: Sequence[SessionInput],
    athlete_session_data: Sequence[RecordInput],
    *,
    config: AppConfig | None = None,
) -> TeamTrendResult:
    """Average points per participating player for each session, oldest first."""
    cfg = config or get_config()
    sessions = normalise_sessions(training_sessions)
    df = records_to_dataframe(athlete_session_data, statuses=cfg.participating_statuses)
    LOGGER.info("Calculating team performance trends for %s sessions.", len(sessions))

    by_session: Dict[str, pd.DataFrame] = (
        {key: group for key, group in df.groupby("session_id", sort=False)} if not df.empty else {}
    )

    stats: List[SessionStat] = []
    for session in sessions:
        name = session.session_name or cfg.default_session_name
        matched = by_session.get(session.id) if session.id is not None else None
        if matched is None or matched.empty:
            LOGGER.warning("No athlete data found for session: %s", name)
            continue

        session_date = session.session_date or _as_date(matched["session_date"].iloc[0])
        participants = matched[matched["participating"]]
        if participants.empty:
            LOGGER.warning("No participating athletes for session: %s", name)
            continue

        total_points = float(participants["points"].sum())
        count = int(participants.shape[0])
        average = total_points / count
        LOGGER.debug(
            "%s: %s athletes, %s total points, %.2f avg per player",
            name,
            count,
            total_points,
            average,
        )
        stats.append(
            SessionStat(
                session_id=session.id,
                session_name=name,
                session_date=session_date,
                total_points=total_points,
                participating_athletes=count,
                avg_points_per_player=round_half_up(average, 2),
            )
        )

    stats.sort(key=lambda stat: _date_sort_key(stat.session_date))
    return TeamTrendResult(session_stats=stats, summary=summarise_team_trend(stats))


def summarise_team_trend(session_stats: Sequence[SessionStat]) -> Optional[TeamTrendSummary]:
    if not session_stats:
        return None

    averages = [stat.avg_points_per_player for stat in session_stats]
    total_athletes = sum(stat.participating_athletes for stat in session_stats)
    total_points = sum(stat.total_points for stat in session_stats)
    count = len(session_stats)
    return TeamTrendSummary(
        total_sessions=count,
        overall_average=round_half_up(sum(averages) / count, 2),
        highest_average=max(averages),
        lowest_average=min(averages),
        total_athletes_tracked=total_athletes,
        average_athletes_per_session=round_half_up(total_athletes / count, 1),
        total_points_scored=total_points,
        consistency_score=consistency_score(averages),
    )


def calculate_player_average_points(
    training_sessions: Sequence[SessionInput],
    athlete_session_data: Sequence[RecordInput],
    *,
    config: AppConfig | None = None,
) -> PlayerAverageResult:
    """
    Rank players by average points over the sessions they took part in.

    Training sessions only backfill session names and dates missing from
    the athlete records.
    """
    cfg = config or get_config()
    session_lookup = {
        session.id: session for session in normalise_sessions(training_sessions) if session.id is not None
    }
    df = records_to_dataframe(athlete_session_data, statuses=cfg.participating_statuses)
    LOGGER.info("Calculating average points per player.")

    players: List[PlayerStat] = []
    if not df.empty:
        participants = df[df["participating"]]
        missing_ids = int(participants["athlete_id"].isna().sum())
        if missing_ids:
            LOGGER.warning("Skipping %s participating records without an athlete id.", missing_ids)

        for player_id, group in participants.groupby("athlete_id", sort=False):
            players.append(_player_from_group(str(player_id), group, session_lookup, cfg))

    players.sort(key=lambda player: -player.average_points)
    return PlayerAverageResult(player_stats=players, summary=summarise_players(players))


def _player_from_group(
    player_id: str,
    group: pd.DataFrame,
    session_lookup: Mapping[str, TrainingSession],
    cfg: AppConfig,
) -> PlayerStat:
    names = group["athlete_name"].dropna()
    player_name = str(names.iloc[0]) if not names.empty else f"Player {player_id}"

    history: List[PlayerSession] = []
    for row in group.to_dict("records"):
        session_id = _text_or_none(row["session_id"])
        scheduled = session_lookup.get(session_id) if session_id else None
        history.append(
            PlayerSession(
                session_id=session_id,
                session_name=(
                    _text_or_none(row["session_name"])
                    or (scheduled.session_name if scheduled else None)
                    or cfg.default_session_name
                ),
                session_date=_as_date(row["session_date"]) or (scheduled.session_date if scheduled else None),
                points=float(row["points"]),
                attendance=row["attendance"],
            )
        )

    total_points = float(group["points"].sum())
    sessions_participated = int(group.shape[0])
    average = total_points / sessions_participated
    LOGGER.debug(
        "%s: %s total points in %s sessions = %.2f avg",
        player_name,
        total_points,
        sessions_participated,
        average,
    )
    return PlayerStat(
        player_id=player_id,
        player_name=player_name,
        total_points=total_points,
        sessions_participated=sessions_participated,
        average_points=round_half_up(average, 2),
        sessions=history,
    )


def summarise_players(player_stats: Sequence[PlayerStat]) -> Optional[PlayerSummary]:
    if not player_stats:
        return None

    averages = [player.average_points for player in player_stats]
    total_sessions = sum(player.sessions_participated for player in player_stats)
    count = len(player_stats)
    return PlayerSummary(
        total_players=count,
        highest_average=max(averages),
        lowest_average=min(averages),
        overall_average=round_half_up(sum(averages) / count, 2),
        top_performer=player_stats[0],
        total_points_all_players=sum(player.total_points for player in player_stats),
        average_sessions_per_player=round_half_up(total_sessions / count, 1),
        performance_spread=round_half_up(max(averages) - min(averages), 2),
    )


def calculate_athlete_performance_metrics(
    athlete_session_data: Sequence[RecordInput],
    *,
    config: AppConfig | None = None,
) -> AthleteMetricsResult:
    """Per-session stat lines and a multi-metric summary for one athlete."""
    cfg = config or get_config()
    records = normalise_records(athlete_session_data)
    if not records:
        return AthleteMetricsResult(session_metrics=[], summary=None)

    participating = [
        record for record in records if is_participating(record.attendance, cfg.participating_statuses)
    ]
    participating.sort(key=lambda record: _date_sort_key(record.session_date))

    session_metrics = [
        SessionMetric(
            session_id=record.session_id,
            session_name=record.session_name or cfg.default_session_name,
            session_date=record.session_date,
            points=record.points,
            rebounds=record.rebounds,
            assists=record.assists,
            turnovers=record.turnovers,
            fouls=record.fouls,
            rpe=record.rpe,
            attendance=record.attendance,
        )
        for record in participating
    ]
    LOGGER.debug("Processed %s sessions for athlete performance.", len(session_metrics))
    return AthleteMetricsResult(
        session_metrics=session_metrics,
        summary=summarise_athlete(session_metrics),
    )


def summarise_athlete(session_metrics: Sequence[SessionMetric]) -> Optional[AthleteSummary]:
    if not session_metrics:
        return None

    frame = pd.DataFrame([metric.to_dict() for metric in session_metrics], columns=list(METRICS))
    count = len(session_metrics)
    totals = {metric: float(frame[metric].sum()) for metric in METRICS}
    averages = {metric: round_half_up(totals[metric] / count, 2) for metric in METRICS}

    # Strict comparisons keep the earliest session on ties.
    best = worst = session_metrics[0]
    for current in session_metrics[1:]:
        if current.points > best.points:
            best = current
        if current.points < worst.points:
            worst = current

    return AthleteSummary(
        total_sessions=count,
        averages=averages,
        totals=totals,
        best_performance=PerformanceMark(best.session_name, best.points, best.session_date),
        worst_performance=PerformanceMark(worst.session_name, worst.points, worst.session_date),
        consistency={metric: consistency_score(frame[metric].tolist()) for metric in CONSISTENCY_METRICS},
    )


def _as_date(value: object) -> Optional[date]:
    return value if isinstance(value, date) else None


def _text_or_none(value: object) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _date_sort_key(value: Optional[date]) -> tuple[bool, date]:
    return (value is None, value or date.min)
