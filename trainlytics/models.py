from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from .constants import DEFAULT_ATTENDANCE, PARTICIPATING_STATUSES

LOGGER = logging.getLogger(__name__)

__all__ = [
    "parse_number",
    "parse_session_date",
    "coerce_session_date",
    "is_participating",
    "normalise_attendance",
    "TrainingSession",
    "AthleteSessionRecord",
    "SessionStat",
    "PlayerSession",
    "PlayerStat",
    "SessionMetric",
    "ValidationError",
]

_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%b %d, %Y", "%B %d, %Y")


class ValidationError(ValueError):
    """Raised when a dataset file cannot be interpreted at all."""


def parse_number(value: Any) -> float:
    """
    Coerce a stat field into a float, defaulting to zero.

    Strings are read up to the first non-numeric character (``"12pts"`` gives
    12.0). Missing values, booleans, non-finite numbers and anything that
    cannot be read as a number all collapse to 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value.strip())
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0

    return number if math.isfinite(number) else 0.0


def parse_session_date(value: Any) -> date | None:
    """
    Parse a session date from the shapes the dashboard stores.

    Accepts ``date``/``datetime`` objects (Firestore and pandas timestamps are
    datetime subclasses), ISO-8601 text with or without a time part, slash
    separated dates, epoch milliseconds and serialised ``{"seconds": ...}``
    timestamps. Returns ``None`` when nothing sensible can be extracted.
    """
    if isinstance(value, datetime):
        if value != value:  # NaT
            return None
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None or isinstance(seconds, bool):
            return None
        return _from_epoch(parse_number(seconds))

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return None
        return _from_epoch(value / 1000.0)

    if not isinstance(value, str):
        return None

    candidate = value.strip()
    if not candidate:
        return None

    for text in (candidate, candidate.replace("/", "-")):
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            continue

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue
    return None


def coerce_session_date(value: Any, *, fallback: date | None = None) -> date:
    """Parse a session date, falling back to ``fallback`` (default: today)."""
    parsed = parse_session_date(value)
    if parsed is not None:
        return parsed
    LOGGER.debug("Could not parse session date %r, using fallback.", value)
    return fallback or date.today()


def _from_epoch(seconds: float) -> date | None:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


def normalise_attendance(value: Any) -> str:
    """Return the attendance text, treating blanks as ``Present``."""
    if value is None:
        return DEFAULT_ATTENDANCE
    text = str(value).strip()
    return text or DEFAULT_ATTENDANCE


def is_participating(
    attendance: Any,
    statuses: tuple[str, ...] = PARTICIPATING_STATUSES,
) -> bool:
    """Whether an attendance status counts towards aggregates."""
    return normalise_attendance(attendance).lower() in statuses


def _identifier(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        text = value.strip()
        return text or None
    return None


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _iso(value: date | None) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class TrainingSession:
    """A scheduled team activity."""

    id: Optional[str]
    session_name: Optional[str] = None
    session_date: Optional[date] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "TrainingSession":
        return cls(
            id=_identifier(_pick(payload, "id", "sessionId", "session_id")),
            session_name=_optional_text(_pick(payload, "sessionName", "session_name")),
            session_date=parse_session_date(_pick(payload, "sessionDate", "session_date")),
        )


@dataclass(frozen=True)
class AthleteSessionRecord:
    """One athlete's line for one session."""

    session_id: Optional[str]
    athlete_id: Optional[str]
    athlete_name: Optional[str] = None
    session_name: Optional[str] = None
    session_date: Optional[date] = None
    attendance: str = DEFAULT_ATTENDANCE
    points: float = 0.0
    rebounds: float = 0.0
    assists: float = 0.0
    turnovers: float = 0.0
    fouls: float = 0.0
    rpe: float = 0.0

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "AthleteSessionRecord":
        return cls(
            session_id=_identifier(_pick(payload, "sessionId", "session_id")),
            athlete_id=_identifier(_pick(payload, "athleteId", "athlete_id")),
            athlete_name=_optional_text(_pick(payload, "athleteName", "athlete_name")),
            session_name=_optional_text(_pick(payload, "sessionName", "session_name")),
            session_date=parse_session_date(_pick(payload, "sessionDate", "session_date")),
            attendance=normalise_attendance(payload.get("attendance")),
            points=parse_number(payload.get("points")),
            rebounds=parse_number(payload.get("rebounds")),
            assists=parse_number(payload.get("assists")),
            turnovers=parse_number(payload.get("turnovers")),
            fouls=parse_number(payload.get("fouls")),
            rpe=parse_number(payload.get("rpe")),
        )


@dataclass(frozen=True)
class SessionStat:
    session_id: Optional[str]
    session_name: str
    session_date: Optional[date]
    total_points: float
    participating_athletes: int
    avg_points_per_player: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "sessionName": self.session_name,
            "sessionDate": _iso(self.session_date),
            "totalPoints": self.total_points,
            "participatingAthletes": self.participating_athletes,
            "avgPointsPerPlayer": self.avg_points_per_player,
        }


@dataclass(frozen=True)
class PlayerSession:
    session_id: Optional[str]
    session_name: str
    session_date: Optional[date]
    points: float
    attendance: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "sessionName": self.session_name,
            "sessionDate": _iso(self.session_date),
            "points": self.points,
            "attendance": self.attendance,
        }


@dataclass(frozen=True)
class PlayerStat:
    player_id: Optional[str]
    player_name: str
    total_points: float
    sessions_participated: int
    average_points: float
    sessions: List[PlayerSession] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playerId": self.player_id,
            "playerName": self.player_name,
            "totalPoints": self.total_points,
            "sessionsParticipated": self.sessions_participated,
            "averagePoints": self.average_points,
            "sessions": [session.to_dict() for session in self.sessions],
        }


@dataclass(frozen=True)
class SessionMetric:
    """Every tracked stat for one participating session of one athlete."""

    session_id: Optional[str]
    session_name: str
    session_date: Optional[date]
    points: float
    rebounds: float
    assists: float
    turnovers: float
    fouls: float
    rpe: float
    attendance: str

    def value(self, metric: str) -> float:
        return float(getattr(self, metric))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "sessionName": self.session_name,
            "sessionDate": _iso(self.session_date),
            "points": self.points,
            "rebounds": self.rebounds,
            "assists": self.assists,
            "turnovers": self.turnovers,
            "fouls": self.fouls,
            "rpe": self.rpe,
            "attendance": self.attendance,
        }
