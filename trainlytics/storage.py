from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping

import pandas as pd

from .config import get_config
from .env import get_env
from .metrics import normalise_records, normalise_sessions
from .models import AthleteSessionRecord, TrainingSession, ValidationError

LOGGER = logging.getLogger(__name__)

SESSION_KEYS = ("trainingSessions", "training_sessions", "sessions")
RECORD_KEYS = ("athleteSessionData", "athlete_session_data", "athleteSessions", "records")


@dataclass(frozen=True)
class Dataset:
    """Training sessions and athlete records loaded from one file."""

    training_sessions: List[TrainingSession] = field(default_factory=list)
    athlete_session_data: List[AthleteSessionRecord] = field(default_factory=list)

    def athletes(self) -> Dict[str, str]:
        """Map athlete ids to the first name recorded for them."""
        names: Dict[str, str] = {}
        for record in self.athlete_session_data:
            if record.athlete_id is None or record.athlete_id in names:
                continue
            names[record.athlete_id] = record.athlete_name or f"Player {record.athlete_id}"
        return names


def data_file() -> Path:
    override = get_env("DATA_FILE")
    if override:
        return Path(override).expanduser()
    return get_config().data_file


def load_dataset(path: Path | None = None) -> Dataset:
    """
    Read a dataset from JSON or CSV.

    JSON files hold ``{"trainingSessions": [...], "athleteSessionData": [...]}``
    (snake_case keys are accepted) or a bare list of athlete records. CSV files
    hold one athlete record per row. When no sessions are listed they are
    inferred from the records' session ids.
    """
    source = path or data_file()
    if not source.exists():
        raise ValidationError(f"Dataset file not found: {source}")

    if source.suffix.lower() == ".csv":
        sessions_raw: List[Mapping[str, Any]] = []
        records_raw = _load_csv_records(source)
    else:
        sessions_raw, records_raw = _load_json_payload(source)

    records = normalise_records(records_raw)
    sessions = normalise_sessions(sessions_raw) if sessions_raw else infer_sessions(records)
    LOGGER.info("Loaded %s sessions and %s athlete records from %s", len(sessions), len(records), source)
    return Dataset(training_sessions=sessions, athlete_session_data=records)


def infer_sessions(records: List[AthleteSessionRecord]) -> List[TrainingSession]:
    """Derive one training session per distinct session id, in first-seen order."""
    seen: Dict[str, TrainingSession] = {}
    for record in records:
        if record.session_id is None or record.session_id in seen:
            continue
        seen[record.session_id] = TrainingSession(id=record.session_id, session_name=record.session_name)
    return list(seen.values())


def _load_json_payload(source: Path) -> tuple[List[Mapping[str, Any]], List[Mapping[str, Any]]]:
    try:
        raw_text = source.read_text(encoding="utf-8").strip() or "{}"
        payload = json.loads(raw_text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError(f"Could not parse {source}: {exc}") from exc

    if isinstance(payload, list):
        return [], _ensure_objects(payload, source=source, key="records")
    if not isinstance(payload, dict):
        raise ValidationError(f"{source} must contain a JSON object or list.")

    sessions = _first_present(payload, SESSION_KEYS)
    records = _first_present(payload, RECORD_KEYS)
    return (
        _ensure_objects(sessions, source=source, key="trainingSessions"),
        _ensure_objects(records, source=source, key="athleteSessionData"),
    )


def _load_csv_records(source: Path) -> List[Dict[str, Any]]:
    try:
        frame = pd.read_csv(source, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise ValidationError(f"Could not parse {source}: {exc}") from exc
    frame.columns = [str(column).strip() for column in frame.columns]
    return [
        {key: (value if value != "" else None) for key, value in row.items()}
        for row in frame.to_dict("records")
    ]


def _first_present(payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return []


def _ensure_objects(items: Any, *, source: Path, key: str) -> List[Mapping[str, Any]]:
    if items is None:
        return []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValidationError(f"{key} in {source} must be a list of objects.")
    return items
