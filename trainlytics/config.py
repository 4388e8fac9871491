from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from .constants import DEFAULT_SESSION_NAME, PARTICIPATING_STATUSES
from .env import get_env

DEFAULT_TREND_MIN_POINTS = 5
DEFAULT_DATA_FILE = Path("data/team_data.json")


@dataclass(frozen=True)
class AppConfig:
    participating_statuses: tuple[str, ...] = PARTICIPATING_STATUSES
    default_session_name: str = DEFAULT_SESSION_NAME
    trend_min_points: int = DEFAULT_TREND_MIN_POINTS
    data_file: Path = DEFAULT_DATA_FILE


def _config_path() -> Path | None:
    """Resolve the TOML configuration file, if present."""
    env_override = get_env("CONFIG")
    if env_override:
        path = Path(env_override).expanduser()
        return path if path.exists() else None

    default_path = Path("config/trainlytics.toml")
    if default_path.exists():
        return default_path
    return None


def _load_toml(path: Path) -> Mapping[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _coerce_statuses(raw: Any) -> tuple[str, ...]:
    if not raw:
        return PARTICIPATING_STATUSES
    if isinstance(raw, str):
        entries = [entry.strip().lower() for entry in raw.split(",")]
    elif isinstance(raw, (list, tuple, set)):
        entries = [str(entry).strip().lower() for entry in raw]
    else:
        return PARTICIPATING_STATUSES
    cleaned = tuple(status for status in entries if status)
    return cleaned or PARTICIPATING_STATUSES


def _coerce_min_points(raw: Any) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_TREND_MIN_POINTS
    return value if value >= 2 else DEFAULT_TREND_MIN_POINTS


def _build_config(raw: Mapping[str, Any]) -> AppConfig:
    session_name = raw.get("default_session_name")
    if not isinstance(session_name, str) or not session_name.strip():
        session_name = DEFAULT_SESSION_NAME
    data_file = get_env("DATA_FILE") or raw.get("data_file")
    return AppConfig(
        participating_statuses=_coerce_statuses(raw.get("participating_statuses")),
        default_session_name=session_name.strip(),
        trend_min_points=_coerce_min_points(raw.get("trend_min_points", DEFAULT_TREND_MIN_POINTS)),
        data_file=Path(str(data_file)).expanduser() if data_file else DEFAULT_DATA_FILE,
    )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load configuration once, falling back to built-in defaults."""
    path = _config_path()
    data = _load_toml(path) if path else {}
    return _build_config(data)


def configure_logging() -> logging.Logger:
    """Apply the configured log level to the package logger."""
    logger = logging.getLogger("trainlytics")
    level_name = get_env("LOG_LEVEL") or os.getenv("LOG_LEVEL")
    if level_name:
        level = getattr(logging, level_name.upper(), logging.INFO)
        logger.setLevel(level)
    return logger


def as_dict() -> dict[str, Any]:
    """Return the effective configuration for debug/CLI display."""
    config = get_config()
    return {
        "participating_statuses": list(config.participating_statuses),
        "default_session_name": config.default_session_name,
        "trend_min_points": config.trend_min_points,
        "data_file": str(config.data_file),
        "source": str(_config_path() or "defaults"),
    }
