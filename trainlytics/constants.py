from __future__ import annotations

PARTICIPATING_STATUSES: tuple[str, ...] = ("present", "late", "left early", "late arrival")
DEFAULT_ATTENDANCE = "Present"
DEFAULT_SESSION_NAME = "Training Session"

METRICS: tuple[str, ...] = ("points", "rebounds", "assists", "turnovers", "fouls", "rpe")
CONSISTENCY_METRICS: tuple[str, ...] = ("points", "rebounds", "assists")

METRIC_LABELS = {
    "points": "Points Scored",
    "rebounds": "Rebounds",
    "assists": "Assists",
    "turnovers": "Turnovers",
    "fouls": "Fouls",
    "rpe": "RPE (Effort Level)",
}

METRIC_UNITS = {
    "points": "points",
    "rebounds": "rebounds",
    "assists": "assists",
    "turnovers": "turnovers",
    "fouls": "fouls",
    "rpe": "/10",
}

# RPE is reported on a fixed 1-10 scale.
RPE_AXIS = (0.0, 10.0, 1.0)
