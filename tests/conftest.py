from __future__ import annotations

import json

import pytest

from trainlytics.config import get_config


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    for name in ("TRAINLYTICS_CONFIG", "TRAINLYTICS_DATA_FILE", "TRAINLYTICS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def team_data_file(tmp_path):
    """Six dated sessions for two athletes, everyone participating."""
    sessions = []
    records = []
    for index in range(6):
        session_id = f"s{index + 1}"
        day = f"2024-03-{index + 1:02d}"
        sessions.append({"id": session_id, "sessionName": f"Practice {index + 1}", "sessionDate": day})
        records.append(
            {"sessionId": session_id, "athleteId": "a1", "athleteName": "Alex", "sessionDate": day,
             "attendance": "Present", "points": 10 + index, "rebounds": 4, "assists": 2, "rpe": 6}
        )
        records.append(
            {"sessionId": session_id, "athleteId": "a2", "athleteName": "Blake", "sessionDate": day,
             "attendance": "Late", "points": 6, "rebounds": 3, "assists": index, "rpe": 7}
        )
    path = tmp_path / "team_data.json"
    path.write_text(
        json.dumps({"trainingSessions": sessions, "athleteSessionData": records}),
        encoding="utf-8",
    )
    return path
