from __future__ import annotations

import json
import logging
from datetime import date

import pytest

from trainlytics.config import AppConfig
from trainlytics.metrics import (
    calculate_athlete_performance_metrics,
    calculate_player_average_points,
    calculate_team_performance_trend,
    filter_records_for_athlete,
    records_to_dataframe,
)


def _make_sessions() -> list[dict[str, object]]:
    return [
        {"id": "s2", "sessionName": "Scrimmage", "sessionDate": "2024-03-03"},
        {"id": "s1", "sessionName": "Practice", "sessionDate": "2024-03-01"},
    ]


def _make_records() -> list[dict[str, object]]:
    return [
        {"sessionId": "s1", "athleteId": "a1", "athleteName": "Alex", "sessionDate": "2024-03-01",
         "attendance": "Present", "points": 10},
        {"sessionId": "s1", "athleteId": "a2", "athleteName": "Blake", "sessionDate": "2024-03-01",
         "attendance": "late", "points": "10"},
        {"sessionId": "s1", "athleteId": "a3", "athleteName": "Casey", "sessionDate": "2024-03-01",
         "attendance": "Absent", "points": 40},
        {"sessionId": "s2", "athleteId": "a1", "athleteName": "Alex", "sessionDate": "2024-03-03",
         "attendance": "Present", "points": 20},
    ]


def test_records_to_dataframe_flags_participation() -> None:
    df = records_to_dataframe(_make_records())
    assert list(df["participating"]) == [True, True, False, True]
    assert df["points"].sum() == pytest.approx(80.0)


def test_team_trend_averages_participating_players_per_session() -> None:
    result = calculate_team_performance_trend(_make_sessions(), _make_records())

    assert [stat.session_id for stat in result.session_stats] == ["s1", "s2"]
    assert [stat.avg_points_per_player for stat in result.session_stats] == [10.0, 20.0]
    first = result.session_stats[0]
    assert first.participating_athletes == 2
    assert first.total_points == pytest.approx(20.0)

    summary = result.summary
    assert summary is not None
    assert summary.total_sessions == 2
    assert summary.overall_average == pytest.approx(15.0)
    assert summary.highest_average == pytest.approx(20.0)
    assert summary.lowest_average == pytest.approx(10.0)
    assert summary.total_athletes_tracked == 3
    assert summary.average_athletes_per_session == pytest.approx(1.5)
    assert summary.total_points_scored == pytest.approx(40.0)
    assert summary.consistency_score == pytest.approx(66.7)


def test_team_trend_drops_sessions_without_participants(caplog) -> None:
    sessions = _make_sessions() + [
        {"id": "s3", "sessionName": "Film Study", "sessionDate": "2024-03-05"},
        {"id": "s4", "sessionName": "Recovery", "sessionDate": "2024-03-07"},
    ]
    records = _make_records() + [
        {"sessionId": "s3", "athleteId": "a1", "attendance": "Absent", "points": 99},
    ]

    with caplog.at_level(logging.WARNING, logger="trainlytics.metrics"):
        result = calculate_team_performance_trend(sessions, records)

    assert [stat.session_id for stat in result.session_stats] == ["s1", "s2"]
    assert "Film Study" in caplog.text
    assert "Recovery" in caplog.text


def test_team_trend_falls_back_to_record_date_and_default_name() -> None:
    sessions = [{"id": 7}]
    records = [
        {"sessionId": 7, "athleteId": "a1", "sessionDate": "2024-02-10", "points": 3},
        {"sessionId": "7", "athleteId": "a2", "sessionDate": "2024-02-11", "points": 5},
    ]
    result = calculate_team_performance_trend(sessions, records)

    stat = result.session_stats[0]
    assert stat.session_id == "7"
    assert stat.session_name == "Training Session"
    assert stat.session_date == date(2024, 2, 10)
    assert stat.avg_points_per_player == pytest.approx(4.0)


def test_team_trend_sorts_undated_sessions_last() -> None:
    sessions = [{"id": "x"}, {"id": "late", "sessionDate": "2024-05-01"}, {"id": "early", "sessionDate": "2024-01-01"}]
    records = [
        {"sessionId": "x", "athleteId": "a1", "points": 1},
        {"sessionId": "late", "athleteId": "a1", "points": 2},
        {"sessionId": "early", "athleteId": "a1", "points": 3},
    ]
    result = calculate_team_performance_trend(sessions, records)
    assert [stat.session_id for stat in result.session_stats] == ["early", "late", "x"]


def test_team_trend_empty_inputs_return_null_summary() -> None:
    result = calculate_team_performance_trend([], [])
    assert result.session_stats == []
    assert result.summary is None
    assert result.to_dict() == {"sessionStats": [], "summary": None}


def test_team_trend_respects_configured_statuses() -> None:
    config = AppConfig(participating_statuses=("present",))
    result = calculate_team_performance_trend(_make_sessions(), _make_records(), config=config)
    # Blake arrived late and no longer counts.
    assert result.session_stats[0].participating_athletes == 1


def test_player_averages_rank_by_average_points() -> None:
    records = [
        {"sessionId": "s1", "athleteId": "p1", "athleteName": "Pat", "points": 5},
        {"sessionId": "s2", "athleteId": "p1", "athleteName": "Pat", "points": 15},
        {"sessionId": "s1", "athleteId": "p2", "athleteName": "Quinn", "points": 30},
        {"sessionId": "s2", "athleteId": "p2", "athleteName": "Quinn", "attendance": "Absent", "points": 0},
        {"sessionId": "s1", "athleteId": "p3", "points": 1},
    ]
    result = calculate_player_average_points(_make_sessions(), records)

    ranked = [(player.player_name, player.average_points) for player in result.player_stats]
    assert ranked == [("Quinn", 30.0), ("Pat", 10.0), ("Player p3", 1.0)]

    pat = result.player_stats[1]
    assert pat.sessions_participated == 2
    assert pat.total_points == pytest.approx(20.0)
    assert [session.points for session in pat.sessions] == [5.0, 15.0]
    # Session names and dates come from the training sessions when the records lack them.
    assert pat.sessions[0].session_name == "Practice"
    assert pat.sessions[1].session_date == date(2024, 3, 3)

    summary = result.summary
    assert summary is not None
    assert summary.total_players == 3
    assert summary.top_performer.player_name == "Quinn"
    assert summary.highest_average == pytest.approx(30.0)
    assert summary.lowest_average == pytest.approx(1.0)
    assert summary.overall_average == pytest.approx(13.67)
    assert summary.total_points_all_players == pytest.approx(51.0)
    assert summary.average_sessions_per_player == pytest.approx(1.3)
    assert summary.performance_spread == pytest.approx(29.0)


def test_player_averages_keep_first_seen_order_on_ties() -> None:
    records = [
        {"sessionId": "s1", "athleteId": "b", "athleteName": "Bo", "points": 8},
        {"sessionId": "s1", "athleteId": "a", "athleteName": "Al", "points": 8},
    ]
    result = calculate_player_average_points([], records)
    assert [player.player_id for player in result.player_stats] == ["b", "a"]


def test_player_averages_empty_inputs() -> None:
    result = calculate_player_average_points([], [{"sessionId": "s1", "athleteId": "a", "attendance": "Absent"}])
    assert result.player_stats == []
    assert result.summary is None


def _athlete_records() -> list[dict[str, object]]:
    return [
        {"sessionId": "s2", "sessionName": "Tuesday", "sessionDate": "2024-03-05", "attendance": "Present",
         "points": 12, "rebounds": 5, "assists": 3, "turnovers": 2, "fouls": 1, "rpe": 7},
        {"sessionId": "s1", "sessionName": "Friday", "sessionDate": "2024-03-01", "attendance": "Late",
         "points": "8", "rebounds": 3, "assists": "x", "turnovers": 1, "fouls": 2, "rpe": 6},
        {"sessionId": "s9", "sessionName": "Skipped", "sessionDate": "2024-03-03", "attendance": "Absent",
         "points": 30},
        {"sessionId": "s3", "sessionName": "Thursday", "sessionDate": "2024-03-07", "attendance": "Present",
         "points": 12, "rebounds": 4, "assists": 5, "turnovers": 0, "fouls": 3, "rpe": 8},
    ]


def test_athlete_metrics_sorts_and_filters_sessions() -> None:
    result = calculate_athlete_performance_metrics(_athlete_records())

    assert [item.session_id for item in result.session_metrics] == ["s1", "s2", "s3"]
    assert result.session_metrics[0].assists == 0.0
    assert result.session_metrics[0].attendance == "Late"


def test_athlete_metrics_summary() -> None:
    summary = calculate_athlete_performance_metrics(_athlete_records()).summary
    assert summary is not None

    assert summary.total_sessions == 3
    assert summary.totals["points"] == pytest.approx(32.0)
    assert summary.averages["points"] == pytest.approx(10.67)
    assert summary.averages["assists"] == pytest.approx(2.67)
    assert summary.averages["rpe"] == pytest.approx(7.0)
    assert summary.best_performance.session == "Tuesday"
    assert summary.best_performance.points == pytest.approx(12.0)
    assert summary.worst_performance.session == "Friday"
    assert summary.worst_performance.date == date(2024, 3, 1)
    assert summary.consistency["points"] == pytest.approx(82.3)
    assert set(summary.consistency) == {"points", "rebounds", "assists"}


def test_athlete_metrics_empty_and_all_absent() -> None:
    empty = calculate_athlete_performance_metrics([])
    assert empty.session_metrics == []
    assert empty.summary is None

    absent = calculate_athlete_performance_metrics([{"sessionId": "s1", "attendance": "Absent", "points": 4}])
    assert absent.session_metrics == []
    assert absent.summary is None


def test_filter_records_for_athlete_matches_ids_as_text() -> None:
    records = [{"athleteId": 5, "sessionId": "s1"}, {"athleteId": "6", "sessionId": "s1"}]
    assert [record.athlete_id for record in filter_records_for_athlete(records, "5")] == ["5"]
    assert [record.athlete_id for record in filter_records_for_athlete(records, 6)] == ["6"]


def test_player_history_backfills_when_only_some_records_have_names() -> None:
    sessions = [{"id": "s1", "sessionName": "Practice", "sessionDate": "2024-03-01"}]
    records = [
        {"sessionId": "s1", "athleteId": "p1", "athleteName": "Al", "points": 4},
        {"sessionId": "s2", "sessionName": "Scrimmage", "athleteId": "p2", "athleteName": "Bo", "points": 6},
        {"sessionName": "Walkthrough", "athleteId": "p3", "athleteName": "Cy", "points": 2},
    ]
    result = calculate_player_average_points(sessions, records)

    history = {
        player.player_name: [(item.session_id, item.session_name) for item in player.sessions]
        for player in result.player_stats
    }
    assert history == {
        "Al": [("s1", "Practice")],
        "Bo": [("s2", "Scrimmage")],
        "Cy": [(None, "Walkthrough")],
    }
    # The payload must stay valid JSON (no NaN leaking from missing text).
    json.dumps(result.to_dict(), allow_nan=False)


def test_records_to_dataframe_keeps_missing_text_as_none() -> None:
    df = records_to_dataframe([{"sessionId": "s1", "athleteId": "a1"}, {"athleteId": "a2", "sessionName": "X"}])
    assert df["session_id"].tolist() == ["s1", None]
    assert df["session_name"].tolist() == [None, "X"]
    assert df["points"].dtype == float
