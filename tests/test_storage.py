from __future__ import annotations

import json
from datetime import date

import pytest

from trainlytics.metrics import normalise_records
from trainlytics.models import ValidationError
from trainlytics.storage import Dataset, infer_sessions, load_dataset


def _write_json(path, payload) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def _dataset_from(rows) -> Dataset:
    return Dataset(athlete_session_data=normalise_records(rows))


def test_load_dataset_reads_camel_case_json(tmp_path):
    data_file = tmp_path / "team.json"
    _write_json(
        data_file,
        {
            "trainingSessions": [{"id": "s1", "sessionName": "Practice", "sessionDate": "2024-03-01"}],
            "athleteSessionData": [
                {"sessionId": "s1", "athleteId": 11, "athleteName": "Alex", "points": "12", "attendance": ""},
            ],
        },
    )

    dataset = load_dataset(data_file)

    assert dataset.training_sessions[0].session_date == date(2024, 3, 1)
    record = dataset.athlete_session_data[0]
    assert record.athlete_id == "11"
    assert record.points == pytest.approx(12.0)
    assert record.attendance == "Present"


def test_load_dataset_accepts_snake_case_keys(tmp_path):
    data_file = tmp_path / "team.json"
    _write_json(
        data_file,
        {
            "training_sessions": [{"id": "s1", "session_name": "Practice"}],
            "athlete_session_data": [{"session_id": "s1", "athlete_id": "a1", "points": 4}],
        },
    )

    dataset = load_dataset(data_file)
    assert dataset.training_sessions[0].session_name == "Practice"
    assert dataset.athlete_session_data[0].session_id == "s1"


def test_load_dataset_infers_sessions_from_bare_record_list(tmp_path):
    data_file = tmp_path / "records.json"
    _write_json(
        data_file,
        [
            {"sessionId": "s2", "sessionName": "Scrimmage", "athleteId": "a1"},
            {"sessionId": "s1", "athleteId": "a1"},
            {"sessionId": "s2", "athleteId": "a2"},
        ],
    )

    dataset = load_dataset(data_file)
    assert [session.id for session in dataset.training_sessions] == ["s2", "s1"]
    assert dataset.training_sessions[0].session_name == "Scrimmage"


def test_load_dataset_reads_csv_rows(tmp_path):
    data_file = tmp_path / "records.csv"
    data_file.write_text(
        "sessionId,sessionName,sessionDate,athleteId,athleteName,attendance,points,rpe\n"
        "s1,Practice,2024-03-01,a1,Alex,Present,10,6\n"
        "s1,Practice,2024-03-01,a2,Blake,,7,\n",
        encoding="utf-8",
    )

    dataset = load_dataset(data_file)

    assert len(dataset.athlete_session_data) == 2
    blake = dataset.athlete_session_data[1]
    assert blake.attendance == "Present"
    assert blake.rpe == 0.0
    assert blake.points == pytest.approx(7.0)
    assert dataset.training_sessions[0].id == "s1"


def test_load_dataset_uses_env_data_file(monkeypatch, tmp_path):
    data_file = tmp_path / "env.json"
    _write_json(data_file, {"athleteSessionData": [{"sessionId": "s1", "athleteId": "a1"}]})
    monkeypatch.setenv("TRAINLYTICS_DATA_FILE", str(data_file))

    dataset = load_dataset()
    assert len(dataset.athlete_session_data) == 1


def test_load_dataset_rejects_missing_file(tmp_path):
    with pytest.raises(ValidationError, match="not found"):
        load_dataset(tmp_path / "missing.json")


def test_load_dataset_rejects_invalid_json(tmp_path):
    data_file = tmp_path / "broken.json"
    data_file.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValidationError, match="Could not parse"):
        load_dataset(data_file)


@pytest.mark.parametrize(
    "payload",
    [
        "just text",
        {"athleteSessionData": {"sessionId": "s1"}},
        {"trainingSessions": ["s1"]},
    ],
)
def test_load_dataset_rejects_unexpected_shapes(tmp_path, payload):
    data_file = tmp_path / "shape.json"
    _write_json(data_file, payload)
    with pytest.raises(ValidationError):
        load_dataset(data_file)


def test_empty_json_file_is_an_empty_dataset(tmp_path):
    data_file = tmp_path / "empty.json"
    data_file.write_text("", encoding="utf-8")

    dataset = load_dataset(data_file)
    assert dataset == Dataset()


def test_dataset_athletes_uses_first_recorded_name():
    dataset = _dataset_from(
        [
            {"sessionId": "s1", "athleteId": "a1", "athleteName": "Alex"},
            {"sessionId": "s2", "athleteId": "a1", "athleteName": "Alexander"},
            {"sessionId": "s1", "athleteId": "a2"},
            {"sessionId": "s1"},
        ]
    )
    assert dataset.athletes() == {"a1": "Alex", "a2": "Player a2"}


def test_infer_sessions_skips_records_without_session_id():
    dataset = _dataset_from([{"athleteId": "a1"}, {"sessionId": "s1", "athleteId": "a1"}])
    assert [session.id for session in infer_sessions(dataset.athlete_session_data)] == ["s1"]


@pytest.mark.parametrize("name", ["bad.json", "bad.csv"])
def test_load_dataset_rejects_undecodable_bytes(tmp_path, name):
    data_file = tmp_path / name
    data_file.write_bytes(b"\xff\xfe\x00garbage\xff")
    with pytest.raises(ValidationError, match="Could not parse"):
        load_dataset(data_file)
