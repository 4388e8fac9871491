from __future__ import annotations

import argparse
import csv
import json
import random
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Sequence

ROOT = Path(__file__).resolve().parents[1]
DEFAULT_JSON = ROOT / "demo" / "team_data.json"
DEFAULT_CSV = ROOT / "demo" / "athlete_sessions.csv"
DEFAULT_ATHLETES = ["Jordan Reyes", "Sam Okafor", "Avery Chen", "Riley Park", "Morgan Diaz"]
ATTENDANCE_CHOICES = ("Present",) * 8 + ("Late", "Left Early", "Absent")
CSV_FIELDS = [
    "sessionId",
    "sessionName",
    "sessionDate",
    "athleteId",
    "athleteName",
    "attendance",
    "points",
    "rebounds",
    "assists",
    "turnovers",
    "fouls",
    "rpe",
]


def _build_dataset(
    sessions: int,
    start: date,
    seed: int,
    athletes: Sequence[str],
    spacing_days: int,
) -> dict[str, list[dict[str, Any]]]:
    rng = random.Random(seed)
    training_sessions: list[dict[str, Any]] = []
    records: list[dict[str, Any]] = []
    skill = {name: rng.uniform(6, 18) for name in athletes}

    for offset in range(sessions):
        session_day = start + timedelta(days=offset * spacing_days)
        session_id = f"session-{offset + 1:03d}"
        session_name = rng.choice(["Practice", "Scrimmage", "Shooting Drills", "Conditioning"])
        training_sessions.append(
            {
                "id": session_id,
                "sessionName": f"{session_name} {offset + 1}",
                "sessionDate": session_day.isoformat(),
            }
        )
        progression = 1 + 0.01 * offset
        for index, name in enumerate(athletes, start=1):
            attendance = rng.choice(ATTENDANCE_CHOICES)
            playing = attendance != "Absent"
            records.append(
                {
                    "sessionId": session_id,
                    "sessionName": f"{session_name} {offset + 1}",
                    "sessionDate": session_day.isoformat(),
                    "athleteId": f"athlete-{index:03d}",
                    "athleteName": name,
                    "attendance": attendance,
                    "points": max(0, round(skill[name] * progression + rng.gauss(0, 3))) if playing else 0,
                    "rebounds": rng.randint(0, 10) if playing else 0,
                    "assists": rng.randint(0, 8) if playing else 0,
                    "turnovers": rng.randint(0, 5) if playing else 0,
                    "fouls": rng.randint(0, 5) if playing else 0,
                    "rpe": rng.randint(4, 9) if playing else 0,
                }
            )
    return {"trainingSessions": training_sessions, "athleteSessionData": records}


def _write_json(path: Path, dataset: dict[str, list[dict[str, Any]]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(dataset, indent=2) + "\n", encoding="utf-8")


def _write_csv(path: Path, records: list[dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for record in records:
            writer.writerow({key: record.get(key) for key in CSV_FIELDS})


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Generate a synthetic team dataset.")
    parser.add_argument("--sessions", type=int, default=24, help="Number of training sessions to generate.")
    parser.add_argument("--spacing-days", type=int, default=2, help="Days between consecutive sessions.")
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=None,
        help="Date of the first session (YYYY-MM-DD). Defaults so the last session is today.",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility.")
    parser.add_argument("--json", type=Path, default=DEFAULT_JSON, help="Destination .json file.")
    parser.add_argument("--csv", type=Path, default=DEFAULT_CSV, help="Destination .csv file.")
    parser.add_argument(
        "--athletes",
        nargs="+",
        default=DEFAULT_ATHLETES,
        help="Space-separated athlete names (default: %(default)s).",
    )
    args = parser.parse_args(argv)

    start = args.start_date or date.today() - timedelta(days=(args.sessions - 1) * args.spacing_days)
    dataset = _build_dataset(
        sessions=args.sessions,
        start=start,
        seed=args.seed,
        athletes=args.athletes,
        spacing_days=args.spacing_days,
    )
    _write_json(args.json, dataset)
    _write_csv(args.csv, dataset["athleteSessionData"])

    print(
        f"Wrote {len(dataset['trainingSessions'])} sessions and "
        f"{len(dataset['athleteSessionData'])} athlete records to {args.json} and {args.csv}"
    )


if __name__ == "__main__":
    main()
