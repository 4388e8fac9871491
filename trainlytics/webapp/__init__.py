from __future__ import annotations

import logging
import os
from pathlib import Path

from flask import Flask, current_app, jsonify, request

from ..config import configure_logging, get_config
from ..constants import METRICS
from ..models import ValidationError
from ..services import PerformanceAggregator
from ..storage import Dataset, load_dataset

LOGGER = logging.getLogger(__name__)


def create_app(data_file: Path | None = None) -> Flask:
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
    configure_logging()
    app = Flask(__name__)
    app.config.update(TRAINLYTICS_DATA_FILE=data_file)
    app.json.sort_keys = False
    app.extensions["trainlytics.aggregator"] = PerformanceAggregator(get_config())

    register_routes(app)
    register_api(app)
    return app


def _aggregator() -> PerformanceAggregator:
    return current_app.extensions["trainlytics.aggregator"]


def _dataset() -> Dataset:
    return load_dataset(current_app.config.get("TRAINLYTICS_DATA_FILE"))


def register_routes(app: Flask) -> None:
    @app.route("/health")
    def health():
        return jsonify({"status": "ok"}), 200

    @app.errorhandler(ValidationError)
    def invalid_dataset(exc: ValidationError):
        LOGGER.warning("Dataset error: %s", exc)
        return jsonify({"error": str(exc)}), 400


def register_api(app: Flask) -> None:
    @app.get("/api/team-trend")
    def api_team_trend():
        dataset = _dataset()
        aggregator = _aggregator()
        result = aggregator.team_trend(dataset.training_sessions, dataset.athlete_session_data)
        payload = result.to_dict()
        team_name = request.args.get("teamName", "Team")
        payload["chart"] = aggregator.team_trend_chart(result, team_name=team_name).to_dict()
        return jsonify(payload)

    @app.get("/api/players")
    def api_players():
        dataset = _dataset()
        aggregator = _aggregator()
        result = aggregator.player_averages(dataset.training_sessions, dataset.athlete_session_data)
        payload = result.to_dict()
        team_name = request.args.get("teamName", "Team")
        payload["chart"] = aggregator.player_average_chart(result, team_name=team_name).to_dict()
        return jsonify(payload)

    @app.get("/api/athletes")
    def api_athletes():
        roster = _dataset().athletes()
        return jsonify({"athletes": [{"athleteId": key, "athleteName": name} for key, name in roster.items()]})

    @app.get("/api/athletes/<athlete_id>")
    def api_athlete(athlete_id: str):
        metric = request.args.get("metric")
        if metric and metric not in METRICS:
            return jsonify({"error": f"metric must be one of {', '.join(METRICS)}"}), 400

        dataset = _dataset()
        roster = dataset.athletes()
        if athlete_id not in roster:
            return jsonify({"error": "Athlete not found"}), 404

        aggregator = _aggregator()
        result = aggregator.athlete_metrics(dataset.athlete_session_data, athlete_id)
        payload = result.to_dict()
        payload["athleteName"] = roster[athlete_id]
        payload["charts"] = {
            name: aggregator.athlete_metric_chart(result, name, athlete_name=roster[athlete_id]).to_dict()
            for name in ([metric] if metric else METRICS)
        }
        return jsonify(payload)
