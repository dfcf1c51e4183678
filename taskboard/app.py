"""
Taskboard API
=============
Flask-App für das Stations-Board: Task-Stammdaten, Stationsliste und der
Sort-Endpunkt, über den Drag-and-Drop-Verschiebungen an die Ordering-Engine gehen.
"""
import logging
from typing import Optional

from flask import Flask
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from taskboard.common.errors import BoardError, api_response
from taskboard.common.logging import setup_logging
from taskboard.config import Settings, settings as default_settings
from taskboard.database import init_db
from taskboard.events import TaskEventPublisher
from taskboard.health import health_bp
from taskboard.ordering import OrderingEngine
from taskboard.repository import sql_unit_of_work
from taskboard.routes import register_blueprints
from taskboard.utils import register_request_hooks

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(BoardError)
    def handle_board_error(e: BoardError):
        if e.http_status >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
        else:
            logger.info(f"{type(e).__name__}: {e.message}")
        data = {"error": type(e).__name__}
        if e.details:
            data["details"] = e.details
        return api_response(data=data, status="error", message=e.message, code=e.http_status)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return api_response(status="error", message=e.description, code=e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception(f"Unhandled error: {e}")
        return api_response(status="error", message="Interner Serverfehler", code=500)


def create_app(app_settings: Optional[Settings] = None, init_database: bool = True) -> Flask:
    """Erzeugt die Flask-App (API-Server)."""
    cfg = app_settings or default_settings
    app = Flask(__name__)
    app.config.update(
        {
            "DATA_DIR": cfg.data_dir,
            "ORDERING_CONCURRENCY": cfg.ordering_concurrency,
            "SOFT_STATION_VALIDATION": cfg.soft_station_validation,
        }
    )

    CORS(app, resources={r"/api/*": {"origins": cfg.cors_origin_list}})

    if init_database:
        init_db()

    app.extensions["ordering_engine"] = OrderingEngine(
        sql_unit_of_work(cfg.ordering_concurrency),
        soft_validation=cfg.soft_station_validation,
    )
    app.extensions["task_events"] = TaskEventPublisher(keepalive=cfg.event_keepalive_seconds)

    register_request_hooks(app)
    register_error_handlers(app)
    app.register_blueprint(health_bp)
    register_blueprints(app)
    logger.info(
        "Taskboard app created (concurrency=%s, station_validation=%s)",
        cfg.ordering_concurrency,
        cfg.station_validation,
    )
    return app


def main() -> None:
    setup_logging(
        level=default_settings.log_level,
        json_format=default_settings.log_json,
        log_file=default_settings.log_file,
    )
    app = create_app()
    app.run(host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    main()
