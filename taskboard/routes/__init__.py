from taskboard.routes.stations import stations_bp
from taskboard.routes.tasks import tasks_bp


def register_blueprints(app):
    app.register_blueprint(tasks_bp)
    app.register_blueprint(stations_bp)


__all__ = [
    "stations_bp",
    "tasks_bp",
    "register_blueprints",
]
