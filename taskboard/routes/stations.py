from flask import Blueprint, current_app

from taskboard.common.errors import StationNotFound, api_response
from taskboard.config import settings
from taskboard.repository import station_repo, task_repo
from taskboard.routes.tasks import task_to_dict

stations_bp = Blueprint("stations", __name__, url_prefix="/api/stations")


@stations_bp.route("", methods=["GET"])
def list_stations():
    return api_response(data=[s.model_dump() for s in station_repo.get_all()])


@stations_bp.route("/<ident>", methods=["GET"])
def get_station(ident: str):
    return api_response(data=station_repo.resolve(ident).model_dump())


@stations_bp.route("/<ident>/tasks", methods=["GET"])
def list_station_tasks(ident: str):
    try:
        name = station_repo.resolve(ident).name
    except StationNotFound:
        if not current_app.config.get("SOFT_STATION_VALIDATION", settings.soft_station_validation):
            raise
        name = ident
    return api_response(data=[task_to_dict(t) for t in task_repo.get_all(station=name)])
