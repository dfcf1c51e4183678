import logging

from flask import Blueprint, Response, current_app, g, request

from taskboard.common.errors import InvalidRequest, TaskNotFound, api_response
from taskboard.database import session_scope
from taskboard.db_models import TaskDB
from taskboard.events import TASK_CREATED, TASK_DELETED, TASK_UPDATED, TaskEventPublisher
from taskboard.models import TaskCreateRequest, TaskStatusRequest, TaskUpdateRequest
from taskboard.ordering import OrderingEngine, normalize_sort_request
from taskboard.repository import SqlStationDirectory, task_repo
from taskboard.utils import validate_request

logger = logging.getLogger(__name__)

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")


def get_ordering_engine() -> OrderingEngine:
    return current_app.extensions["ordering_engine"]


def get_task_events() -> TaskEventPublisher:
    return current_app.extensions["task_events"]


def task_to_dict(task: TaskDB) -> dict:
    return task.model_dump(mode="json")


def _require_task(task_id: int) -> TaskDB:
    task = task_repo.get_by_id(task_id)
    if task is None:
        raise TaskNotFound(task_id)
    return task


@tasks_bp.route("", methods=["GET"])
def list_tasks():
    station = request.args.get("station")
    tasks = task_repo.get_all(station=station)
    return api_response(data=[task_to_dict(t) for t in tasks])


@tasks_bp.route("/stream", methods=["GET"])
def stream_task_events():
    """SSE-Stream: ein Event pro Anlage, Änderung, Sortierung oder Löschung."""
    return Response(
        get_task_events().stream(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@tasks_bp.route("/<int:task_id>", methods=["GET"])
def get_task(task_id: int):
    return api_response(data=task_to_dict(_require_task(task_id)))


@tasks_bp.route("", methods=["POST"])
@validate_request(TaskCreateRequest)
def create_task():
    data: TaskCreateRequest = g.validated_data
    task = TaskDB(**data.model_dump())
    created = get_ordering_engine().append_task(task)
    get_task_events().publish(TASK_CREATED)
    return api_response(data=task_to_dict(created), code=201)


@tasks_bp.route("/<int:task_id>", methods=["PATCH", "PUT"])
@validate_request(TaskUpdateRequest)
def update_task(task_id: int):
    data: TaskUpdateRequest = g.validated_data
    updated = task_repo.update_fields(task_id, data.model_dump(exclude_unset=True))
    if updated is None:
        raise TaskNotFound(task_id)
    get_task_events().publish(TASK_UPDATED)
    return api_response(data=task_to_dict(updated))


@tasks_bp.route("/<int:task_id>/status", methods=["PATCH"])
@validate_request(TaskStatusRequest)
def update_task_status(task_id: int):
    data: TaskStatusRequest = g.validated_data
    updated = task_repo.update_fields(task_id, {"status": data.status.strip()})
    if updated is None:
        raise TaskNotFound(task_id)
    get_task_events().publish(TASK_UPDATED)
    return api_response(data=task_to_dict(updated))


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
def delete_task(task_id: int):
    get_ordering_engine().remove_task(task_id)
    get_task_events().publish(TASK_DELETED)
    return "", 204


@tasks_bp.route("/sort", methods=["PUT", "POST"])
def sort_tasks():
    """Persistiert Drag-and-Drop: Einzel-Move, Spalten-Resort oder Listen-Format."""
    payload = request.get_json(silent=True)
    if payload is None:
        raise InvalidRequest("Leere Sortier-Anfrage")

    with session_scope() as session:
        requests = normalize_sort_request(payload, SqlStationDirectory(session))

    results = get_ordering_engine().execute_all(requests)
    get_task_events().publish(TASK_UPDATED)
    for result in results:
        if not result.station_known:
            logger.warning("Station '%s' is not in the station catalog, order applied anyway", result.station)
    return api_response(data=[r.to_dict() for r in results])
