from flask import jsonify, Response
from typing import Any, Optional


def api_response(data: Any = None, status: str = "success", message: Optional[str] = None, code: int = 200) -> Response:
    """
    Erzeugt eine standardisierte API-Antwort.
    Format: { "status": "success/error/...", "data": ..., "message": ... }
    """
    response_body = {"status": status}
    if data is not None:
        response_body["data"] = data
    if message is not None:
        response_body["message"] = message

    return jsonify(response_body), code


class BoardError(Exception):
    """Basis-Exception für das Projekt."""

    http_status = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(BoardError):
    """Fehler, der bei einem erneuten Versuch behoben sein könnte (z.B. Konflikt, DB nicht erreichbar)."""

    http_status = 503


class PermanentError(BoardError):
    """Fehler, der nicht durch einfaches Wiederholen behoben wird (z.B. 400, 404)."""

    http_status = 400


class ValidationError(PermanentError):
    """Spezifischer Fehler für Validierungsfehler."""

    http_status = 400


class InvalidRequest(ValidationError):
    """Unvollständige oder fehlerhafte Verschiebe-Anfrage."""


class TaskNotFound(PermanentError):
    http_status = 404

    def __init__(self, task_id: Any):
        super().__init__(f"Task {task_id} nicht gefunden", details={"task_id": task_id})
        self.task_id = task_id


class StationNotFound(PermanentError):
    http_status = 404

    def __init__(self, station: Any):
        super().__init__(f"Arbeitsstation \"{station}\" nicht gefunden", details={"station": station})
        self.station = station


class Conflict(TransientError):
    """Parallele Änderung erkannt; der Aufrufer darf mit frischen Daten erneut versuchen."""

    http_status = 409


class StoreUnavailable(TransientError):
    """Task-Store oder Stations-Verzeichnis nicht erreichbar."""

    http_status = 503
