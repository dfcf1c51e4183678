import time
import uuid
from functools import wraps
from typing import Any, Callable, Type

from flask import Flask, g, request
from pydantic import BaseModel, ValidationError

from taskboard.common.errors import ValidationError as BoardValidationError
from taskboard.common.logging import set_correlation_id
from taskboard.metrics import HTTP_REQUEST_DURATION

CORRELATION_HEADER = "X-Correlation-ID"


def validate_request(model: Type[BaseModel]) -> Callable:
    """Decorator zur Validierung des Request-Body mit Pydantic."""

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                raise BoardValidationError("JSON-Objekt im Request-Body erwartet")
            try:
                g.validated_data = model.model_validate(data)
            except ValidationError as e:
                # Eigene Exception für den globalen Handler
                raise BoardValidationError(
                    "Validierung fehlgeschlagen",
                    details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
                )
            return f(*args, **kwargs)

        return wrapper

    return decorator


def register_request_hooks(app: Flask) -> None:
    """Korrelations-ID pro Request setzen und Request-Dauer messen."""

    @app.before_request
    def _start_request():
        cid = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        set_correlation_id(cid)
        g.correlation_id = cid
        g.request_started = time.time()

    @app.after_request
    def _finish_request(response):
        started = getattr(g, "request_started", None)
        if started is not None:
            endpoint = request.url_rule.rule if request.url_rule else "unmatched"
            HTTP_REQUEST_DURATION.labels(request.method, endpoint).observe(time.time() - started)
        cid = getattr(g, "correlation_id", None)
        if cid:
            response.headers[CORRELATION_HEADER] = cid
        return response
