"""Übersetzt die historischen Sort-Payloads in kanonische Ordering-Anfragen.

Nur dieses Modul kennt die Payload-Formate; die Engine sieht ausschließlich
:class:`MoveTask` und :class:`ApplyOrder`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from taskboard.common.errors import InvalidRequest, StationNotFound
from taskboard.models import BulkSortItem, MoveTaskPayload, StationOrderPayload
from taskboard.ordering.contracts import StationDirectory

logger = logging.getLogger(__name__)

_MOVE_KEYS = {"taskId", "task_id", "to", "toIndex", "to_index"}
_ORDER_KEYS = {"arbeitsstationId", "columnId", "stationId", "orderedIds", "order"}


@dataclass(frozen=True)
class MoveTask:
    task_id: int
    to_station: Optional[str] = None
    to_index: Optional[int] = None


@dataclass(frozen=True)
class ApplyOrder:
    station: str
    ordered_ids: tuple[int, ...]


OrderingRequest = Union[MoveTask, ApplyOrder]


def _parse(model: type[BaseModel], data: Any) -> Any:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise InvalidRequest(
            "Validierung fehlgeschlagen",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e


def _canonical_station(directory: StationDirectory, station: int | str) -> str:
    """Namen werden auf die gespeicherte Schreibweise gebracht; unbekannte Namen bleiben für die Engine stehen."""
    if isinstance(station, int):
        return directory.resolve_name(station)
    raw = station.strip()
    if not raw:
        raise InvalidRequest("Ziel-Station darf nicht leer sein")
    try:
        return directory.resolve_name(raw)
    except StationNotFound:
        return raw


def normalize_move(data: dict, directory: StationDirectory) -> MoveTask:
    payload = _parse(MoveTaskPayload, data)
    to_station = None
    if payload.to is not None and str(payload.to).strip():
        to_station = _canonical_station(directory, payload.to)
    return MoveTask(task_id=payload.task_id, to_station=to_station, to_index=payload.to_index)


def normalize_station_order(data: dict, directory: StationDirectory) -> ApplyOrder:
    payload = _parse(StationOrderPayload, data)
    if payload.station_id is not None:
        station = directory.resolve_name(payload.station_id)
    elif payload.station:
        station = _canonical_station(directory, payload.station)
    else:
        raise InvalidRequest("arbeitsstationId fehlt")
    return ApplyOrder(station=station, ordered_ids=tuple(payload.ordered_ids))


def normalize_bulk(items: list, directory: StationDirectory) -> list[ApplyOrder]:
    if not items:
        raise InvalidRequest("Leere Sortier-Anfrage")
    grouped: dict[str, list[int]] = {}
    for raw in items:
        item = _parse(BulkSortItem, raw)
        station = _canonical_station(directory, item.station)
        grouped.setdefault(station, []).append(item.id)
    return [ApplyOrder(station=s, ordered_ids=tuple(ids)) for s, ids in grouped.items()]


def normalize_sort_request(payload: Any, directory: StationDirectory) -> list[OrderingRequest]:
    """Erkennt das Payload-Format und liefert die kanonischen Anfragen in Ausführungsreihenfolge."""
    if isinstance(payload, list):
        return normalize_bulk(payload, directory)
    if not isinstance(payload, dict) or not payload:
        raise InvalidRequest("Leere Sortier-Anfrage")

    keys = set(payload)
    if keys & _MOVE_KEYS:
        return [normalize_move(payload, directory)]
    if keys & _ORDER_KEYS:
        return [normalize_station_order(payload, directory)]

    logger.debug("Unrecognised sort payload keys: %s", sorted(keys))
    raise InvalidRequest(
        "Unbekanntes Sortier-Format: erwartet {taskId, to, toIndex} oder {arbeitsstationId, orderedIds}",
        details={"keys": sorted(keys)},
    )
