"""Station-scoped ordering engine.

Every write goes through one unit of work: the affected stations are locked
(or version-checked by the store), the new order is computed in memory, dense
priorities ``0..n-1`` are assigned and the batch is persisted. Any error rolls
the whole unit back, so no partially reindexed station is ever visible.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Iterator, Optional, Sequence

from taskboard.common.errors import BoardError, Conflict, InvalidRequest, StationNotFound, TaskNotFound
from taskboard.metrics import MOVES_TOTAL, REINDEX_DURATION
from taskboard.ordering.contracts import BoardUnitOfWork, OrderableTask, UnitOfWorkFactory, task_ids
from taskboard.ordering.normalizer import ApplyOrder, MoveTask, OrderingRequest

logger = logging.getLogger(__name__)


@dataclass
class OrderingResult:
    station: str
    order: list[Optional[int]]
    source: Optional[str] = None
    skipped: list[int] = field(default_factory=list)
    station_known: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


def clamp_index(index: Optional[int], size: int) -> int:
    """Zielindex in ``[0, size]``; ``None`` bedeutet ans Ende."""
    if index is None:
        return size
    return max(0, min(index, size))


def assign_dense_priorities(tasks: Sequence[OrderableTask]) -> None:
    for position, task in enumerate(tasks):
        task.priority = position


def splice(tasks: Sequence[OrderableTask], moving: OrderableTask, index: Optional[int]) -> list[OrderableTask]:
    """Entfernt *moving* aus *tasks* (falls enthalten) und fügt es am geklemmten Index wieder ein."""
    remaining = [t for t in tasks if t.id != moving.id]
    remaining.insert(clamp_index(index, len(remaining)), moving)
    return remaining


def _outcome(exc: BaseException) -> str:
    if isinstance(exc, Conflict):
        return "conflict"
    if isinstance(exc, (TaskNotFound, StationNotFound)):
        return "not_found"
    if isinstance(exc, InvalidRequest):
        return "invalid"
    return "error"


class OrderingEngine:
    """Einzige Stelle, die ``station`` und ``priority`` von Tasks verändert.

    ``uow_factory`` liefert pro Aufruf eine transaktionale Unit of Work
    (Task-Store + Stations-Verzeichnis). Mit ``soft_validation`` werden
    unbekannte Stationen akzeptiert; das Ergebnis meldet dann
    ``station_known=False``, damit der Aufrufer warnen kann.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, soft_validation: bool = False):
        self._uow_factory = uow_factory
        self.soft_validation = soft_validation

    @contextmanager
    def _observe(self, operation: str) -> Iterator[None]:
        try:
            with REINDEX_DURATION.labels(operation).time():
                yield
        except BoardError as e:
            MOVES_TOTAL.labels(operation, _outcome(e)).inc()
            raise
        except Exception:
            MOVES_TOTAL.labels(operation, "error").inc()
            raise
        MOVES_TOTAL.labels(operation, "ok").inc()

    def _resolve_station(self, uow: BoardUnitOfWork, station: str) -> tuple[str, bool]:
        """Kanonischer Stationsname und ob die Station im Katalog steht.

        Im Soft-Modus bleibt ein unbekannter Name (getrimmt) erhalten.
        """
        name = station.strip()
        if uow.stations.exists(name):
            try:
                return uow.stations.resolve_name(name), True
            except StationNotFound:
                # ohne Stationskatalog gibt es keine kanonische Schreibweise
                return name, True
        if self.soft_validation:
            return name, False
        raise StationNotFound(station)

    def _lock(self, uow: BoardUnitOfWork, *stations: Optional[str]) -> None:
        # Feste Reihenfolge, damit sich zwei Moves nicht gegenseitig blockieren
        for name in sorted({s for s in stations if s}):
            uow.tasks.lock_station(name)

    def _reindex(self, uow: BoardUnitOfWork, station: str, exclude: Optional[int] = None) -> list[OrderableTask]:
        tasks = [t for t in uow.tasks.find_by_station(station) if exclude is None or t.id != exclude]
        assign_dense_priorities(tasks)
        if tasks:
            uow.tasks.save_all(tasks)
        return tasks

    # -- operations ---------------------------------------------------------

    def move(self, task_id: int, to_station: Optional[str] = None, to_index: Optional[int] = None) -> OrderingResult:
        """Verschiebt einen Task an ``to_index`` in ``to_station`` und schließt die Lücke in der Quelle."""
        if to_index is not None and to_index < 0:
            raise InvalidRequest("toIndex darf nicht negativ sein", details={"toIndex": to_index})
        with self._observe("move"), self._uow_factory() as uow:
            return self._move(uow, task_id, to_station, to_index)

    def _move(
        self, uow: BoardUnitOfWork, task_id: int, to_station: Optional[str], to_index: Optional[int]
    ) -> OrderingResult:
        task = uow.tasks.find_by_id(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        source = task.station
        requested = to_station or source
        if not requested or not requested.strip():
            raise InvalidRequest("Ziel-Station 'to' fehlt", details={"task_id": task_id})
        target, known = self._resolve_station(uow, requested)

        self._lock(uow, source, target)
        # Nach dem Sperren neu lesen: der Task könnte inzwischen verschoben worden sein
        task = uow.tasks.find_by_id(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        if task.station != source:
            raise Conflict(
                "Konflikt: Task wurde parallel verschoben",
                details={"task_id": task_id, "expected_station": source, "actual_station": task.station},
            )

        destination = splice(uow.tasks.find_by_station(target), task, to_index)
        task.station = target
        assign_dense_priorities(destination)
        uow.tasks.save_all(destination)

        if source and source != target:
            self._reindex(uow, source, exclude=task.id)

        logger.info(
            "Moved task %s from '%s' to '%s' at index %s",
            task_id,
            source,
            target,
            clamp_index(to_index, len(destination) - 1),
            extra={"task_id": task_id, "station": target, "operation": "move"},
        )
        return OrderingResult(station=target, order=task_ids(destination), source=source, station_known=known)

    def apply_order(self, station: str, ordered_ids: Sequence[int]) -> OrderingResult:
        """Setzt die komplette Reihenfolge einer Station; fremde Tasks werden übernommen, fehlende nicht entfernt.

        Stationen, aus denen übernommene Tasks kommen, werden nicht neu indiziert.
        """
        if not station or not station.strip():
            raise InvalidRequest("Station fehlt")
        if not ordered_ids:
            raise InvalidRequest("orderedIds darf nicht leer sein")
        with self._observe("apply_order"), self._uow_factory() as uow:
            return self._apply_order(uow, station, ordered_ids)

    def _apply_order(self, uow: BoardUnitOfWork, station: str, ordered_ids: Sequence[int]) -> OrderingResult:
        station, known = self._resolve_station(uow, station)
        self._lock(uow, station)

        tasks: list[OrderableTask] = []
        skipped: list[int] = []
        seen: set[int] = set()
        for task_id in ordered_ids:
            if task_id in seen:
                continue
            seen.add(task_id)
            task = uow.tasks.find_by_id(task_id)
            if task is None:
                # Parallel gelöschte Tasks werden ignoriert
                skipped.append(task_id)
                continue
            tasks.append(task)

        for position, task in enumerate(tasks):
            task.station = station
            task.priority = position
        if tasks:
            uow.tasks.save_all(tasks)

        if skipped:
            logger.debug("apply_order on '%s' skipped unknown task ids %s", station, skipped)
        logger.info(
            "Applied order of %d task(s) to station '%s'",
            len(tasks),
            station,
            extra={"station": station, "operation": "apply_order"},
        )
        return OrderingResult(station=station, order=task_ids(tasks), skipped=skipped, station_known=known)

    def execute(self, request: OrderingRequest) -> OrderingResult:
        if isinstance(request, MoveTask):
            return self.move(request.task_id, request.to_station, request.to_index)
        if isinstance(request, ApplyOrder):
            return self.apply_order(request.station, request.ordered_ids)
        raise InvalidRequest(f"Unbekannte Ordering-Anfrage: {type(request).__name__}")

    def execute_all(self, requests: Sequence[OrderingRequest]) -> list[OrderingResult]:
        """Führt mehrere Anfragen in einer gemeinsamen Transaktion aus (alles oder nichts)."""
        if not requests:
            raise InvalidRequest("Leere Sortier-Anfrage")
        if len(requests) == 1:
            return [self.execute(requests[0])]
        for request in requests:
            if isinstance(request, ApplyOrder) and not request.ordered_ids:
                raise InvalidRequest("orderedIds darf nicht leer sein", details={"station": request.station})
        results: list[OrderingResult] = []
        with self._observe("batch"), self._uow_factory() as uow:
            # Alle Stationen des Batches vorab in fester Reihenfolge sperren
            self._lock(uow, *self._batch_stations(uow, requests))
            for request in requests:
                if isinstance(request, MoveTask):
                    results.append(self._move(uow, request.task_id, request.to_station, request.to_index))
                elif isinstance(request, ApplyOrder):
                    results.append(self._apply_order(uow, request.station, request.ordered_ids))
                else:
                    raise InvalidRequest(f"Unbekannte Ordering-Anfrage: {type(request).__name__}")
        return results

    def _batch_stations(self, uow: BoardUnitOfWork, requests: Sequence[OrderingRequest]) -> set[str]:
        stations: set[str] = set()
        for request in requests:
            if isinstance(request, MoveTask):
                referenced = [request.task_id]
                requested = [request.to_station]
            elif isinstance(request, ApplyOrder):
                referenced = list(request.ordered_ids)
                requested = [request.station]
            else:
                continue
            for name in requested:
                if name and name.strip():
                    stations.add(self._resolve_station(uow, name)[0])
            for task_id in referenced:
                task = uow.tasks.find_by_id(task_id)
                if task is not None and task.station:
                    stations.add(task.station)
        return stations

    # -- lifecycle ----------------------------------------------------------

    def reindex_station(self, station: str) -> OrderingResult:
        """Vergibt ``0..n-1`` in der bestehenden Reihenfolge neu (Reparatur, nach Löschungen)."""
        with self._observe("reindex"), self._uow_factory() as uow:
            self._lock(uow, station)
            tasks = self._reindex(uow, station)
        return OrderingResult(station=station, order=task_ids(tasks))

    def append_task(self, task: OrderableTask) -> OrderableTask:
        """Legt einen neuen Task am Ende seiner Station an."""
        if not task.station:
            raise InvalidRequest("Arbeitsstation ist erforderlich")
        with self._observe("create"), self._uow_factory() as uow:
            task.station, _ = self._resolve_station(uow, task.station)
            self._lock(uow, task.station)
            existing = uow.tasks.find_by_station(task.station)
            task.priority = max((t.priority for t in existing), default=-1) + 1
            task.version = 0
            uow.tasks.add(task)
        logger.info(
            "Created task %s in station '%s' at priority %s",
            task.id,
            task.station,
            task.priority,
            extra={"task_id": task.id, "station": task.station, "operation": "create"},
        )
        return task

    def remove_task(self, task_id: int) -> None:
        """Löscht einen Task und schließt die Lücke in seiner Station."""
        with self._observe("delete"), self._uow_factory() as uow:
            task = uow.tasks.find_by_id(task_id)
            if task is None:
                raise TaskNotFound(task_id)
            station = task.station
            self._lock(uow, station)
            # Nach dem Sperren neu lesen: ein paralleler Move kann den Task verschoben haben
            task = uow.tasks.find_by_id(task_id)
            if task is None:
                raise TaskNotFound(task_id)
            if task.station != station:
                raise Conflict(
                    "Konflikt: Task wurde parallel verschoben",
                    details={"task_id": task_id, "expected_station": station, "actual_station": task.station},
                )
            uow.tasks.delete(task)
            if station:
                self._reindex(uow, station, exclude=task_id)
        logger.info(
            "Deleted task %s from station '%s'", task_id, station, extra={"task_id": task_id, "operation": "delete"}
        )
