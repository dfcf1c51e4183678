"""Typed contracts between the ordering engine and its collaborators.

The engine never probes objects at runtime; anything it orders must expose
``id``, ``station``, ``priority`` and ``version`` as plain attributes, and the
collaborators below are the only way it reads or writes them.
"""
from __future__ import annotations

from typing import Callable, ContextManager, Iterable, Optional, Protocol, Sequence


class OrderableTask(Protocol):
    id: Optional[int]
    station: Optional[str]
    priority: int
    version: int


class TaskStore(Protocol):
    def find_by_id(self, task_id: int) -> Optional[OrderableTask]:
        ...

    def find_by_station(self, station: str) -> list[OrderableTask]:
        """All tasks of *station* ordered by (priority asc, id asc)."""
        ...

    def save_all(self, tasks: Sequence[OrderableTask]) -> None:
        """Persist station/priority of *tasks* within the current transaction."""
        ...

    def lock_station(self, station: str) -> None:
        """Serialize writers of *station* until the transaction ends."""
        ...

    def add(self, task: OrderableTask) -> OrderableTask:
        ...

    def delete(self, task: OrderableTask) -> None:
        ...


class StationDirectory(Protocol):
    def resolve_name(self, id_or_name: int | str) -> str:
        """Canonical station name; raises StationNotFound."""
        ...

    def exists(self, name: str) -> bool:
        ...


class BoardUnitOfWork(Protocol):
    tasks: TaskStore
    stations: StationDirectory


# Factory für eine Transaktion: ``with uow_factory() as uow: ...``
UnitOfWorkFactory = Callable[[], ContextManager[BoardUnitOfWork]]


def task_ids(tasks: Iterable[OrderableTask]) -> list[Optional[int]]:
    return [t.id for t in tasks]
