"""Server-Sent Events für Board-Clients.

Clients abonnieren ``GET /api/tasks/stream`` und laden das Board neu, sobald ein
Event eintrifft. Events tragen keine Nutzdaten, nur ihren Namen.
"""
import logging
import threading
from queue import Empty, Queue
from typing import Iterator

logger = logging.getLogger(__name__)

TASK_CREATED = "task-created"
TASK_UPDATED = "task-updated"
TASK_DELETED = "task-deleted"


def format_event(name: str, data: str) -> str:
    return f"event: {name}\ndata: {data}\n\n"


class TaskEventPublisher:
    """Verteilt Task-Events an alle offenen Streams (eine Queue pro Abonnent)."""

    def __init__(self, keepalive: float = 15.0):
        self.keepalive = keepalive
        self._subscribers: list[Queue] = []
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> Queue:
        q: Queue = Queue()
        with self._lock:
            self._subscribers.append(q)
        return q

    def unsubscribe(self, q: Queue) -> None:
        with self._lock:
            if q in self._subscribers:
                self._subscribers.remove(q)

    def publish(self, name: str) -> None:
        with self._lock:
            for q in self._subscribers:
                q.put(name)
            count = len(self._subscribers)
        logger.debug("Published %s to %d subscriber(s)", name, count)

    def stream(self) -> Iterator[str]:
        q = self.subscribe()
        try:
            yield format_event("ping", "ok")
            while True:
                try:
                    yield format_event(q.get(timeout=self.keepalive), "1")
                except Empty:
                    yield ": keep-alive\n\n"
        finally:
            self.unsubscribe(q)
