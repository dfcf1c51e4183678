from taskboard.ordering.engine import OrderingEngine, OrderingResult
from taskboard.ordering.normalizer import ApplyOrder, MoveTask, normalize_sort_request

__all__ = [
    "OrderingEngine",
    "OrderingResult",
    "ApplyOrder",
    "MoveTask",
    "normalize_sort_request",
]
