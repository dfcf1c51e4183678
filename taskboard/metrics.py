from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Ordering
MOVES_TOTAL = Counter("taskboard_moves_total", "Ordering operations by outcome", ["operation", "outcome"])
REINDEX_DURATION = Histogram("taskboard_reindex_duration_seconds", "Duration of ordering transactions", ["operation"])

# HTTP
HTTP_REQUEST_DURATION = Histogram(
    "taskboard_http_request_duration_seconds", "HTTP request duration", ["method", "endpoint"]
)

__all__ = [
    "MOVES_TOTAL",
    "REINDEX_DURATION",
    "HTTP_REQUEST_DURATION",
    "generate_latest",
    "CONTENT_TYPE_LATEST",
]
