# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""
from prometheus_client import Counter, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "coldcall_requests_total",
    "Total HTTP requests to the cold-call service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "coldcall_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "coldcall_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
CLASSES_CREATED = Counter(
    "coldcall_classes_created_total",
    "Total classes created",
)
STUDENTS_ADDED = Counter(
    "coldcall_students_added_total",
    "Total students added to rosters",
    ["source"],
)
STUDENTS_REMOVED = Counter(
    "coldcall_students_removed_total",
    "Total students removed from rosters",
)
SELECTIONS_TOTAL = Counter(
    "coldcall_selections_total",
    "Random selections attempted",
    ["outcome"],
)
SCORES_SET = Counter(
    "coldcall_scores_set_total",
    "Score writes on cold calls",
    ["action"],
)
AUTH_EVENTS = Counter(
    "coldcall_auth_events_total",
    "Authentication events",
    ["event", "outcome"],
)
