# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "rollcall_requests_total",
    "Total HTTP requests to rollcall service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "rollcall_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "rollcall_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
GATHERS_TOTAL = Counter(
    "rollcall_gathers_total",
    "Total gather commands by outcome",
    ["outcome"],
)
MEMBERS_SELECTED = Counter(
    "rollcall_members_selected_total",
    "Total members selected across all gathers",
)
HISTORY_FLUSHES = Counter(
    "rollcall_history_flushes_total",
    "Total history flushes (rotation restarts)",
)
MEMBERSHIP_CHANGES = Counter(
    "rollcall_membership_changes_total",
    "Total join/leave commands by outcome",
    ["action", "outcome"],
)
NOTIFICATIONS_SENT = Counter(
    "rollcall_notifications_sent_total",
    "Total notifications sent",
    ["visibility"],
)
COMMAND_FAILURES = Counter(
    "rollcall_command_failures_total",
    "Total command failures by error kind",
    ["command", "kind"],
)
ROSTER_SIZE = Gauge(
    "rollcall_roster_size",
    "Number of members in the current roster at last read",
)
