"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behavior import and update them.  Counters are process-local and
never reset, so tests assert on deltas.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# --- HTTP (MetricsMiddleware) ---

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# --- Progress engine ---

VIDEO_PROGRESS_UPDATES = Counter(
    "video_progress_updates_total",
    "Video progress update requests by outcome",
    ["result"],  # created|updated|ignored_completed
)

ASSESSMENT_ATTEMPTS = Counter(
    "assessment_attempts_total",
    "Graded assessment attempts",
    ["passed"],  # "true" | "false"
)

RECOMPUTES = Counter(
    "progress_recomputes_total",
    "Course progress recomputations by trigger reason",
    ["reason"],  # video_completed|assessment_passed|manual
)

RECOMPUTE_CONFLICTS = Counter(
    "progress_recompute_conflicts_total",
    "Enrollment version conflicts that forced a recompute retry",
)

RECOMPUTE_DURATION = Histogram(
    "progress_recompute_duration_seconds",
    "Time spent loading, computing and persisting one recompute",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

COURSE_COMPLETIONS = Counter(
    "course_completions_total",
    "Enrollments that transitioned from not-completed to completed",
)

CERTIFICATE_ISSUANCE_FAILURES = Counter(
    "certificate_issuance_failures_total",
    "Completion-triggered certificate issuance calls that raised",
)

QUEUE_DEPTH = Gauge(
    "task_queue_depth",
    "Number of tasks waiting in a queue",
    ["queue_name"],
)
