"""Prometheus metric inventory.

Every metric the service exports is declared here; the owning module
imports it and increments/observes at the point of action.  HTTP metrics
are fed by MetricsMiddleware; the rest by the grading, progress and
upload-maintenance code.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

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

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

QUIZ_SUBMISSIONS = Counter(
    "quiz_submissions_total",
    "Graded quiz submissions by outcome",
    ["outcome"],  # "passed" or "failed"
)

QUIZ_COMPLETIONS_RECORDED = Counter(
    "quiz_completions_recorded_total",
    "CompletedQuizAssignment rows written (first pass per student and lesson)",
)

PROGRESS_AGGREGATION_FAILURES = Counter(
    "progress_aggregation_failures_total",
    "Progress aggregations that failed and returned an empty result",
    ["scope"],  # "course" or "student"
)

UPLOAD_SESSIONS_PRUNED = Counter(
    "upload_sessions_pruned_total",
    "Stale upload sessions removed by the maintenance job",
)
