"""Application metrics using the Prometheus client library.

All metrics are defined here, in one inventory.  Other modules import
the specific metric they own and increment/observe it at the point of
action.

WHAT WE MEASURE
----------------
HTTP layer (MetricsMiddleware):
  http_requests_total, http_request_duration_seconds, http_active_requests

Engine:
  variations_assembled_total   Counter; one per Variation produced.
  assembly_failures_total      Counter by reason ("insufficient_questions").
  submissions_graded_total     Counter by outcome ("passed" / "failed").
  grading_rejections_total     Counter by reason ("already_graded",
                               "invalid_shape").
  grading_duration_seconds     Histogram of GradingService.grade wall time.
                               Feeds the grading latency SLO in slo.py.

Cache:
  cache_operations_total       Counter by operation ("hit" / "miss").

Counters only ever go up, so tests assert on deltas (read before, act,
read after) rather than on absolute values.
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
# Engine metrics
# ---------------------------------------------------------------------------

VARIATIONS_ASSEMBLED = Counter(
    "variations_assembled_total",
    "Exam variations produced by the assembler",
)

ASSEMBLY_FAILURES = Counter(
    "assembly_failures_total",
    "Variation assemblies rejected before producing any variation",
    ["reason"],
)

SUBMISSIONS_GRADED = Counter(
    "submissions_graded_total",
    "Submissions moved from submitted to graded",
    ["outcome"],  # "passed" or "failed"
)

GRADING_REJECTIONS = Counter(
    "grading_rejections_total",
    "Grade calls rejected without changing any stored state",
    ["reason"],  # "already_graded", "invalid_shape" or "missing_question"
)

GRADING_DURATION = Histogram(
    "grading_duration_seconds",
    "Wall time of a single grading call, including persistence",
    # Grading is in-process arithmetic plus one counter update, so the
    # interesting range is well under a second.
    buckets=[0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Statistics cache operations",
    ["operation"],  # "hit", "miss", "set" or "delete"
)
