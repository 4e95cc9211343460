"""SLO (Service Level Objective) definitions for exam-engine.

SLIs AND SLOs
--------------
An SLI is a measurable property ("what fraction of requests succeeded");
an SLO is the target the team agrees on for it ("99.5% succeed over 30
days").  The gap between the target and 100% is the error budget.

For exam-engine:

  availability     99.5% of HTTP requests return non-5xx
  latency_p95      p95 HTTP latency under 500ms
  grading_latency  95% of grading calls finish within 100ms

Grading gets its own objective because a whole class submits within the
same few minutes at the end of an exam; grading is the one operation whose
latency spikes are felt by everybody at once.

The evaluation functions are pure: they take numbers and return a
status.  The /health endpoint reads the numbers from the Prometheus
registry and passes them in.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SLODefinition:
    """A single SLO target.

    name:        Identifier (e.g., "availability")
    description: What this SLO measures
    target:      The target percentage (e.g., 99.5 means 99.5%)
    window:      Rolling evaluation window (e.g., "30d")
    """

    name: str
    description: str
    target: float
    window: str


@dataclass(frozen=True, slots=True)
class SLOStatus:
    slo: SLODefinition
    current: float
    budget_remaining: float
    healthy: bool


AVAILABILITY_SLO = SLODefinition(
    name="availability",
    description="Percentage of non-5xx responses (successful requests)",
    target=99.5,
    window="30d",
)

LATENCY_SLO = SLODefinition(
    name="latency_p95",
    description="95th percentile response time under 500ms",
    target=95.0,
    window="30d",
)

GRADING_LATENCY_SLO = SLODefinition(
    name="grading_latency",
    description="95% of grading calls complete within 100ms",
    target=95.0,
    window="7d",
)

ALL_SLOS = [AVAILABILITY_SLO, LATENCY_SLO, GRADING_LATENCY_SLO]

GRADING_THRESHOLD_SECONDS = 0.1


def _status(slo: SLODefinition, current: float) -> SLOStatus:
    return SLOStatus(
        slo=slo,
        current=round(current, 3),
        budget_remaining=round(current - slo.target, 3),
        healthy=current >= slo.target,
    )


def evaluate_availability(total_requests: int, error_requests: int) -> SLOStatus:
    """availability = (total - errors) / total × 100

    Example:
      10,000 total, 10 errors  → 99.9% → healthy (target 99.5%)
      10,000 total, 100 errors → 99.0% → breached
    """
    if total_requests == 0:
        current = 100.0
    else:
        current = ((total_requests - error_requests) / total_requests) * 100
    return _status(AVAILABILITY_SLO, current)


def evaluate_latency(p95_ms: float) -> SLOStatus:
    """Approximate "percentage of requests under 500ms" from a p95 value."""
    threshold_ms = 500.0
    if p95_ms <= threshold_ms:
        current = 95.0 + (threshold_ms - p95_ms) / threshold_ms * 5.0
        current = min(current, 100.0)
    else:
        current = max(0.0, 95.0 - (p95_ms - threshold_ms) / threshold_ms * 95.0)
    return _status(LATENCY_SLO, current)


def evaluate_grading_latency(total_gradings: int, slow_gradings: int) -> SLOStatus:
    """A grading call is slow if it took longer than GRADING_THRESHOLD_SECONDS."""
    if total_gradings == 0:
        current = 100.0
    else:
        current = ((total_gradings - slow_gradings) / total_gradings) * 100
    return _status(GRADING_LATENCY_SLO, current)
