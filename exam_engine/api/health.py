"""Health and readiness endpoints.

  /health (liveness): is the process alive?  Always 200; the body says
    whether dependencies are degraded and how the SLOs look.
  /ready (readiness): can this instance take traffic?  503 only when a
    configured database cannot be reached.

HEALTH RESPONSE STRUCTURE
---------------------------
  status:  overall health ("ok" or "degraded")
  checks:  per-dependency status (redis, database)
  slos:    current SLO compliance from in-process Prometheus metrics

The SLO numbers are per-process approximations: each replica only sees
its own counters, and they reset on restart.  Prometheus aggregates
the real thing across replicas.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from prometheus_client import REGISTRY
from sqlalchemy import text

from exam_engine.core.slo import (
    GRADING_THRESHOLD_SECONDS,
    evaluate_availability,
    evaluate_grading_latency,
    evaluate_latency,
)
from exam_engine.db.engine import engine
from exam_engine.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _sum_counter(metric_name: str, label_filter: dict | None = None) -> float:
    """Sum all samples of a metric across label combinations matching the filter.

    Example: _sum_counter("http_requests_total", {"status_code": "200"})
    sums all 200-status requests regardless of method or endpoint.
    """
    total = 0.0
    for metric in REGISTRY.collect():
        for sample in metric.samples:
            if sample.name != metric_name:
                continue
            if label_filter and not all(
                sample.labels.get(k) == v for k, v in label_filter.items()
            ):
                continue
            total += sample.value
    return total


def _grading_counts() -> tuple[int, int]:
    """(total gradings, gradings slower than GRADING_THRESHOLD_SECONDS).

    Read off the grading_duration_seconds histogram: the bucket whose
    upper bound equals the threshold counts the fast ones.
    """
    total = _sum_counter("grading_duration_seconds_count")
    fast = _sum_counter(
        "grading_duration_seconds_bucket", {"le": str(GRADING_THRESHOLD_SECONDS)}
    )
    return int(total), int(total - fast)


async def _database_ok() -> bool:
    if engine is None:
        return True
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database check failed")
        return False
    return True


@router.get("/health")
async def health() -> dict:
    """Liveness probe + dependency status + SLO compliance.

    Returns 200 even when degraded; a 503 here would get the container
    restarted for what may be a partial outage.
    """
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            logger.exception("Redis check failed")
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    if engine is not None:
        if await _database_ok():
            checks["database"] = "ok"
        else:
            checks["database"] = "degraded"
            overall = "degraded"
    else:
        checks["database"] = "not_configured"

    total_all = _sum_counter("http_requests_total")
    total_5xx = sum(
        _sum_counter("http_requests_total", {"status_code": str(code)})
        for code in range(500, 512)
    )
    availability_status = evaluate_availability(int(total_all), int(total_5xx))

    # Crude p95: twice the mean.  Prometheus does this properly with
    # histogram_quantile(0.95, rate(http_request_duration_seconds_bucket[5m])).
    duration_sum = _sum_counter("http_request_duration_seconds_sum")
    duration_count = _sum_counter("http_request_duration_seconds_count")
    if duration_count > 0:
        p95_estimate_ms = (duration_sum / duration_count) * 1000 * 2.0
    else:
        p95_estimate_ms = 0.0
    latency_status = evaluate_latency(p95_estimate_ms)

    total_gradings, slow_gradings = _grading_counts()
    grading_status = evaluate_grading_latency(total_gradings, slow_gradings)

    slos = {}
    for s in [availability_status, latency_status, grading_status]:
        slos[s.slo.name] = {
            "current": s.current,
            "target": s.slo.target,
            "healthy": s.healthy,
        }

    return {
        "status": overall,
        "checks": checks,
        "slos": slos,
    }


@router.get("/ready")
async def ready() -> Response:
    """Readiness probe.

    A configured but unreachable database fails readiness.  It is a
    connectivity check only: request state lives in the in-memory
    repositories.  Redis is not critical; statistics are simply
    recomputed.
    """
    if not await _database_ok():
        return Response(status_code=503)
    return Response(status_code=200)
