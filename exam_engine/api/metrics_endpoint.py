"""Prometheus scrape endpoint.

Plain text in Prometheus exposition format, e.g.:

  # TYPE submissions_graded_total counter
  submissions_graded_total{outcome="passed"} 212.0
  submissions_graded_total{outcome="failed"} 37.0

Restrict access in production (scraper IP allow-list or an internal
port): request rates and error patterns are not public information.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
