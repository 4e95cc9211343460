from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from exam_engine.api.exams import router as exams_router
from exam_engine.api.health import router as health_router
from exam_engine.api.metrics_endpoint import router as metrics_router
from exam_engine.api.questions import router as questions_router
from exam_engine.api.submissions import router as submissions_router
from exam_engine.core.config import SETTINGS
from exam_engine.core.logging import setup_logging
from exam_engine.db.engine import lifespan_db
from exam_engine.db.redis import lifespan_redis
from exam_engine.middleware.metrics import MetricsMiddleware
from exam_engine.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order: Redis closes before the DB.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="exam-engine",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext (outermost) -> Metrics -> route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(questions_router)
app.include_router(exams_router)
app.include_router(submissions_router)

logger.info(
    "exam-engine started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
