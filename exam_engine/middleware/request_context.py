"""Request context middleware: assigns an ID to every request.

A grading request logs from the API, the grading service and the
repository layer.  With concurrent requests those lines interleave; the
request ID stamped on each of them is what ties them back together.

The ID lives in a ContextVar rather than a thread-local: async handlers
for different requests share one thread, but each task gets its own
copy of the context.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

# Client-supplied IDs are echoed back; cap them so a hostile header can't
# bloat every log line.
_MAX_REQUEST_ID_LENGTH = 128


class _RequestContextFilter(logging.Filter):
    """Attach the current request ID to every LogRecord.

    A filter, not a formatter, because formatters can only read fields
    already on the record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


# Installed on the root logger so every logger inherits it; guarded
# against duplicates across module reloads.
root_logger = logging.getLogger()
if not any(isinstance(f, _RequestContextFilter) for f in root_logger.filters):
    root_logger.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log one summary line.

    The ID comes from the X-Request-ID header when the client sent one,
    otherwise a fresh UUID, and is returned in X-Request-ID.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        incoming = request.headers.get("x-request-id", "")[:_MAX_REQUEST_ID_LENGTH]
        req_id = incoming or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)
            logger.info(
                "%s %s -> %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)
