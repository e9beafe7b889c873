"""Request context middleware: a request id on every log line.

A page view can fan out into an upstream ``getUsers`` call, an
``addUser`` call and a refetch.  Tagging every log record with the id of
the inbound request that caused it lets an operator pull one user's
click out of interleaved output:

  INFO  [req-abc] POST /users → 303
  WARN  [req-abc] users API add_user failed: Request failed with status code 500

The id lives in a ContextVar rather than a thread-local because all
requests share the event loop's thread; each asyncio task gets its own
copy of the context.

It is stamped onto records by a LogRecord factory, not a logger filter:
a filter on the root logger never sees records that propagate up from
``app.services.*`` loggers, while the factory runs for every record.
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


def _install_record_factory() -> None:
    base_factory = logging.getLogRecordFactory()
    if getattr(base_factory, "_stamps_request_id", False):
        return

    def factory(*args, **kwargs) -> logging.LogRecord:
        record = base_factory(*args, **kwargs)
        record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return record

    factory._stamps_request_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(factory)


_install_record_factory()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign or echo X-Request-ID, time the request, log one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        try:
            start = time.monotonic()
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            # request_id itself comes from the record factory
            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = req_id
        return response
