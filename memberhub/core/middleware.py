"""Request tracing for the HTTP log and the audit trail, plus CORS."""

import logging
import re
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from memberhub.core.config import settings

logger = logging.getLogger("memberhub.http")

REQUEST_ID_HEADER = "X-Request-Id"
# must fit AuditLog.request_id
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def resolve_request_id(incoming) -> str:
    """Reuse a caller-supplied id when it is safe to store, else mint one."""
    if incoming and _REQUEST_ID_RE.match(incoming):
        return incoming
    return uuid.uuid4().hex


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id shared by its log line and audit rows.

    Services read ``request.state.request_id`` through
    ``AuditService.request_meta``. Refused calls (4xx) are logged at WARNING
    so denied role and membership changes stand out.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        level = logging.WARNING if 400 <= response.status_code < 500 else logging.INFO
        logger.log(
            level, "%s %s -> %s in %sms [%s]",
            request.method, request.url.path, response.status_code, elapsed_ms, request_id,
        )
        return response


def setup_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RequestTraceMiddleware)
