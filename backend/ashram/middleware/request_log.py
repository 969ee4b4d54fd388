import logging
import re
import time
import uuid
from typing import Any, Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ashram.core.logging_config import request_id_ctx_var

logger = logging.getLogger("ashram.request")

_CALLER_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def _request_id(request: Request) -> str:
    supplied = request.headers.get("X-Request-ID", "")
    return supplied if _CALLER_REQUEST_ID.match(supplied) else str(uuid.uuid4())


def _route_name(request: Request) -> str | None:
    route = request.scope.get("route")
    return getattr(route, "name", None)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs one line per response.

    Receipt downloads also report which render backend produced the PDF and its size,
    so fallbacks show up in the access log without reading the generation logs.
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        request_id = _request_id(request)
        token = request_id_ctx_var.set(request_id)
        start = time.perf_counter()
        request.state.request_id = request_id
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            if response is not None:
                response.headers["X-Request-ID"] = request_id
                extra: dict[str, Any] = {
                    "request_id": request_id,
                    "route": _route_name(request),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 1),
                }
                backend = response.headers.get("X-Receipt-Backend")
                if backend:
                    extra["receipt_backend"] = backend
                    extra["pdf_bytes"] = int(response.headers.get("Content-Length", 0))
                level = logging.WARNING if response.status_code >= 500 else logging.INFO
                logger.log(level, "request", extra=extra)
            request_id_ctx_var.reset(token)
