"""
Notesy Backend - Request Context Middleware
============================================

What:  Gives every request a correlation id and writes its access-log line.
How:   The id comes from the client's X-Request-ID or is generated, lives in a
       ContextVar for the error handlers and rate limiter, and is echoed on
       the response. After the response is produced one line goes to the
       `notesy.access` logger:

           PUT /api/notes/3f2a... 200 12.4ms [9c1d77ab] user=5b0e... 127.0.0.1
           POST /api/notes/upload 201 48.0ms [a1b2c3d4] user=5b0e... 127.0.0.1 upload=183204B

       The user is whoever get_current_user resolved (`-` for anonymous or
       rejected requests); upload size is the declared Content-Length.
       5xx lines are ERROR, 4xx WARNING, the rest INFO.

Never logged: bodies, file contents, Authorization headers.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"
UPLOAD_PATH = "/api/notes/upload"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

access_logger = logging.getLogger("notesy.access")


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Args:
        skip_paths: paths served without an access line (ids are still set)
    """

    def __init__(self, app, skip_paths: Iterable[str] = ("/health",)):
        super().__init__(app)
        self.skip_paths = frozenset(skip_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request_id_var.set(rid)

        started = time.perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid

        if request.url.path not in self.skip_paths:
            self._log(request, response.status_code, time.perf_counter() - started, rid)
        return response

    def _log(self, request: Request, status: int, elapsed: float, rid: str) -> None:
        user_id: Optional[str] = getattr(request.state, "user_id", None)
        client_ip = request.client.host if request.client else "unknown"

        line = "%s %s %d %.1fms [%s] user=%s %s"
        args = [
            request.method,
            request.url.path,
            status,
            elapsed * 1000,
            rid,
            user_id or "-",
            client_ip,
        ]
        if request.method == "POST" and request.url.path == UPLOAD_PATH:
            line += " upload=%sB"
            args.append(request.headers.get("content-length", "?"))

        access_logger.log(_level_for(status), line, *args)
