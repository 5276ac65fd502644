"""
Request Context Middleware

Tags every HTTP request with an ID and logs it with its outcome and timing.
"""

import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.config import logger
from app.core.security import REQUEST_ID_HEADER, get_request_id

DEFAULT_QUIET_PATHS = frozenset({"/health", "/healthz", "/ready"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    - Reuses a valid incoming X-Request-ID or generates one
    - Echoes the ID on the response
    - Logs method, path, status and duration, except for health probes
    """

    def __init__(self, app: ASGIApp, quiet_paths: Optional[frozenset] = None):
        super().__init__(app)
        self.quiet_paths = quiet_paths if quiet_paths is not None else DEFAULT_QUIET_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = get_request_id(request)
        request.state.request_id = request_id
        quiet = request.url.path in self.quiet_paths
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Request failed: %s %s | error=%s | duration=%.2fms | request_id=%s",
                request.method,
                request.url.path,
                exc,
                (time.perf_counter() - start_time) * 1000,
                request_id,
            )
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        if not quiet:
            logger.info(
                "%s %s | status=%d | duration=%.2fms | request_id=%s",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - start_time) * 1000,
                request_id,
            )
        return response
