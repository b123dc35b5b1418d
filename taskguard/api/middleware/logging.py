"""
Request logging.

One line per completed request. Forbidden responses are logged as warnings
with the acting user so denied task operations show up next to the guard's
own denial log; server errors are logged as errors. Health probes are not
logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from taskguard.utils.context import get_context_user, get_request_id

logger = logging.getLogger(__name__)

QUIET_PATHS = ("/health",)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path.startswith(QUIET_PATHS):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code == 403:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            "%s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "request_id": get_request_id(),
                "user_id": get_context_user(),
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
