"""
Request Context Utilities.

Carries the request id and the acting identity for log correlation.

Usage:
    # In middleware (automatic)
    app.add_middleware(RequestContextMiddleware)

    # Access anywhere in request lifecycle
    from taskguard.utils.context import get_request_id, get_context_user

    logger.info("Processing", request_id=get_request_id())
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Any, Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from taskguard.core.config import settings


# ============================================================
# CONTEXT VARIABLES
# ============================================================

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_context_user: ContextVar[Optional[str]] = ContextVar("context_user", default=None)


# ============================================================
# CONTEXT ACCESSORS
# ============================================================

def get_request_id() -> Optional[str]:
    """Get the current request ID."""
    return _request_id.get()


def get_context_user() -> Optional[str]:
    """Get the id of the user acting in the current request, if any."""
    return _context_user.get()


# ============================================================
# MIDDLEWARE
# ============================================================

class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that creates request context for each request.

    Sets up:
    - request_id: From X-Request-ID header or generated
    - user: From the configured identity header (may be absent)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        user_id = request.headers.get(settings.auth.identity_header) or None

        request_token = _request_id.set(request_id)
        user_token = _context_user.set(user_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            _request_id.reset(request_token)
            _context_user.reset(user_token)


# ============================================================
# STRUCTLOG PROCESSOR
# ============================================================

def add_request_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Structlog processor that adds request context to all logs.

    Usage:
        structlog.configure(
            processors=[
                add_request_context,
                structlog.processors.JSONRenderer(),
            ]
        )
    """
    request_id = get_request_id()
    if request_id:
        event_dict.setdefault("request_id", request_id)

    user_id = get_context_user()
    if user_id:
        event_dict.setdefault("acting_user", user_id)

    return event_dict
