"""Middleware package."""

from taskguard.api.middleware.logging import LoggingMiddleware
from taskguard.utils.context import RequestContextMiddleware

__all__ = [
    "LoggingMiddleware",
    "RequestContextMiddleware",
]
