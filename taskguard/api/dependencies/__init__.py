"""
FastAPI dependencies.
"""

from .context import get_command_context, get_identity
from .database import get_db
from .services import get_authorization_service, get_task_service

__all__ = [
    "get_authorization_service",
    "get_command_context",
    "get_db",
    "get_identity",
    "get_task_service",
]
