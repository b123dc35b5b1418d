"""
Repository pattern for data access.
"""

from taskguard.repositories.base import BaseRepository
from taskguard.repositories.authorization import AuthorizationRepository
from taskguard.repositories.task import (
    IdentityLinkRepository,
    TaskRepository,
    TaskVariableRepository,
)

__all__ = [
    "BaseRepository",
    "AuthorizationRepository",
    "IdentityLinkRepository",
    "TaskRepository",
    "TaskVariableRepository",
]
