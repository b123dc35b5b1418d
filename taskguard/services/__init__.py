"""
Business logic services.
"""

from taskguard.services.authorization import AuthorizationService, create_authorization_provider
from taskguard.services.task import TaskService

__all__ = [
    "AuthorizationService",
    "TaskService",
    "create_authorization_provider",
]
