"""
Database models.
"""

from .base import Base, StringIdMixin, TimestampMixin
from .authorization import Authorization, AuthorizationType
from .task import (
    DEFAULT_PRIORITY,
    DelegationState,
    IdentityLink,
    IdentityLinkType,
    Task,
    TaskVariable,
)

__all__ = [
    # Base
    "Base",
    "StringIdMixin",
    "TimestampMixin",
    # Authorization
    "Authorization",
    "AuthorizationType",
    # Tasks
    "DEFAULT_PRIORITY",
    "DelegationState",
    "IdentityLink",
    "IdentityLinkType",
    "Task",
    "TaskVariable",
]
