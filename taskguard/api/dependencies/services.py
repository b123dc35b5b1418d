"""
Service dependencies.
"""

from fastapi import Depends

from taskguard.core.auth.context import CommandContext
from taskguard.services.authorization import AuthorizationService
from taskguard.services.task import TaskService

from .context import get_command_context


async def get_task_service(ctx: CommandContext = Depends(get_command_context)) -> TaskService:
    """Get task service instance."""
    return TaskService(ctx)


async def get_authorization_service(
    ctx: CommandContext = Depends(get_command_context),
) -> AuthorizationService:
    """Get authorization service instance."""
    return AuthorizationService(ctx)
