"""
Authorization guard.

Operations declare the permission paths they accept, in order of preference.
The guard adds each path's fallback, resolves them, and raises
AuthorizationDenied naming every path it tried. When an explicit revoke
settles the outcome, only the paths up to and including it are named.

Usage:
    guard = AuthorizationGuard(resolver)

    await guard.check(
        ctx,
        PermissionCheck(Permission.TASK_ASSIGN, Resource.TASK, task.id),
        PermissionCheck(Permission.UPDATE, Resource.TASK, task.id),
        owner=task,
    )

Checks are skipped when the context has no identity, while
ctx.without_authorization() is active, or when AUTH_ENABLED is false.
"""

from typing import Any

import structlog

from taskguard.core.auth.context import CommandContext
from taskguard.core.auth.interfaces import PermissionCheck
from taskguard.core.auth.resolver import AuthorizationResolver
from taskguard.core.exceptions import AuthorizationDenied, MissingAuthorization

logger = structlog.get_logger()


class AuthorizationGuard:
    def __init__(self, resolver: AuthorizationResolver, enabled: bool = True):
        self.resolver = resolver
        self.enabled = enabled

    def is_active(self, ctx: CommandContext) -> bool:
        return self.enabled and ctx.checks_authorization

    async def check(
        self,
        ctx: CommandContext,
        *alternatives: PermissionCheck,
        owner: Any | None = None,
    ) -> None:
        """
        Require at least one of the alternatives.

        Raises:
            AuthorizationDenied: none of the paths is granted, or an earlier
                path is explicitly revoked
        """
        if not self.is_active(ctx):
            return

        checks = self.resolver.expand(alternatives, owner)
        result = await self.resolver.resolve(ctx.identity, checks)
        if result.authorized:
            return

        # A revoke stops resolution; later paths were never tried.
        tried = result.attempted if result.decided_by is not None else checks
        missing = [
            MissingAuthorization(
                permission_name=c.permission.name,
                resource_name=c.resource.resource_name,
                resource_id=None if c.is_any else c.resource_id,
            )
            for c in tried
        ]
        logger.info(
            "Authorization denied",
            user_id=ctx.user_id,
            missing=[m.describe() for m in missing],
            revoked_by=result.decided_by.permission.name if result.decided_by else None,
        )
        raise AuthorizationDenied(ctx.user_id, missing)

    async def is_authorized(
        self,
        ctx: CommandContext,
        *alternatives: PermissionCheck,
        owner: Any | None = None,
    ) -> bool:
        """Non-raising form of check(), for filtering query results."""
        if not self.is_active(ctx):
            return True
        checks = self.resolver.expand(alternatives, owner)
        result = await self.resolver.resolve(ctx.identity, checks)
        return result.authorized
