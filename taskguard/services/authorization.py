"""
Authorization administration service.

Creates, lists and deletes authorization records and answers "is this user
authorized" questions. Managing authorizations is itself guarded by
permissions on the Authorization resource.
"""

from typing import Iterable

import structlog

# Importing the provider module registers the default provider.
from taskguard.core.auth import provider as _default_provider  # noqa: F401
from taskguard.core.auth.context import CommandContext
from taskguard.core.auth.guard import AuthorizationGuard
from taskguard.core.auth.interfaces import Identity, PermissionCheck, ResourceAuthorizationProvider
from taskguard.core.auth.permissions import ANY, Permission, Resource, parse_permissions
from taskguard.core.auth.registry import AuthRegistry
from taskguard.core.auth.resolver import AuthorizationResolver
from taskguard.core.config import settings
from taskguard.core.exceptions import InvalidOperationError, NotFoundError
from taskguard.models.authorization import Authorization, AuthorizationType
from taskguard.repositories.authorization import AuthorizationRepository
from taskguard.repositories.task import TaskRepository

logger = structlog.get_logger()


def create_authorization_provider(store: AuthorizationRepository) -> ResourceAuthorizationProvider:
    """Instantiate the provider selected by AUTH_AUTHORIZATION_PROVIDER."""
    return AuthRegistry.get_authorization_provider(
        settings.auth.authorization_provider,
        store=store,
        default_task_permission=settings.auth.default_task_permission,
    )


class AuthorizationService:
    """
    Usage:
        service = AuthorizationService(ctx)
        await service.create_authorization(
            AuthorizationType.GRANT, Resource.TASK, task.id, ["READ"], user_id="demo"
        )
    """

    def __init__(self, ctx: CommandContext, guard: AuthorizationGuard | None = None):
        self.ctx = ctx
        self.db = ctx.session
        self.store = AuthorizationRepository(self.db)
        self.resolver = AuthorizationResolver(self.store)
        self.guard = guard or AuthorizationGuard(self.resolver, enabled=settings.auth.enabled)

    async def create_authorization(
        self,
        type: AuthorizationType,
        resource: Resource,
        resource_id: str,
        permissions: Iterable[str],
        user_id: str | None = None,
        group_id: str | None = None,
    ) -> Authorization:
        """
        Create a GRANT, REVOKE or GLOBAL record.

        Records colliding with an existing one of the same type are merged.

        Raises:
            InvalidOperationError: resource_id is empty, or owner fields do not
                fit the record type
            InvalidPermissionError: a permission does not apply to the resource
        """
        await self.guard.check(
            self.ctx, PermissionCheck(Permission.CREATE, Resource.AUTHORIZATION, ANY)
        )

        if not resource_id:
            raise InvalidOperationError("resource_id must name a resource or be *")

        if type == AuthorizationType.GLOBAL:
            if group_id is not None or user_id not in (None, ANY):
                raise InvalidOperationError("Global authorizations apply to every user and take no user or group")
            user_id = ANY
        elif (user_id is None) == (group_id is None):
            raise InvalidOperationError("Exactly one of user_id or group_id must be set")

        record = await self.store.save(
            Authorization(
                type=type,
                resource_type=resource.type_id,
                resource_id=resource_id,
                permissions=parse_permissions(permissions, resource),
                user_id=user_id,
                group_id=group_id,
            )
        )
        logger.info(
            "Authorization saved",
            authorization_id=record.id,
            type=AuthorizationType(type).name,
            resource=resource.resource_name,
            resource_id=record.resource_id,
            user_id=user_id,
            group_id=group_id,
            permissions=record.permission_names,
        )
        return record

    async def get_authorization(self, authorization_id: str) -> Authorization:
        record = await self.store.get_by_id(authorization_id)
        if record is None:
            raise NotFoundError(f"Cannot find authorization with id {authorization_id}")
        await self.guard.check(
            self.ctx, PermissionCheck(Permission.READ, Resource.AUTHORIZATION, record.id)
        )
        return record

    async def query_authorizations(
        self,
        user_id_in: list[str] | None = None,
        group_id_in: list[str] | None = None,
        resource_type: Resource | None = None,
        resource_id: str | None = None,
        type: AuthorizationType | None = None,
    ) -> list[Authorization]:
        """Records matching the filters that the caller may read."""
        records = await self.store.query(
            user_id_in=user_id_in,
            group_id_in=group_id_in,
            resource_type=resource_type,
            resource_id=resource_id,
            type=type,
        )
        return [
            record
            for record in records
            if await self.guard.is_authorized(
                self.ctx, PermissionCheck(Permission.READ, Resource.AUTHORIZATION, record.id)
            )
        ]

    async def delete_authorization(self, authorization_id: str) -> None:
        record = await self.store.get_by_id(authorization_id)
        if record is None:
            raise NotFoundError(f"Cannot find authorization with id {authorization_id}")
        await self.guard.check(
            self.ctx, PermissionCheck(Permission.DELETE, Resource.AUTHORIZATION, record.id)
        )
        await self.store.delete(record)
        logger.info("Authorization deleted", authorization_id=authorization_id)

    async def is_user_authorized(
        self,
        user_id: str,
        group_ids: Iterable[str],
        permission: Permission,
        resource: Resource,
        resource_id: str = ANY,
    ) -> bool:
        """
        Whether the given user would pass a single permission check.

        For a concrete task the task's process definition is consulted as the
        fallback.
        """
        owner = None
        if resource == Resource.TASK and resource_id != ANY:
            owner = await TaskRepository(self.db).get_by_id(resource_id)
        return await self.resolver.is_authorized(
            Identity(user_id=user_id, group_ids=tuple(group_ids)),
            permission,
            resource,
            resource_id,
            owner=owner,
        )
