"""
Default authorization provider.

When a user or group becomes assignee, owner, candidate or any other identity
link of a task, they receive a GRANT on that task with READ plus the default
task permission (UPDATE unless AUTH_DEFAULT_TASK_PERMISSION says TASK_WORK).

- Tasks of a case instance are not provisioned.
- The ANY wildcard is rejected, as identity and as resource id, before
  anything is written.
- Removing or clearing a link never revokes what was granted.
- Grants are upserts, so repeating a change does not duplicate records.

Subclasses can bundle more permissions by overriding
extra_task_permissions():

    @AuthRegistry.authorization_provider("with_delete")
    class DeletingProvider(DefaultAuthorizationProvider):
        def extra_task_permissions(self) -> list[Permission]:
            return [Permission.DELETE]
"""

from typing import Any

import structlog

from taskguard.core.auth.interfaces import ResourceAuthorizationProvider
from taskguard.core.auth.permissions import Permission, Resource
from taskguard.core.auth.registry import AuthRegistry
from taskguard.core.auth.validators import validate_not_wildcard, validate_resource_id
from taskguard.repositories.authorization import AuthorizationRepository

logger = structlog.get_logger()

USER = "user"
GROUP = "group"


@AuthRegistry.authorization_provider("default")
class DefaultAuthorizationProvider(ResourceAuthorizationProvider):
    """
    Configuration:
        default_task_permission: "UPDATE" (default) or "TASK_WORK"
    """

    def __init__(
        self,
        store: AuthorizationRepository,
        default_task_permission: str = "UPDATE",
        **kwargs: Any,
    ):
        self.store = store
        self.default_task_permission = Permission.for_name(default_task_permission, Resource.TASK)

    def extra_task_permissions(self) -> list[Permission]:
        """Permissions granted in addition to READ and the default permission."""
        return []

    def task_permissions(self) -> list[Permission]:
        return [Permission.READ, self.default_task_permission, *self.extra_task_permissions()]

    # ============================================================
    # GENERIC ENTRY POINT
    # ============================================================

    async def on_identity_link_changed(
        self,
        resource: Resource,
        resource_id: str,
        identity_kind: str,
        identity_id: str | None,
        added: bool,
        role: str = USER,
        eligible: bool = True,
        action: str = "create",
    ) -> None:
        if not eligible:
            return

        validate_resource_id(resource_id, resource.resource_name, action)
        validate_not_wildcard(identity_id, role, action)

        if not added or not identity_id:
            return

        if identity_kind == GROUP:
            record = await self.store.grant(resource, resource_id, *self.task_permissions(), group_id=identity_id)
        else:
            record = await self.store.grant(resource, resource_id, *self.task_permissions(), user_id=identity_id)

        logger.info(
            "Authorization provisioned",
            resource=resource.resource_name,
            resource_id=resource_id,
            identity_kind=identity_kind,
            identity_id=identity_id,
            role=role,
            permissions=record.permission_names,
        )

    # ============================================================
    # TASK HOOKS
    # ============================================================

    async def new_task(self, task: Any) -> None:
        """Provision the assignee and owner a task was created with."""
        await self.new_task_assignee(task, None, task.assignee)
        await self.new_task_owner(task, None, task.owner)

    async def new_task_assignee(self, task: Any, old_assignee: str | None, new_assignee: str | None) -> None:
        await self.on_identity_link_changed(
            Resource.TASK,
            task.id,
            USER,
            new_assignee,
            added=bool(new_assignee),
            role="assignee",
            eligible=_is_eligible(task),
        )

    async def new_task_owner(self, task: Any, old_owner: str | None, new_owner: str | None) -> None:
        await self.on_identity_link_changed(
            Resource.TASK,
            task.id,
            USER,
            new_owner,
            added=bool(new_owner),
            role="owner",
            eligible=_is_eligible(task),
        )

    async def new_task_user_identity_link(self, task: Any, user_id: str, link_type: str) -> None:
        await self.on_identity_link_changed(
            Resource.TASK,
            task.id,
            USER,
            user_id,
            added=True,
            role="identity link to user",
            eligible=_is_eligible(task),
            action="grant",
        )

    async def new_task_group_identity_link(self, task: Any, group_id: str, link_type: str) -> None:
        await self.on_identity_link_changed(
            Resource.TASK,
            task.id,
            GROUP,
            group_id,
            added=True,
            role="identity link to group",
            eligible=_is_eligible(task),
            action="grant",
        )

    async def delete_task_user_identity_link(self, task: Any, user_id: str, link_type: str) -> None:
        await self.on_identity_link_changed(
            Resource.TASK, task.id, USER, user_id, added=False, role="identity link to user",
            eligible=_is_eligible(task), action="grant",
        )

    async def delete_task_group_identity_link(self, task: Any, group_id: str, link_type: str) -> None:
        await self.on_identity_link_changed(
            Resource.TASK, task.id, GROUP, group_id, added=False, role="identity link to group",
            eligible=_is_eligible(task), action="grant",
        )

    # ============================================================
    # CLEANUP
    # ============================================================

    async def clear_authorizations(self, resource_id: str) -> int:
        deleted = await self.store.delete_by_resource_id(resource_id)
        logger.debug("Authorizations cleared", resource_id=resource_id, deleted=deleted)
        return deleted


def _is_eligible(task: Any) -> bool:
    return getattr(task, "case_instance_id", None) is None
