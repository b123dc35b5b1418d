"""
Task service.

Every operation declares the permission paths it accepts, runs them through
the guard, performs the change and then lets the authorization provider
provision grants for newly linked identities.

Permission paths per operation (each followed by its process definition
fallback):

    create                          CREATE on Task *
    save, assignee, owner, priority,
    delegate, identity links        TASK_ASSIGN, UPDATE
    claim                           TASK_WORK, TASK_ASSIGN, UPDATE
    complete, resolve               TASK_WORK, UPDATE
    read, identity links, sub tasks READ
    read variables                  READ_VARIABLE, READ
    write variables                 UPDATE_VARIABLE, UPDATE
    delete                          DELETE

Tasks belonging to a case instance are neither checked nor provisioned.
"""

from typing import Any

import structlog
from sqlalchemy import inspect

from taskguard.core.auth.context import CommandContext
from taskguard.core.auth.guard import AuthorizationGuard
from taskguard.core.auth.interfaces import PermissionCheck, ResourceAuthorizationProvider
from taskguard.core.auth.permissions import ANY, Permission, Resource
from taskguard.core.auth.resolver import AuthorizationResolver
from taskguard.core.auth.validators import validate_not_wildcard, validate_resource_id
from taskguard.core.config import settings
from taskguard.core.exceptions import (
    InvalidOperationError,
    NotFoundError,
    TaskAlreadyClaimedError,
)
from taskguard.models.task import DEFAULT_PRIORITY, DelegationState, IdentityLink, IdentityLinkType, Task, TaskVariable
from taskguard.repositories.authorization import AuthorizationRepository
from taskguard.repositories.task import (
    IdentityLinkRepository,
    TaskRepository,
    TaskVariableRepository,
)
from taskguard.services.authorization import create_authorization_provider

logger = structlog.get_logger()

ASSIGN = (Permission.TASK_ASSIGN, Permission.UPDATE)
WORK = (Permission.TASK_WORK, Permission.UPDATE)
CLAIM = (Permission.TASK_WORK, Permission.TASK_ASSIGN, Permission.UPDATE)
READ_VARIABLES = (Permission.READ_VARIABLE, Permission.READ)
UPDATE_VARIABLES = (Permission.UPDATE_VARIABLE, Permission.UPDATE)

# Fields a caller may change through save/update.
TASK_FIELDS = ("name", "description", "assignee", "owner", "priority", "parent_task_id")


class TaskService:
    """
    Task operations executed for the identity in a CommandContext.

    Usage:
        service = TaskService(ctx)
        task = await service.new_task()
        task.assignee = "demo"
        await service.save_task(task)
    """

    def __init__(
        self,
        ctx: CommandContext,
        provider: ResourceAuthorizationProvider | None = None,
        guard: AuthorizationGuard | None = None,
    ):
        self.ctx = ctx
        self.db = ctx.session
        self.tasks = TaskRepository(self.db)
        self.links = IdentityLinkRepository(self.db)
        self.variables = TaskVariableRepository(self.db)
        self.store = AuthorizationRepository(self.db)
        self.guard = guard or AuthorizationGuard(
            AuthorizationResolver(self.store),
            enabled=settings.auth.enabled,
        )
        self.provider = provider or create_authorization_provider(self.store)

    # ============================================================
    # CREATE / SAVE
    # ============================================================

    async def new_task(self, task_id: str | None = None) -> Task:
        """Return a new, unsaved task. Requires CREATE on every task."""
        validate_resource_id(task_id)
        await self._check_create()
        task = Task(priority=DEFAULT_PRIORITY)
        if task_id is not None:
            task.id = task_id
        return task

    async def save_task(self, task: Task) -> Task:
        """
        Insert a new task or persist changes to an existing one.

        The id, assignee and owner are validated before anything is written,
        for every kind of task.
        """
        validate_resource_id(task.id)
        validate_not_wildcard(task.assignee, "assignee")
        validate_not_wildcard(task.owner, "owner")

        state = inspect(task)
        if state.transient:
            if not task.is_case_task:
                await self._check_create()
            await self.tasks.add(task)
            await self.provider.new_task(task)
            logger.info("Task created", task_id=task.id, assignee=task.assignee)
            return task

        # Read before the guard query autoflushes the pending changes.
        old_assignee = _previous_value(task, "assignee")
        old_owner = _previous_value(task, "owner")
        await self._check(task, *ASSIGN)
        return await self._store_changes(task, old_assignee, old_owner)

    async def update_task(self, task_id: str, **changes: Any) -> Task:
        """Apply field changes to a stored task; nothing changes if the check fails."""
        for field in changes:
            if field not in TASK_FIELDS:
                raise InvalidOperationError(f"Task field '{field}' cannot be updated")
        validate_not_wildcard(changes.get("assignee"), "assignee")
        validate_not_wildcard(changes.get("owner"), "owner")

        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)

        old_assignee, old_owner = task.assignee, task.owner
        for field, value in changes.items():
            setattr(task, field, value)
        return await self._store_changes(task, old_assignee, old_owner)

    # ============================================================
    # READ
    # ============================================================

    async def get_task(self, task_id: str) -> Task:
        task = await self._require_task(task_id)
        await self._check(task, Permission.READ)
        return task

    async def query_tasks(self, **filters: Any) -> list[Task]:
        """Tasks matching filters that the caller may read."""
        tasks = await self.tasks.search(**filters)
        return [task for task in tasks if await self._can_read(task)]

    async def get_sub_tasks(self, parent_task_id: str) -> list[Task]:
        tasks = await self.tasks.sub_tasks(parent_task_id)
        return [task for task in tasks if await self._can_read(task)]

    # ============================================================
    # ASSIGNMENT
    # ============================================================

    async def claim(self, task_id: str, user_id: str | None) -> Task:
        """Claim a task for user_id, or unclaim it when user_id is None."""
        validate_not_wildcard(user_id, "assignee")
        task = await self._require_task(task_id)
        await self._check(task, *CLAIM)

        if user_id is not None and task.assignee is not None and task.assignee != user_id:
            raise TaskAlreadyClaimedError(task.id, task.assignee)

        return await self._assign(task, user_id)

    async def set_assignee(self, task_id: str, user_id: str | None) -> Task:
        validate_not_wildcard(user_id, "assignee")
        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)
        return await self._assign(task, user_id)

    async def set_owner(self, task_id: str, user_id: str | None) -> Task:
        validate_not_wildcard(user_id, "owner")
        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)

        old_owner = task.owner
        task.owner = user_id
        await self.db.flush()
        await self.provider.new_task_owner(task, old_owner, user_id)
        return task

    async def set_priority(self, task_id: str, priority: int) -> Task:
        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)
        task.priority = priority
        await self.db.flush()
        return task

    async def delegate(self, task_id: str, user_id: str) -> Task:
        """
        Hand the task to user_id while remembering who delegated it.

        The current assignee becomes owner if the task has none.
        """
        validate_not_wildcard(user_id, "assignee")
        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)

        if task.owner is None and task.assignee is not None:
            old_owner = task.owner
            task.owner = task.assignee
            await self.provider.new_task_owner(task, old_owner, task.owner)

        task.delegation_state = DelegationState.PENDING.value
        return await self._assign(task, user_id)

    async def resolve_task(self, task_id: str) -> Task:
        """Mark delegated work as done and give the task back to its owner."""
        task = await self._require_task(task_id)
        await self._check(task, *WORK)
        task.delegation_state = DelegationState.RESOLVED.value
        return await self._assign(task, task.owner)

    async def complete(self, task_id: str) -> None:
        """Complete a task; it is removed together with its authorizations."""
        task = await self._require_task(task_id)
        await self._check(task, *WORK)

        if task.delegation_state == DelegationState.PENDING.value:
            raise InvalidOperationError(
                "A delegated task cannot be completed, but should be resolved instead."
            )

        await self._remove(task)
        logger.info("Task completed", task_id=task_id)

    # ============================================================
    # IDENTITY LINKS
    # ============================================================

    async def add_candidate_user(self, task_id: str, user_id: str) -> None:
        await self.add_user_identity_link(task_id, user_id, IdentityLinkType.CANDIDATE.value)

    async def add_candidate_group(self, task_id: str, group_id: str) -> None:
        await self.add_group_identity_link(task_id, group_id, IdentityLinkType.CANDIDATE.value)

    async def delete_candidate_user(self, task_id: str, user_id: str) -> None:
        await self.delete_user_identity_link(task_id, user_id, IdentityLinkType.CANDIDATE.value)

    async def delete_candidate_group(self, task_id: str, group_id: str) -> None:
        await self.delete_group_identity_link(task_id, group_id, IdentityLinkType.CANDIDATE.value)

    async def add_user_identity_link(self, task_id: str, user_id: str, link_type: str) -> None:
        """Link a user; "assignee" and "owner" links set those fields instead."""
        if link_type == IdentityLinkType.ASSIGNEE.value:
            await self.set_assignee(task_id, user_id)
            return
        if link_type == IdentityLinkType.OWNER.value:
            await self.set_owner(task_id, user_id)
            return

        validate_not_wildcard(user_id, "identity link to user", action="grant")
        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)
        await self.provider.new_task_user_identity_link(task, user_id, link_type)

        if await self.links.find_link(task.id, link_type, user_id=user_id) is None:
            await self.links.add(IdentityLink(task_id=task.id, type=link_type, user_id=user_id))

    async def add_group_identity_link(self, task_id: str, group_id: str, link_type: str) -> None:
        if link_type in (IdentityLinkType.ASSIGNEE.value, IdentityLinkType.OWNER.value):
            raise InvalidOperationError(
                f"Incompatible usage: cannot use type '{link_type}' together with a group id"
            )

        validate_not_wildcard(group_id, "identity link to group", action="grant")
        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)
        await self.provider.new_task_group_identity_link(task, group_id, link_type)

        if await self.links.find_link(task.id, link_type, group_id=group_id) is None:
            await self.links.add(IdentityLink(task_id=task.id, type=link_type, group_id=group_id))

    async def delete_user_identity_link(self, task_id: str, user_id: str, link_type: str) -> None:
        if link_type == IdentityLinkType.ASSIGNEE.value:
            await self.set_assignee(task_id, None)
            return
        if link_type == IdentityLinkType.OWNER.value:
            await self.set_owner(task_id, None)
            return

        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)
        link = await self.links.find_link(task.id, link_type, user_id=user_id)
        if link is not None:
            await self.links.delete(link)
        await self.provider.delete_task_user_identity_link(task, user_id, link_type)

    async def delete_group_identity_link(self, task_id: str, group_id: str, link_type: str) -> None:
        task = await self._require_task(task_id)
        await self._check(task, *ASSIGN)
        link = await self.links.find_link(task.id, link_type, group_id=group_id)
        if link is not None:
            await self.links.delete(link)
        await self.provider.delete_task_group_identity_link(task, group_id, link_type)

    async def get_identity_links(self, task_id: str) -> list[IdentityLink]:
        """Stored links plus the assignee and owner as synthesized links."""
        task = await self._require_task(task_id)
        await self._check(task, Permission.READ)

        links = []
        if task.assignee:
            links.append(IdentityLink(task_id=task.id, type=IdentityLinkType.ASSIGNEE.value, user_id=task.assignee))
        if task.owner:
            links.append(IdentityLink(task_id=task.id, type=IdentityLinkType.OWNER.value, user_id=task.owner))
        links.extend(await self.links.for_task(task.id))
        return links

    # ============================================================
    # VARIABLES
    # ============================================================

    async def get_variables(self, task_id: str, names: list[str] | None = None) -> dict[str, Any]:
        task = await self._require_task(task_id)
        await self._check(task, *READ_VARIABLES)
        return {v.name: v.value for v in await self.variables.for_task(task.id, names)}

    async def get_variable(self, task_id: str, name: str) -> Any:
        return (await self.get_variables(task_id, [name])).get(name)

    async def set_variables(self, task_id: str, values: dict[str, Any]) -> None:
        task = await self._require_task(task_id)
        await self._check(task, *UPDATE_VARIABLES)

        existing = {v.name: v for v in await self.variables.for_task(task.id, list(values))}
        for name, value in values.items():
            if name in existing:
                existing[name].value = value
            else:
                self.db.add(TaskVariable(task_id=task.id, name=name, value=value))
        await self.db.flush()

    async def set_variable(self, task_id: str, name: str, value: Any) -> None:
        await self.set_variables(task_id, {name: value})

    async def remove_variables(self, task_id: str, names: list[str]) -> int:
        task = await self._require_task(task_id)
        await self._check(task, *UPDATE_VARIABLES)
        return await self.variables.delete_for_task(task.id, names)

    async def remove_variable(self, task_id: str, name: str) -> int:
        return await self.remove_variables(task_id, [name])

    # ============================================================
    # DELETE
    # ============================================================

    async def delete_task(self, task_id: str) -> None:
        await self.delete_tasks([task_id])

    async def delete_tasks(self, task_ids: list[str]) -> None:
        """
        Delete standalone tasks.

        Every task is checked before any is deleted.
        """
        tasks = []
        for task_id in task_ids:
            task = await self._require_task(task_id)
            if task.is_process_task:
                raise InvalidOperationError(
                    f"The task '{task.id}' cannot be deleted because is part of a running process"
                )
            if task.is_case_task:
                raise InvalidOperationError(
                    f"The task '{task.id}' cannot be deleted because is part of a running case instance"
                )
            await self._check(task, Permission.DELETE)
            tasks.append(task)

        for task in tasks:
            await self._remove(task)
            logger.info("Task deleted", task_id=task.id)

    # ============================================================
    # ENGINE INGRESS
    # ============================================================

    async def create_process_task(
        self,
        process_instance_id: str,
        process_definition_key: str,
        name: str | None = None,
        assignee: str | None = None,
        owner: str | None = None,
        candidate_users: list[str] | None = None,
        candidate_groups: list[str] | None = None,
        task_id: str | None = None,
    ) -> Task:
        """
        Create a task on behalf of a running process instance.

        The engine is trusted, so no permission is checked; the assignee,
        owner and candidates are provisioned.
        """
        task = Task(
            name=name,
            assignee=assignee,
            owner=owner,
            priority=DEFAULT_PRIORITY,
            process_instance_id=process_instance_id,
            process_definition_key=process_definition_key,
        )
        if task_id is not None:
            task.id = task_id
        return await self._create_engine_task(task, candidate_users, candidate_groups)

    async def create_case_task(
        self,
        case_instance_id: str,
        name: str | None = None,
        assignee: str | None = None,
        candidate_users: list[str] | None = None,
        candidate_groups: list[str] | None = None,
        task_id: str | None = None,
    ) -> Task:
        """Create a task of a case instance. Case tasks receive no grants."""
        task = Task(name=name, assignee=assignee, priority=DEFAULT_PRIORITY, case_instance_id=case_instance_id)
        if task_id is not None:
            task.id = task_id
        return await self._create_engine_task(task, candidate_users, candidate_groups)

    async def _create_engine_task(
        self,
        task: Task,
        candidate_users: list[str] | None,
        candidate_groups: list[str] | None,
    ) -> Task:
        validate_resource_id(task.id)
        validate_not_wildcard(task.assignee, "assignee")
        validate_not_wildcard(task.owner, "owner")

        await self.tasks.add(task)
        await self.provider.new_task(task)

        for user_id in candidate_users or []:
            await self.provider.new_task_user_identity_link(task, user_id, IdentityLinkType.CANDIDATE.value)
            self.db.add(IdentityLink(task_id=task.id, type=IdentityLinkType.CANDIDATE.value, user_id=user_id))
        for group_id in candidate_groups or []:
            await self.provider.new_task_group_identity_link(task, group_id, IdentityLinkType.CANDIDATE.value)
            self.db.add(IdentityLink(task_id=task.id, type=IdentityLinkType.CANDIDATE.value, group_id=group_id))
        await self.db.flush()

        logger.info(
            "Engine task created",
            task_id=task.id,
            process_instance_id=task.process_instance_id,
            case_instance_id=task.case_instance_id,
        )
        return task

    # ============================================================
    # HELPERS
    # ============================================================

    async def _require_task(self, task_id: str) -> Task:
        task = await self.tasks.get_by_id(task_id)
        if task is None:
            raise NotFoundError(f"Cannot find task with id {task_id}")
        return task

    async def _check_create(self) -> None:
        await self.guard.check(self.ctx, PermissionCheck(Permission.CREATE, Resource.TASK, ANY))

    async def _check(self, task: Task, *permissions: Permission) -> None:
        if task.is_case_task:
            return
        await self.guard.check(
            self.ctx,
            *(PermissionCheck(p, Resource.TASK, task.id) for p in permissions),
            owner=task,
        )

    async def _can_read(self, task: Task) -> bool:
        if task.is_case_task:
            return True
        return await self.guard.is_authorized(
            self.ctx,
            PermissionCheck(Permission.READ, Resource.TASK, task.id),
            owner=task,
        )

    async def _store_changes(self, task: Task, old_assignee: str | None, old_owner: str | None) -> Task:
        await self.db.flush()
        if task.assignee != old_assignee:
            await self.provider.new_task_assignee(task, old_assignee, task.assignee)
        if task.owner != old_owner:
            await self.provider.new_task_owner(task, old_owner, task.owner)
        logger.info("Task saved", task_id=task.id)
        return task

    async def _assign(self, task: Task, user_id: str | None) -> Task:
        validate_not_wildcard(user_id, "assignee")
        old_assignee = task.assignee
        task.assignee = user_id
        await self.db.flush()
        await self.provider.new_task_assignee(task, old_assignee, user_id)
        return task

    async def _remove(self, task: Task) -> None:
        """Delete a task, its links, variables and authorizations."""
        for sub_task in await self.tasks.sub_tasks(task.id):
            sub_task.parent_task_id = None
        await self.variables.delete_for_task(task.id)
        await self.links.delete_for_task(task.id)
        await self.tasks.delete(task)
        await self.provider.clear_authorizations(task.id)


def _previous_value(task: Task, field: str) -> Any:
    """The persisted value of a field before pending in-memory changes."""
    history = inspect(task).attrs[field].history
    if not history.has_changes():
        return getattr(task, field)
    # A change away from None records nothing as deleted.
    return history.deleted[0] if history.deleted else None
