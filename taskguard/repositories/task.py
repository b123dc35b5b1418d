"""
Task, identity link and variable repositories.
"""

from sqlalchemy import delete, select

from taskguard.models.task import IdentityLink, IdentityLinkType, Task, TaskVariable

from .base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    model = Task

    async def search(
        self,
        assignee: str | None = None,
        owner: str | None = None,
        candidate_user: str | None = None,
        candidate_group: str | None = None,
        process_instance_id: str | None = None,
        process_definition_key: str | None = None,
        case_instance_id: str | None = None,
        unassigned: bool = False,
    ) -> list[Task]:
        """Tasks matching every given filter, oldest first."""
        stmt = self._base_query()
        if assignee is not None:
            stmt = stmt.where(Task.assignee == assignee)
        if owner is not None:
            stmt = stmt.where(Task.owner == owner)
        if unassigned:
            stmt = stmt.where(Task.assignee.is_(None))
        if process_instance_id is not None:
            stmt = stmt.where(Task.process_instance_id == process_instance_id)
        if process_definition_key is not None:
            stmt = stmt.where(Task.process_definition_key == process_definition_key)
        if case_instance_id is not None:
            stmt = stmt.where(Task.case_instance_id == case_instance_id)
        if candidate_user is not None or candidate_group is not None:
            links = select(IdentityLink.task_id).where(IdentityLink.type == IdentityLinkType.CANDIDATE.value)
            if candidate_user is not None:
                links = links.where(IdentityLink.user_id == candidate_user)
            if candidate_group is not None:
                links = links.where(IdentityLink.group_id == candidate_group)
            stmt = stmt.where(Task.id.in_(links))

        stmt = stmt.order_by(Task.created_at, Task.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def sub_tasks(self, parent_task_id: str) -> list[Task]:
        stmt = self._base_query().where(Task.parent_task_id == parent_task_id).order_by(Task.created_at, Task.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class IdentityLinkRepository(BaseRepository[IdentityLink]):
    model = IdentityLink

    async def for_task(self, task_id: str) -> list[IdentityLink]:
        stmt = self._base_query().where(IdentityLink.task_id == task_id).order_by(IdentityLink.type)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_link(
        self,
        task_id: str,
        link_type: str,
        user_id: str | None = None,
        group_id: str | None = None,
    ) -> IdentityLink | None:
        stmt = (
            self._base_query()
            .where(IdentityLink.task_id == task_id)
            .where(IdentityLink.type == link_type)
        )
        if user_id is not None:
            stmt = stmt.where(IdentityLink.user_id == user_id)
        else:
            stmt = stmt.where(IdentityLink.group_id == group_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def delete_for_task(self, task_id: str) -> None:
        await self.db.execute(
            delete(IdentityLink)
            .where(IdentityLink.task_id == task_id)
            .execution_options(synchronize_session="fetch")
        )


class TaskVariableRepository(BaseRepository[TaskVariable]):
    model = TaskVariable

    async def for_task(self, task_id: str, names: list[str] | None = None) -> list[TaskVariable]:
        stmt = self._base_query().where(TaskVariable.task_id == task_id)
        if names:
            stmt = stmt.where(TaskVariable.name.in_(names))
        result = await self.db.execute(stmt.order_by(TaskVariable.name))
        return list(result.scalars().all())

    async def delete_for_task(self, task_id: str, names: list[str] | None = None) -> int:
        """Delete a task's variables, or only the named ones. Returns how many went."""
        ids = [v.id for v in await self.for_task(task_id, names)]
        if not ids:
            return 0
        await self.db.execute(
            delete(TaskVariable)
            .where(TaskVariable.id.in_(ids))
            .execution_options(synchronize_session="fetch")
        )
        return len(ids)
