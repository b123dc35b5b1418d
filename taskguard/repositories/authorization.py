"""
Authorization record store.

Reads and writes authorization records inside the caller's session. Saving a
record that collides with an existing one on
(type, resource type, resource id, user or group) merges the permission
bitmasks instead of inserting a duplicate, which keeps provisioning
idempotent.

Any database error is re-raised as InfrastructureFailure.
"""

from contextlib import contextmanager
from typing import Iterable, Iterator

import structlog
from sqlalchemy import Select, delete, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from taskguard.core.auth.permissions import ANY, Permission, Resource, permission_mask
from taskguard.core.auth.validators import validate_resource_id
from taskguard.core.exceptions import InfrastructureFailure
from taskguard.models.authorization import Authorization, AuthorizationType

from .base import BaseRepository

logger = structlog.get_logger()


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Authorization store failure", action=action, error=str(e))
        raise InfrastructureFailure(f"Authorization store failed to {action}") from e


class AuthorizationRepository(BaseRepository[Authorization]):
    """
    Usage:
        store = AuthorizationRepository(db)
        await store.grant(Resource.TASK, task.id, Permission.READ, user_id="demo")
        records = await store.find(Resource.TASK, [task.id, ANY], user_ids=["demo", ANY])
    """

    model = Authorization

    # ============================================================
    # WRITES
    # ============================================================

    async def save(self, record: Authorization) -> Authorization:
        """
        Insert a record, or merge it into the one it collides with.

        Returns the persistent record (which may not be the one passed in).
        """
        with _store_errors("save authorization"):
            existing = await self._find_colliding(record, lock=True)
            if existing is not None and existing is not record:
                existing.permissions = (existing.permissions or 0) | (record.permissions or 0)
                await self.db.flush()
                return existing

            try:
                async with self.db.begin_nested():
                    self.db.add(record)
                    await self.db.flush()
                return record
            except IntegrityError:
                # Lost an insert race; the winner's row is visible now.
                existing = await self._find_colliding(record, lock=True)
                if existing is None:
                    raise
                existing.permissions = (existing.permissions or 0) | (record.permissions or 0)
                await self.db.flush()
                return existing

    async def grant(
        self,
        resource: Resource,
        resource_id: str,
        *permissions: Permission,
        user_id: str | None = None,
        group_id: str | None = None,
    ) -> Authorization:
        """Create or extend a GRANT for a user or a group."""
        return await self.save(
            Authorization(
                type=AuthorizationType.GRANT,
                resource_type=resource.type_id,
                resource_id=resource_id,
                permissions=permission_mask(*permissions),
                user_id=user_id,
                group_id=group_id,
            )
        )

    async def delete(self, record: Authorization) -> None:
        with _store_errors("delete authorization"):
            await super().delete(record)

    async def delete_by_resource_id(self, resource_id: str) -> int:
        """
        Delete every record bound to resource_id, whatever its resource type.

        Raises:
            ReservedIdentifierUsed: resource_id is "*"
        """
        validate_resource_id(resource_id, "resource", action="delete")
        with _store_errors("delete authorizations"):
            result = await self.db.execute(
                select(Authorization.id).where(Authorization.resource_id == resource_id)
            )
            ids = list(result.scalars().all())
            if not ids:
                return 0
            await self.db.execute(
                delete(Authorization)
                .where(Authorization.id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
            return len(ids)

    # ============================================================
    # READS
    # ============================================================

    async def find(
        self,
        resource: Resource,
        resource_ids: Iterable[str],
        user_ids: Iterable[str] = (),
        group_ids: Iterable[str] = (),
    ) -> list[Authorization]:
        """Records on any of resource_ids that apply to any of the users or groups."""
        user_ids = list(user_ids)
        group_ids = list(group_ids)
        owners = []
        if user_ids:
            owners.append(Authorization.user_id.in_(user_ids))
        if group_ids:
            owners.append(Authorization.group_id.in_(group_ids))
        if not owners:
            return []

        stmt = (
            select(Authorization)
            .where(Authorization.resource_type == resource.type_id)
            .where(Authorization.resource_id.in_(list(resource_ids)))
            .where(or_(*owners))
        )
        with _store_errors("read authorizations"):
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

    async def find_single(self, **filters) -> Authorization | None:
        """
        The one record matching filters, or None.

        Raises:
            InfrastructureFailure: more than one record matches
        """
        stmt = self._base_query()
        for field, value in filters.items():
            column = getattr(Authorization, field)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        with _store_errors("read authorization"):
            result = await self.db.execute(stmt.limit(2))
            records = list(result.scalars().all())
        if len(records) > 1:
            raise InfrastructureFailure(f"Expected a single authorization for {filters}, found several")
        return records[0] if records else None

    async def query(
        self,
        user_id_in: list[str] | None = None,
        group_id_in: list[str] | None = None,
        resource_type: Resource | None = None,
        resource_id: str | None = None,
        type: AuthorizationType | None = None,
    ) -> list[Authorization]:
        """List records for administration; every filter is optional."""
        stmt = self._base_query()
        owners = []
        if user_id_in:
            owners.append(Authorization.user_id.in_(user_id_in))
        if group_id_in:
            owners.append(Authorization.group_id.in_(group_id_in))
        if owners:
            stmt = stmt.where(or_(*owners))
        if resource_type is not None:
            stmt = stmt.where(Authorization.resource_type == resource_type.type_id)
        if resource_id is not None:
            stmt = stmt.where(Authorization.resource_id == resource_id)
        if type is not None:
            stmt = stmt.where(Authorization.type == int(type))
        stmt = stmt.order_by(Authorization.created_at, Authorization.id)

        with _store_errors("query authorizations"):
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

    # ============================================================
    # HELPERS
    # ============================================================

    def _colliding_query(self, record: Authorization) -> Select:
        stmt = (
            select(Authorization)
            .where(Authorization.type == int(record.type))
            .where(Authorization.resource_type == record.resource_type)
            .where(Authorization.resource_id == (record.resource_id or ANY))
        )
        if record.user_id is not None:
            return stmt.where(Authorization.user_id == record.user_id)
        return stmt.where(Authorization.group_id == record.group_id)

    async def _find_colliding(self, record: Authorization, lock: bool = False) -> Authorization | None:
        stmt = self._colliding_query(record)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalars().first()
