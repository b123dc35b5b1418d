"""
Pytest fixtures for testing.

Provides:
- Async database session with rollback
- Task services acting as a given user, or trusted
- Helpers for granting and revoking authorizations
- Test client with the database override
"""

from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from taskguard.api.dependencies.database import get_db
from taskguard.core.auth.context import CommandContext
from taskguard.core.auth.interfaces import Identity
from taskguard.core.auth.permissions import ANY, Permission, Resource, permission_mask
from taskguard.main import app
from taskguard.models.authorization import Authorization, AuthorizationType
from taskguard.models.base import Base
from taskguard.repositories.authorization import AuthorizationRepository
from taskguard.services.task import TaskService


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs behave like on a real server.
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session with automatic rollback.

    Each test gets a fresh transaction that's rolled back after.
    """
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with database session override.
    """

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ============ Service Fixtures ============


@pytest.fixture
def store(db: AsyncSession) -> AuthorizationRepository:
    return AuthorizationRepository(db)


@pytest.fixture
def trusted(db: AsyncSession) -> TaskService:
    """Task service without an identity: every check passes."""
    return TaskService(CommandContext(session=db))


@pytest.fixture
def as_user(db: AsyncSession) -> Callable[..., TaskService]:
    """
    Build a task service acting as a user.

    Usage:
        service = as_user("demo", "accounting")
    """

    def factory(user_id: str, *group_ids: str, **kwargs) -> TaskService:
        ctx = CommandContext(session=db, identity=Identity.of(user_id, *group_ids))
        return TaskService(ctx, **kwargs)

    return factory


# ============ Authorization Helpers ============


class AuthorizationHelper:
    """Creates grant and revoke records directly in the store."""

    def __init__(self, store: AuthorizationRepository):
        self.store = store

    async def grant(
        self,
        resource: Resource,
        resource_id: str,
        *permissions: Permission,
        user_id: str | None = None,
        group_id: str | None = None,
    ) -> Authorization:
        return await self.store.grant(
            resource, resource_id, *permissions, user_id=user_id, group_id=group_id
        )

    async def revoke(
        self,
        resource: Resource,
        resource_id: str,
        *permissions: Permission,
        user_id: str | None = None,
        group_id: str | None = None,
    ) -> Authorization:
        return await self.store.save(
            Authorization(
                type=AuthorizationType.REVOKE,
                resource_type=resource.type_id,
                resource_id=resource_id,
                permissions=permission_mask(*permissions),
                user_id=user_id,
                group_id=group_id,
            )
        )

    async def global_grant(self, resource: Resource, *permissions: Permission) -> Authorization:
        return await self.store.save(
            Authorization(
                type=AuthorizationType.GLOBAL,
                resource_type=resource.type_id,
                resource_id=ANY,
                permissions=permission_mask(*permissions),
                user_id=ANY,
            )
        )

    async def for_resource(self, resource_id: str, user_id: str | None = None) -> list[Authorization]:
        return await self.store.query(
            resource_id=resource_id,
            user_id_in=[user_id] if user_id else None,
        )


@pytest.fixture
def auth(store: AuthorizationRepository) -> AuthorizationHelper:
    return AuthorizationHelper(store)
