"""
Tests for the authorization guard and the command context.
"""

import pytest

from taskguard.core.auth.context import CommandContext
from taskguard.core.auth.guard import AuthorizationGuard
from taskguard.core.auth.interfaces import Identity, PermissionCheck
from taskguard.core.auth.permissions import ANY, Permission, Resource
from taskguard.core.auth.resolver import AuthorizationResolver
from taskguard.core.exceptions import AuthorizationDenied
from taskguard.models.task import Task


@pytest.fixture
def guard(store) -> AuthorizationGuard:
    return AuthorizationGuard(AuthorizationResolver(store))


@pytest.fixture
def ctx(db) -> CommandContext:
    return CommandContext(session=db, identity=Identity.of("demo"))


ASSIGN_CHECKS = (
    PermissionCheck(Permission.TASK_ASSIGN, Resource.TASK, "task-1"),
    PermissionCheck(Permission.UPDATE, Resource.TASK, "task-1"),
)


@pytest.mark.asyncio
async def test_trusted_context_passes(guard, db):
    trusted = CommandContext(session=db)

    await guard.check(trusted, PermissionCheck(Permission.DELETE, Resource.TASK, "task-1"))
    assert await guard.is_authorized(trusted, PermissionCheck(Permission.DELETE, Resource.TASK, "task-1"))


@pytest.mark.asyncio
async def test_disabled_guard_passes(store, ctx):
    guard = AuthorizationGuard(AuthorizationResolver(store), enabled=False)

    await guard.check(ctx, PermissionCheck(Permission.DELETE, Resource.TASK, "task-1"))


@pytest.mark.asyncio
async def test_granted_check_passes(guard, ctx, auth):
    await auth.grant(Resource.TASK, "task-1", Permission.UPDATE, user_id="demo")

    await guard.check(ctx, *ASSIGN_CHECKS)
    assert await guard.is_authorized(ctx, *ASSIGN_CHECKS)


@pytest.mark.asyncio
async def test_single_check_denied_message(guard, ctx):
    with pytest.raises(AuthorizationDenied) as exc_info:
        await guard.check(ctx, PermissionCheck(Permission.DELETE, Resource.TASK, "task-1"))

    error = exc_info.value
    assert error.message == (
        "The user with id 'demo' does not have 'DELETE' permission on resource 'task-1' of type 'Task'."
    )
    assert error.user_id == "demo"
    assert error.permission_names == ["DELETE"]
    assert error.resource_ids == ["task-1"]


@pytest.mark.asyncio
async def test_any_check_denied_message(guard, ctx):
    with pytest.raises(AuthorizationDenied) as exc_info:
        await guard.check(ctx, PermissionCheck(Permission.CREATE, Resource.TASK, ANY))

    assert exc_info.value.message == (
        "The user with id 'demo' does not have 'CREATE' permission on resource 'Task'."
    )
    assert exc_info.value.resource_ids == []


@pytest.mark.asyncio
async def test_denial_lists_every_path_with_fallbacks(guard, ctx):
    task = Task(id="task-1", process_instance_id="pi-1", process_definition_key="invoice")

    with pytest.raises(AuthorizationDenied) as exc_info:
        await guard.check(ctx, *ASSIGN_CHECKS, owner=task)

    error = exc_info.value
    assert error.message == (
        "The user with id 'demo' does not have one of the following permissions: "
        "'TASK_ASSIGN' permission on resource 'task-1' of type 'Task' or "
        "'TASK_ASSIGN' permission on resource 'invoice' of type 'ProcessDefinition' or "
        "'UPDATE' permission on resource 'task-1' of type 'Task' or "
        "'UPDATE_TASK' permission on resource 'invoice' of type 'ProcessDefinition'"
    )
    assert error.permission_names == ["TASK_ASSIGN", "UPDATE", "UPDATE_TASK"]
    assert error.resource_names == ["Task", "ProcessDefinition"]
    assert error.resource_ids == ["task-1", "invoice"]
    assert error.status_code == 403
    assert len(error.to_dict()["missing_authorizations"]) == 4


@pytest.mark.asyncio
async def test_earlier_revoke_denies_later_grant(guard, ctx, auth):
    await auth.revoke(Resource.TASK, "task-1", Permission.TASK_ASSIGN, user_id="demo")
    await auth.grant(Resource.TASK, "task-1", Permission.UPDATE, user_id="demo")

    with pytest.raises(AuthorizationDenied) as exc_info:
        await guard.check(ctx, *ASSIGN_CHECKS)

    assert exc_info.value.message == (
        "The user with id 'demo' does not have 'TASK_ASSIGN' permission on resource 'task-1' of type 'Task'."
    )
    assert exc_info.value.permission_names == ["TASK_ASSIGN"]
    assert not await guard.is_authorized(ctx, *ASSIGN_CHECKS)


@pytest.mark.asyncio
async def test_without_authorization_bypasses_and_restores(guard, ctx):
    check = PermissionCheck(Permission.DELETE, Resource.TASK, "task-1")

    with ctx.without_authorization():
        await guard.check(ctx, check)
        assert not ctx.checks_authorization

    assert ctx.checks_authorization
    with pytest.raises(AuthorizationDenied):
        await guard.check(ctx, check)


def test_without_authorization_restores_after_error():
    ctx = CommandContext(session=None, identity=Identity.of("demo"))

    with pytest.raises(RuntimeError):
        with ctx.without_authorization():
            raise RuntimeError("boom")

    assert ctx.authorization_enabled


def test_nested_bypass_keeps_outer_state():
    ctx = CommandContext(session=None, identity=Identity.of("demo"))

    with ctx.without_authorization():
        with ctx.without_authorization():
            pass
        assert not ctx.authorization_enabled
    assert ctx.authorization_enabled
