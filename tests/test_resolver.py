"""
Tests for effective-permission resolution.
"""

import pytest

from taskguard.core.auth.interfaces import Decision, Identity, PermissionCheck
from taskguard.core.auth.permissions import ANY, Permission, Resource
from taskguard.core.auth.resolver import AuthorizationResolver
from taskguard.models.task import Task

DEMO = Identity.of("demo", "accounting")


@pytest.fixture
def resolver(store) -> AuthorizationResolver:
    return AuthorizationResolver(store)


def process_task(task_id: str = "task-1", key: str = "invoice") -> Task:
    return Task(id=task_id, process_instance_id="pi-1", process_definition_key=key)


@pytest.mark.asyncio
async def test_no_identity_is_trusted(resolver):
    assert await resolver.is_authorized(None, Permission.DELETE, Resource.TASK, "task-1")


@pytest.mark.asyncio
async def test_default_deny(resolver):
    assert not await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, "task-1")


@pytest.mark.asyncio
async def test_user_grant(resolver, auth):
    await auth.grant(Resource.TASK, "task-1", Permission.READ, user_id="demo")

    assert await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, "task-1")
    assert not await resolver.is_authorized(DEMO, Permission.UPDATE, Resource.TASK, "task-1")
    assert not await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, "task-2")


@pytest.mark.asyncio
async def test_group_grant(resolver, auth):
    await auth.grant(Resource.TASK, "task-1", Permission.UPDATE, group_id="accounting")

    assert await resolver.is_authorized(DEMO, Permission.UPDATE, Resource.TASK, "task-1")
    assert not await resolver.is_authorized(Identity.of("john"), Permission.UPDATE, Resource.TASK, "task-1")


@pytest.mark.asyncio
async def test_grant_on_any_resource_covers_every_id(resolver, auth):
    await auth.grant(Resource.TASK, ANY, Permission.READ, user_id="demo")

    assert await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, "task-1")
    assert await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, ANY)


@pytest.mark.asyncio
async def test_grant_on_specific_id_does_not_cover_any(resolver, auth):
    await auth.grant(Resource.TASK, "task-1", Permission.CREATE, user_id="demo")

    assert not await resolver.is_authorized(DEMO, Permission.CREATE, Resource.TASK, ANY)


@pytest.mark.asyncio
async def test_grant_to_any_user(resolver, auth):
    await auth.grant(Resource.TASK, "task-1", Permission.READ, user_id=ANY)

    assert await resolver.is_authorized(Identity.of("john"), Permission.READ, Resource.TASK, "task-1")


@pytest.mark.asyncio
async def test_global_authorization_acts_as_grant(resolver, auth):
    await auth.global_grant(Resource.TASK, Permission.READ)

    assert await resolver.is_authorized(Identity.of("john"), Permission.READ, Resource.TASK, "task-9")


@pytest.mark.asyncio
async def test_all_satisfies_specific_permissions(resolver, auth):
    await auth.grant(Resource.TASK, "task-1", Permission.ALL, user_id="demo")

    assert await resolver.is_authorized(DEMO, Permission.TASK_ASSIGN, Resource.TASK, "task-1")
    assert await resolver.is_authorized(DEMO, Permission.DELETE, Resource.TASK, "task-1")


@pytest.mark.asyncio
async def test_revoke_on_any_beats_specific_grant(resolver, auth):
    await auth.grant(Resource.TASK, "task-1", Permission.READ, user_id="demo")
    await auth.revoke(Resource.TASK, ANY, Permission.READ, user_id="demo")

    assert not await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, "task-1")


@pytest.mark.asyncio
async def test_group_revoke_beats_user_grant(resolver, auth):
    await auth.grant(Resource.TASK, "task-1", Permission.UPDATE, user_id="demo")
    await auth.revoke(Resource.TASK, "task-1", Permission.UPDATE, group_id="accounting")

    assert await resolver.evaluate(
        DEMO, PermissionCheck(Permission.UPDATE, Resource.TASK, "task-1")
    ) is Decision.REVOKED


@pytest.mark.asyncio
async def test_fallback_to_process_definition(resolver, auth):
    task = process_task()
    await auth.grant(Resource.PROCESS_DEFINITION, "invoice", Permission.READ_TASK, user_id="demo")

    assert await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, task.id, owner=task)
    # No owner, or a check on every task: no fallback.
    assert not await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, task.id)
    assert not await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, ANY, owner=task)


@pytest.mark.asyncio
async def test_fallback_on_any_process_definition(resolver, auth):
    await auth.grant(Resource.PROCESS_DEFINITION, ANY, Permission.READ_TASK, user_id="demo")

    for task in (process_task("task-1", "invoice"), process_task("task-2", "order")):
        assert await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, task.id, owner=task)


@pytest.mark.asyncio
async def test_fallback_on_specific_process_definition(resolver, auth):
    await auth.grant(Resource.PROCESS_DEFINITION, "invoice", Permission.READ_TASK, user_id="demo")

    invoice_task = process_task("task-1", "invoice")
    order_task = process_task("task-2", "order")

    assert await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, invoice_task.id, owner=invoice_task)
    assert not await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, order_task.id, owner=order_task)


@pytest.mark.asyncio
async def test_revoked_task_permission_skips_fallback(resolver, auth):
    task = process_task()
    await auth.revoke(Resource.TASK, task.id, Permission.READ, user_id="demo")
    await auth.grant(Resource.PROCESS_DEFINITION, "invoice", Permission.READ_TASK, user_id="demo")

    assert not await resolver.is_authorized(DEMO, Permission.READ, Resource.TASK, task.id, owner=task)


@pytest.mark.asyncio
async def test_delete_never_falls_back(resolver, auth):
    task = process_task()
    await auth.grant(Resource.PROCESS_DEFINITION, "invoice", Permission.ALL, user_id="demo")

    assert not await resolver.is_authorized(DEMO, Permission.DELETE, Resource.TASK, task.id, owner=task)


@pytest.mark.asyncio
async def test_resolve_first_determined_check_wins(resolver, auth):
    await auth.revoke(Resource.TASK, "task-1", Permission.TASK_ASSIGN, user_id="demo")
    await auth.grant(Resource.TASK, "task-1", Permission.UPDATE, user_id="demo")

    assign = PermissionCheck(Permission.TASK_ASSIGN, Resource.TASK, "task-1")
    update = PermissionCheck(Permission.UPDATE, Resource.TASK, "task-1")

    denied = await resolver.resolve(DEMO, [assign, update])
    allowed = await resolver.resolve(DEMO, [update, assign])

    assert not denied.authorized
    assert denied.decided_by == assign
    assert denied.attempted == [assign]
    assert allowed.authorized
    assert allowed.decided_by == update


@pytest.mark.asyncio
async def test_resolve_undetermined_is_denied(resolver):
    checks = [
        PermissionCheck(Permission.TASK_ASSIGN, Resource.TASK, "task-1"),
        PermissionCheck(Permission.UPDATE, Resource.TASK, "task-1"),
    ]

    result = await resolver.resolve(DEMO, checks)

    assert not result.authorized
    assert result.decided_by is None
    assert result.attempted == checks


def test_expand_places_fallbacks_after_each_check():
    task = process_task()
    checks = [
        PermissionCheck(Permission.TASK_ASSIGN, Resource.TASK, task.id),
        PermissionCheck(Permission.DELETE, Resource.TASK, task.id),
        PermissionCheck(Permission.UPDATE, Resource.TASK, task.id),
    ]

    expanded = AuthorizationResolver.expand(checks, task)

    assert [(c.permission, c.resource, c.resource_id) for c in expanded] == [
        (Permission.TASK_ASSIGN, Resource.TASK, "task-1"),
        (Permission.TASK_ASSIGN, Resource.PROCESS_DEFINITION, "invoice"),
        (Permission.DELETE, Resource.TASK, "task-1"),
        (Permission.UPDATE, Resource.TASK, "task-1"),
        (Permission.UPDATE_TASK, Resource.PROCESS_DEFINITION, "invoice"),
    ]
