"""
Tests for automatic grant provisioning.
"""

import pytest

from taskguard.core.auth.permissions import Permission, Resource
from taskguard.core.auth.provider import DefaultAuthorizationProvider
from taskguard.core.auth.registry import AuthRegistry
from taskguard.core.exceptions import InvalidPermissionError, ReservedIdentifierUsed
from taskguard.models.task import Task


@AuthRegistry.authorization_provider("test_with_delete")
class DeletingProvider(DefaultAuthorizationProvider):
    def extra_task_permissions(self) -> list[Permission]:
        return [Permission.DELETE]


@pytest.fixture
def provider(store) -> DefaultAuthorizationProvider:
    return DefaultAuthorizationProvider(store)


def make_task(task_id: str = "task-1", **kwargs) -> Task:
    return Task(id=task_id, **kwargs)


@pytest.mark.asyncio
async def test_new_assignee_receives_read_and_update(provider, auth):
    task = make_task()

    await provider.new_task_assignee(task, None, "demo")

    records = await auth.for_resource("task-1", "demo")
    assert len(records) == 1
    assert records[0].resource is Resource.TASK
    assert records[0].permission_names == ["READ", "UPDATE"]


@pytest.mark.asyncio
async def test_repeated_assignment_is_idempotent(provider, auth):
    task = make_task()

    await provider.new_task_assignee(task, None, "demo")
    await provider.new_task_assignee(task, "demo", "demo")

    assert len(await auth.for_resource("task-1")) == 1


@pytest.mark.asyncio
async def test_clearing_assignee_keeps_grant(provider, auth):
    task = make_task()
    await provider.new_task_assignee(task, None, "demo")

    await provider.new_task_assignee(task, "demo", None)

    assert len(await auth.for_resource("task-1", "demo")) == 1


@pytest.mark.asyncio
async def test_new_task_provisions_assignee_and_owner(provider, auth):
    task = make_task(assignee="demo", owner="john")

    await provider.new_task(task)

    owners = {r.user_id for r in await auth.for_resource("task-1")}
    assert owners == {"demo", "john"}


@pytest.mark.asyncio
async def test_same_assignee_and_owner_share_one_record(provider, auth):
    await provider.new_task(make_task(assignee="demo", owner="demo"))

    assert len(await auth.for_resource("task-1")) == 1


@pytest.mark.asyncio
async def test_task_work_as_default_permission(store, auth):
    provider = DefaultAuthorizationProvider(store, default_task_permission="TASK_WORK")

    await provider.new_task_owner(make_task(), None, "demo")

    records = await auth.for_resource("task-1", "demo")
    assert records[0].permission_names == ["READ", "TASK_WORK"]


def test_invalid_default_permission(store):
    with pytest.raises(InvalidPermissionError):
        DefaultAuthorizationProvider(store, default_task_permission="READ_INSTANCE")


@pytest.mark.asyncio
async def test_group_link_grants_group(provider, auth):
    await provider.new_task_group_identity_link(make_task(), "accounting", "candidate")

    records = await auth.for_resource("task-1")
    assert [(r.user_id, r.group_id) for r in records] == [(None, "accounting")]
    assert records[0].permission_names == ["READ", "UPDATE"]


@pytest.mark.asyncio
async def test_user_link_grants_user(provider, auth):
    await provider.new_task_user_identity_link(make_task(), "demo", "candidate")

    records = await auth.for_resource("task-1", "demo")
    assert records[0].permission_names == ["READ", "UPDATE"]


@pytest.mark.asyncio
async def test_case_tasks_are_not_provisioned(provider, auth):
    task = make_task(case_instance_id="case-1", assignee="demo")

    await provider.new_task(task)
    await provider.new_task_group_identity_link(task, "accounting", "candidate")
    # Not even validated.
    await provider.new_task_assignee(task, None, "*")

    assert await auth.for_resource("task-1") == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, role, action",
    [
        ("new_task_assignee", "assignee", "create"),
        ("new_task_owner", "owner", "create"),
    ],
)
async def test_wildcard_assignee_or_owner_rejected(provider, auth, method, role, action):
    with pytest.raises(ReservedIdentifierUsed) as exc_info:
        await getattr(provider, method)(make_task(), None, "*")

    assert exc_info.value.message == (
        f"Cannot {action} default authorization for {role} *: id cannot be *. * is a reserved identifier."
    )
    assert await auth.for_resource("task-1") == []


@pytest.mark.asyncio
async def test_wildcard_identity_links_rejected(provider, auth):
    with pytest.raises(ReservedIdentifierUsed) as user_error:
        await provider.new_task_user_identity_link(make_task(), "*", "candidate")
    with pytest.raises(ReservedIdentifierUsed) as group_error:
        await provider.new_task_group_identity_link(make_task(), "*", "candidate")

    assert user_error.value.message.startswith("Cannot grant default authorization for identity link to user *")
    assert group_error.value.message.startswith("Cannot grant default authorization for identity link to group *")
    assert await auth.for_resource("task-1") == []


@pytest.mark.asyncio
async def test_wildcard_task_id_rejected(provider, auth):
    task = make_task("*")

    with pytest.raises(ReservedIdentifierUsed) as exc_info:
        await provider.new_task_assignee(task, None, "demo")
    with pytest.raises(ReservedIdentifierUsed):
        await provider.new_task_group_identity_link(task, "accounting", "candidate")
    with pytest.raises(ReservedIdentifierUsed):
        await provider.clear_authorizations("*")

    assert exc_info.value.message == (
        "Cannot create default authorization for Task *: id cannot be *. * is a reserved identifier."
    )
    assert await auth.for_resource("*") == []


@pytest.mark.asyncio
async def test_deleting_links_revokes_nothing(provider, auth):
    task = make_task()
    await provider.new_task_user_identity_link(task, "demo", "candidate")
    await provider.new_task_group_identity_link(task, "accounting", "candidate")

    await provider.delete_task_user_identity_link(task, "demo", "candidate")
    await provider.delete_task_group_identity_link(task, "accounting", "candidate")

    assert len(await auth.for_resource("task-1")) == 2


@pytest.mark.asyncio
async def test_clear_authorizations_removes_every_record(provider, auth):
    task = make_task()
    await provider.new_task(make_task(assignee="demo", owner="john"))
    await provider.new_task_group_identity_link(task, "accounting", "candidate")
    await auth.grant(Resource.TASK, "task-2", Permission.READ, user_id="demo")

    deleted = await provider.clear_authorizations("task-1")

    assert deleted == 3
    assert await auth.for_resource("task-1") == []
    assert len(await auth.for_resource("task-2")) == 1


@pytest.mark.asyncio
async def test_registered_subclass_adds_permissions(store, auth):
    provider = AuthRegistry.get_authorization_provider("test_with_delete", store=store)

    await provider.new_task_assignee(make_task(), None, "demo")

    records = await auth.for_resource("task-1", "demo")
    assert records[0].permission_names == ["READ", "UPDATE", "DELETE"]


def test_default_provider_is_registered():
    assert AuthRegistry.has_authorization_provider("default")
    assert "default" in AuthRegistry.list_authorization_providers()


def test_unknown_provider(store):
    with pytest.raises(ValueError, match="Unknown authorization provider"):
        AuthRegistry.get_authorization_provider("missing", store=store)
