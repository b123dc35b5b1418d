"""
Task routes.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from taskguard.api.dependencies.services import get_task_service
from taskguard.schemas.task import (
    IdentityLinkRequest,
    IdentityLinkResponse,
    PriorityRequest,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
    UserRequest,
    VariableValue,
)
from taskguard.services.task import TaskService

router = APIRouter()


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    task_service: TaskService = Depends(get_task_service),
):
    """Create a standalone task."""
    task = await task_service.new_task(data.id)
    for field, value in data.model_dump(exclude={"id"}).items():
        setattr(task, field, value)
    task = await task_service.save_task(task)
    return TaskResponse.model_validate(task)


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    assignee: str | None = None,
    owner: str | None = None,
    candidate_user: str | None = None,
    candidate_group: str | None = None,
    process_instance_id: str | None = None,
    process_definition_key: str | None = None,
    unassigned: bool = Query(False),
    task_service: TaskService = Depends(get_task_service),
):
    """List tasks the caller may read."""
    tasks = await task_service.query_tasks(
        assignee=assignee,
        owner=owner,
        candidate_user=candidate_user,
        candidate_group=candidate_group,
        process_instance_id=process_instance_id,
        process_definition_key=process_definition_key,
        unassigned=unassigned,
    )
    return [TaskResponse.model_validate(t) for t in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str, task_service: TaskService = Depends(get_task_service)):
    task = await task_service.get_task(task_id)
    return TaskResponse.model_validate(task)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    task_service: TaskService = Depends(get_task_service),
):
    """Update task fields; omitted fields are left unchanged."""
    task = await task_service.update_task(task_id, **data.model_dump(exclude_unset=True))
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, task_service: TaskService = Depends(get_task_service)):
    await task_service.delete_task(task_id)


# ============================================================
# LIFECYCLE
# ============================================================

@router.post("/{task_id}/claim", response_model=TaskResponse)
async def claim_task(
    task_id: str,
    data: UserRequest,
    task_service: TaskService = Depends(get_task_service),
):
    task = await task_service.claim(task_id, data.user_id)
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/complete", status_code=status.HTTP_204_NO_CONTENT)
async def complete_task(task_id: str, task_service: TaskService = Depends(get_task_service)):
    await task_service.complete(task_id)


@router.post("/{task_id}/delegate", response_model=TaskResponse)
async def delegate_task(
    task_id: str,
    data: UserRequest,
    task_service: TaskService = Depends(get_task_service),
):
    if not data.user_id:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="user_id is required")
    task = await task_service.delegate(task_id, data.user_id)
    return TaskResponse.model_validate(task)


@router.post("/{task_id}/resolve", response_model=TaskResponse)
async def resolve_task(task_id: str, task_service: TaskService = Depends(get_task_service)):
    task = await task_service.resolve_task(task_id)
    return TaskResponse.model_validate(task)


@router.put("/{task_id}/assignee", response_model=TaskResponse)
async def set_assignee(
    task_id: str,
    data: UserRequest,
    task_service: TaskService = Depends(get_task_service),
):
    task = await task_service.set_assignee(task_id, data.user_id)
    return TaskResponse.model_validate(task)


@router.put("/{task_id}/owner", response_model=TaskResponse)
async def set_owner(
    task_id: str,
    data: UserRequest,
    task_service: TaskService = Depends(get_task_service),
):
    task = await task_service.set_owner(task_id, data.user_id)
    return TaskResponse.model_validate(task)


@router.put("/{task_id}/priority", response_model=TaskResponse)
async def set_priority(
    task_id: str,
    data: PriorityRequest,
    task_service: TaskService = Depends(get_task_service),
):
    task = await task_service.set_priority(task_id, data.priority)
    return TaskResponse.model_validate(task)


# ============================================================
# IDENTITY LINKS
# ============================================================

@router.get("/{task_id}/identity-links", response_model=list[IdentityLinkResponse])
async def get_identity_links(task_id: str, task_service: TaskService = Depends(get_task_service)):
    links = await task_service.get_identity_links(task_id)
    return [IdentityLinkResponse.model_validate(link) for link in links]


@router.post("/{task_id}/identity-links", status_code=status.HTTP_204_NO_CONTENT)
async def add_identity_link(
    task_id: str,
    data: IdentityLinkRequest,
    task_service: TaskService = Depends(get_task_service),
):
    _require_single_identity(data)
    if data.user_id is not None:
        await task_service.add_user_identity_link(task_id, data.user_id, data.type)
    else:
        await task_service.add_group_identity_link(task_id, data.group_id, data.type)


@router.delete("/{task_id}/identity-links", status_code=status.HTTP_204_NO_CONTENT)
async def delete_identity_link(
    task_id: str,
    type: str = "candidate",
    user_id: str | None = None,
    group_id: str | None = None,
    task_service: TaskService = Depends(get_task_service),
):
    data = IdentityLinkRequest(type=type, user_id=user_id, group_id=group_id)
    _require_single_identity(data)
    if data.user_id is not None:
        await task_service.delete_user_identity_link(task_id, data.user_id, data.type)
    else:
        await task_service.delete_group_identity_link(task_id, data.group_id, data.type)


def _require_single_identity(data: IdentityLinkRequest) -> None:
    if (data.user_id is None) == (data.group_id is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Exactly one of user_id or group_id is required",
        )


# ============================================================
# SUB TASKS & VARIABLES
# ============================================================

@router.get("/{task_id}/subtasks", response_model=list[TaskResponse])
async def get_sub_tasks(task_id: str, task_service: TaskService = Depends(get_task_service)):
    tasks = await task_service.get_sub_tasks(task_id)
    return [TaskResponse.model_validate(t) for t in tasks]


@router.get("/{task_id}/variables")
async def get_variables(
    task_id: str,
    task_service: TaskService = Depends(get_task_service),
) -> dict[str, Any]:
    return await task_service.get_variables(task_id)


@router.put("/{task_id}/variables", status_code=status.HTTP_204_NO_CONTENT)
async def set_variables(
    task_id: str,
    data: dict[str, Any],
    task_service: TaskService = Depends(get_task_service),
):
    await task_service.set_variables(task_id, data)


@router.get("/{task_id}/variables/{name}", response_model=VariableValue)
async def get_variable(task_id: str, name: str, task_service: TaskService = Depends(get_task_service)):
    variables = await task_service.get_variables(task_id, [name])
    if name not in variables:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Variable '{name}' not found")
    return VariableValue(value=variables[name])


@router.put("/{task_id}/variables/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def set_variable(
    task_id: str,
    name: str,
    data: VariableValue,
    task_service: TaskService = Depends(get_task_service),
):
    await task_service.set_variable(task_id, name, data.value)


@router.delete("/{task_id}/variables/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_variable(task_id: str, name: str, task_service: TaskService = Depends(get_task_service)):
    await task_service.remove_variable(task_id, name)
