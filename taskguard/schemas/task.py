"""
Task schemas.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TaskCreate(BaseModel):
    """Standalone task creation schema."""
    id: str | None = Field(None, min_length=1, max_length=64)
    name: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=4000)
    assignee: str | None = None
    owner: str | None = None
    priority: int = 50
    parent_task_id: str | None = None


class TaskUpdate(BaseModel):
    """Task update schema. Only fields that are sent are changed."""
    name: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=4000)
    assignee: str | None = None
    owner: str | None = None
    priority: int | None = None
    parent_task_id: str | None = None


class TaskResponse(BaseModel):
    """Task response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str | None = None
    description: str | None = None
    assignee: str | None = None
    owner: str | None = None
    priority: int
    delegation_state: str | None = None
    parent_task_id: str | None = None
    process_instance_id: str | None = None
    process_definition_key: str | None = None
    case_instance_id: str | None = None
    created_at: datetime


class UserRequest(BaseModel):
    """Body for claim, delegate, assignee and owner changes."""
    user_id: str | None = None


class PriorityRequest(BaseModel):
    priority: int


class IdentityLinkRequest(BaseModel):
    """Identity link to add or remove; exactly one of user_id / group_id."""
    type: str = "candidate"
    user_id: str | None = None
    group_id: str | None = None


class IdentityLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    task_id: str
    type: str
    user_id: str | None = None
    group_id: str | None = None


class VariableValue(BaseModel):
    value: Any = None
