"""
Task runtime models.

Only the projection the authorization layer needs is stored: identity fields,
ownership by a process or case instance, identity links and variables.
"""

from enum import Enum
from typing import Any

from sqlalchemy import JSON, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, StringIdMixin, TimestampMixin


class DelegationState(str, Enum):
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"


class IdentityLinkType(str, Enum):
    """Well-known link types. Any other string is a custom link type."""
    ASSIGNEE = "assignee"
    OWNER = "owner"
    CANDIDATE = "candidate"


DEFAULT_PRIORITY = 50


class Task(Base, StringIdMixin, TimestampMixin):
    """A human task, standalone or owned by a process or case instance."""

    __tablename__ = "tasks"

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    assignee: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    owner: Mapped[str | None] = mapped_column(String(255), nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=DEFAULT_PRIORITY, nullable=False)
    delegation_state: Mapped[str | None] = mapped_column(String(16), nullable=True)

    parent_task_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Ownership by the execution engine
    process_instance_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    process_definition_key: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    case_instance_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    @property
    def is_process_task(self) -> bool:
        return self.process_instance_id is not None

    @property
    def is_case_task(self) -> bool:
        return self.case_instance_id is not None

    @property
    def is_standalone(self) -> bool:
        return not self.is_process_task and not self.is_case_task

    def __repr__(self) -> str:
        return f"<Task {self.id} assignee={self.assignee}>"


class IdentityLink(Base, StringIdMixin):
    """A user or group linked to a task (candidate or custom type)."""

    __tablename__ = "task_identity_links"

    task_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False, default=IdentityLinkType.CANDIDATE.value)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    group_id: Mapped[str | None] = mapped_column(String(255), nullable=True)


class TaskVariable(Base, StringIdMixin, TimestampMixin):
    """A named value attached to a task."""

    __tablename__ = "task_variables"
    __table_args__ = (
        UniqueConstraint("task_id", "name", name="uq_task_variable_name"),
    )

    task_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[Any] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
