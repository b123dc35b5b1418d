"""
Authorization record model.
"""

from enum import IntEnum

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from taskguard.core.auth.permissions import (
    ANY,
    Resource,
    permission_names,
)

from .base import Base, StringIdMixin, TimestampMixin


class AuthorizationType(IntEnum):
    """Record kinds. GLOBAL applies to every user and acts as a grant."""
    GLOBAL = 0
    GRANT = 1
    REVOKE = 2


class Authorization(Base, StringIdMixin, TimestampMixin):
    """
    A grant, revoke or global authorization for one resource (or ANY).

    Exactly one of user_id / group_id is set; GLOBAL records use user_id "*".
    """

    __tablename__ = "authorizations"
    __table_args__ = (
        UniqueConstraint("type", "resource_type", "resource_id", "user_id", name="uq_authorization_user"),
        UniqueConstraint("type", "resource_type", "resource_id", "group_id", name="uq_authorization_group"),
        Index("ix_authorizations_resource", "resource_type", "resource_id"),
    )

    type: Mapped[int] = mapped_column(Integer, nullable=False, default=AuthorizationType.GRANT)
    resource_type: Mapped[int] = mapped_column(Integer, nullable=False)
    resource_id: Mapped[str] = mapped_column(String(255), nullable=False, default=ANY)
    permissions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    group_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    @property
    def authorization_type(self) -> AuthorizationType:
        return AuthorizationType(self.type)

    @property
    def resource(self) -> Resource:
        return Resource.from_type_id(self.resource_type)

    @property
    def is_grant(self) -> bool:
        return self.type in (AuthorizationType.GRANT, AuthorizationType.GLOBAL)

    @property
    def is_revoke(self) -> bool:
        return self.type == AuthorizationType.REVOKE

    @property
    def permission_names(self) -> list[str]:
        return permission_names(self.permissions or 0, self.resource)

    def __repr__(self) -> str:
        owner = f"user={self.user_id}" if self.user_id else f"group={self.group_id}"
        return (
            f"<Authorization {self.authorization_type.name} {self.resource.resource_name}"
            f"/{self.resource_id} {owner} perms={self.permissions}>"
        )
