"""
Authorization interfaces - Core abstractions.

These define the contracts the guard, the resolver and the provisioning
providers agree on. Services depend on these types, never on a concrete
provider.

- Identity: who is acting (user id plus group memberships)
- PermissionCheck: one (permission, resource, resource id) path
- Decision / ResolutionResult: outcome of evaluating checks
- ResourceAuthorizationProvider: reacts to identity-link changes by
  provisioning authorization records
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from taskguard.core.auth.permissions import ANY, Permission, Resource


# ============================================================
# IDENTITY
# ============================================================

@dataclass(frozen=True)
class Identity:
    """
    The caller an operation runs for.

    Group memberships are resolved upstream and arrive with the identity.
    """
    user_id: str
    group_ids: tuple[str, ...] = ()

    @classmethod
    def of(cls, user_id: str, *group_ids: str) -> "Identity":
        return cls(user_id=user_id, group_ids=tuple(group_ids))


# ============================================================
# PERMISSION CHECK
# ============================================================

@dataclass(frozen=True)
class PermissionCheck:
    """
    A single permission path.

    Attributes:
        permission: Permission that must be held
        resource: Resource type the permission is checked on
        resource_id: Concrete id, or ANY for "every resource of this type"
    """
    permission: Permission
    resource: Resource
    resource_id: str = ANY

    @property
    def is_any(self) -> bool:
        return self.resource_id == ANY


class Decision(str, Enum):
    """Outcome of evaluating one PermissionCheck against stored records."""

    GRANTED = "granted"
    REVOKED = "revoked"
    UNDETERMINED = "undetermined"

    @property
    def is_determined(self) -> bool:
        return self is not Decision.UNDETERMINED


@dataclass
class ResolutionResult:
    """
    Result of resolving an ordered list of alternative checks.

    Attributes:
        authorized: Whether the caller may proceed
        attempted: Every check evaluated, in order
        decided_by: The check whose decision settled the outcome, if any
    """
    authorized: bool
    attempted: list[PermissionCheck] = field(default_factory=list)
    decided_by: PermissionCheck | None = None

    @classmethod
    def trusted(cls) -> "ResolutionResult":
        return cls(authorized=True)


# ============================================================
# AUTHORIZATION PROVIDER
# ============================================================

class ResourceAuthorizationProvider(ABC):
    """
    Provisions authorization records when identity links change.

    Implementations:
    - DefaultAuthorizationProvider: READ + default task permission (default)
    """

    @abstractmethod
    async def on_identity_link_changed(
        self,
        resource: Resource,
        resource_id: str,
        identity_kind: str,
        identity_id: str | None,
        added: bool,
        role: str = "user",
        eligible: bool = True,
        action: str = "create",
    ) -> None:
        """
        React to an identity being linked to (or unlinked from) a resource.

        Args:
            resource: Type of the resource the link belongs to
            resource_id: Id of the resource
            identity_kind: "user" or "group"
            identity_id: The linked identity (None/empty means cleared)
            added: True when the link was added, False when removed
            role: Role name used in validation messages
            eligible: False for resources excluded from provisioning
            action: Verb used in validation messages ("create" or "grant")
        """
        pass

    @abstractmethod
    async def new_task(self, task: Any) -> None:
        """A task was created."""
        pass

    @abstractmethod
    async def new_task_assignee(self, task: Any, old_assignee: str | None, new_assignee: str | None) -> None:
        pass

    @abstractmethod
    async def new_task_owner(self, task: Any, old_owner: str | None, new_owner: str | None) -> None:
        pass

    @abstractmethod
    async def new_task_user_identity_link(self, task: Any, user_id: str, link_type: str) -> None:
        pass

    @abstractmethod
    async def new_task_group_identity_link(self, task: Any, group_id: str, link_type: str) -> None:
        pass

    @abstractmethod
    async def delete_task_user_identity_link(self, task: Any, user_id: str, link_type: str) -> None:
        pass

    @abstractmethod
    async def delete_task_group_identity_link(self, task: Any, group_id: str, link_type: str) -> None:
        pass

    @abstractmethod
    async def clear_authorizations(self, resource_id: str) -> int:
        """Delete every record bound to a removed resource. Returns the count."""
        pass

