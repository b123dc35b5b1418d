"""
Permission model - resources, permission flags and wildcards.

Permissions are bit flags. An authorization record stores a bitmask, so a
single record can grant (or revoke) several permissions at once:

    mask = permission_mask(Permission.READ, Permission.UPDATE)
    is_granted(mask, Permission.UPDATE)  # True

Each permission lists the resources it is valid for. ALL sets every bit and
therefore satisfies any specific permission.

When a check on a task is inconclusive, it may be retried against the
task's process definition under a different permission name (UPDATE on a
task becomes UPDATE_TASK on its definition). Those remappings live in
FALLBACKS.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from taskguard.core.exceptions import InvalidPermissionError


# Reserved identifier: "any resource id" / "any user" / "any group".
ANY = "*"


class Resource(Enum):
    """Protected resource types: (stable id, display name)."""

    AUTHORIZATION = (4, "Authorization")
    PROCESS_DEFINITION = (6, "ProcessDefinition")
    TASK = (7, "Task")
    PROCESS_INSTANCE = (8, "ProcessInstance")

    def __init__(self, type_id: int, resource_name: str):
        self.type_id = type_id
        self.resource_name = resource_name

    @classmethod
    def from_type_id(cls, type_id: int) -> "Resource":
        for resource in cls:
            if resource.type_id == type_id:
                return resource
        raise InvalidPermissionError(f"Unknown resource type: {type_id}")

    @classmethod
    def from_name(cls, name: str) -> "Resource":
        for resource in cls:
            if name in (resource.name, resource.resource_name):
                return resource
        raise InvalidPermissionError(f"Unknown resource: '{name}'")


_ALL_RESOURCES = frozenset(Resource)
_TASK = frozenset({Resource.TASK})
_DEFINITION = frozenset({Resource.PROCESS_DEFINITION})
_TASK_AND_DEFINITION = frozenset({Resource.TASK, Resource.PROCESS_DEFINITION})


class Permission(Enum):
    """Permission flags: (bit value, resources the flag applies to)."""

    NONE = (0, _ALL_RESOURCES)
    READ = (2, _ALL_RESOURCES)
    UPDATE = (4, _ALL_RESOURCES)
    CREATE = (8, _ALL_RESOURCES)
    DELETE = (16, _ALL_RESOURCES)
    READ_TASK = (64, _DEFINITION)
    UPDATE_TASK = (128, _DEFINITION)
    CREATE_INSTANCE = (256, _DEFINITION)
    READ_INSTANCE = (512, _DEFINITION)
    UPDATE_INSTANCE = (1024, _DEFINITION)
    DELETE_INSTANCE = (2048, _DEFINITION)
    TASK_WORK = (16384, _TASK_AND_DEFINITION)
    TASK_ASSIGN = (32768, _TASK_AND_DEFINITION)
    READ_VARIABLE = (65536, _TASK)
    UPDATE_VARIABLE = (131072, _TASK)
    READ_TASK_VARIABLE = (262144, _DEFINITION)
    UPDATE_TASK_VARIABLE = (524288, _DEFINITION)
    ALL = (0x7FFFFFFF, _ALL_RESOURCES)

    def __init__(self, bits: int, resources: frozenset):
        self.bits = bits
        self.resources = resources

    def applies_to(self, resource: Resource) -> bool:
        return resource in self.resources

    def granted_by(self, mask: int) -> bool:
        return is_granted(mask, self)

    @classmethod
    def for_name(cls, name: str, resource: Resource | None = None) -> "Permission":
        """
        Resolve a permission name, optionally validating it against a resource.

        Raises:
            InvalidPermissionError: unknown name, or not valid for the resource
        """
        try:
            permission = cls[name.upper()]
        except KeyError:
            raise InvalidPermissionError(f"Unknown permission: '{name}'") from None

        if resource is not None and not permission.applies_to(resource):
            raise InvalidPermissionError(
                f"The resource type '{resource.resource_name}' is not valid "
                f"for '{permission.name}' permission."
            )
        return permission


def permission_mask(*permissions: Permission) -> int:
    """OR permissions together into a bitmask."""
    mask = 0
    for permission in permissions:
        mask |= permission.bits
    return mask


def is_granted(mask: int, permission: Permission) -> bool:
    """True when every bit of the permission is present in the mask."""
    return mask & permission.bits == permission.bits


def is_revoked(mask: int, permission: Permission) -> bool:
    """True when any bit of the permission is present in a revoke mask."""
    return mask & permission.bits != 0


def permission_names(mask: int, resource: Resource | None = None) -> list[str]:
    """Expand a bitmask into the names of the flags it contains."""
    if mask == Permission.ALL.bits:
        return [Permission.ALL.name]

    names = []
    for permission in Permission:
        if permission in (Permission.NONE, Permission.ALL):
            continue
        if resource is not None and not permission.applies_to(resource):
            continue
        if is_granted(mask, permission):
            names.append(permission.name)
    return names


def parse_permissions(names: Iterable[str], resource: Resource) -> int:
    """Resolve permission names for a resource into a bitmask."""
    return permission_mask(*(Permission.for_name(name, resource) for name in names))


# ============================================================
# FALLBACK TABLE
# ============================================================

@dataclass(frozen=True)
class Fallback:
    """Where to look when a check on the source resource is inconclusive."""

    resource: Resource
    permission: Permission
    owner_attribute: str


FALLBACKS: dict[tuple[Resource, Permission], Fallback] = {
    (Resource.TASK, Permission.READ): Fallback(
        Resource.PROCESS_DEFINITION, Permission.READ_TASK, "process_definition_key"
    ),
    (Resource.TASK, Permission.UPDATE): Fallback(
        Resource.PROCESS_DEFINITION, Permission.UPDATE_TASK, "process_definition_key"
    ),
    (Resource.TASK, Permission.TASK_ASSIGN): Fallback(
        Resource.PROCESS_DEFINITION, Permission.TASK_ASSIGN, "process_definition_key"
    ),
    (Resource.TASK, Permission.TASK_WORK): Fallback(
        Resource.PROCESS_DEFINITION, Permission.TASK_WORK, "process_definition_key"
    ),
    (Resource.TASK, Permission.READ_VARIABLE): Fallback(
        Resource.PROCESS_DEFINITION, Permission.READ_TASK_VARIABLE, "process_definition_key"
    ),
    (Resource.TASK, Permission.UPDATE_VARIABLE): Fallback(
        Resource.PROCESS_DEFINITION, Permission.UPDATE_TASK_VARIABLE, "process_definition_key"
    ),
    (Resource.PROCESS_INSTANCE, Permission.READ): Fallback(
        Resource.PROCESS_DEFINITION, Permission.READ_INSTANCE, "process_definition_key"
    ),
    (Resource.PROCESS_INSTANCE, Permission.UPDATE): Fallback(
        Resource.PROCESS_DEFINITION, Permission.UPDATE_INSTANCE, "process_definition_key"
    ),
    (Resource.PROCESS_INSTANCE, Permission.DELETE): Fallback(
        Resource.PROCESS_DEFINITION, Permission.DELETE_INSTANCE, "process_definition_key"
    ),
    # DELETE on a task has no fallback.
}


def get_fallback(resource: Resource, permission: Permission) -> Fallback | None:
    return FALLBACKS.get((resource, permission))
