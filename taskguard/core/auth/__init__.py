"""
Authorization engine.

Modules:
- permissions: resources, permission flags, the ANY wildcard, fallbacks
- interfaces: Identity, PermissionCheck, Decision, provider contract
- context: CommandContext and the scoped authorization bypass
- validators: reserved identifier validation
- resolver: effective-permission resolution against the store
- guard: declared permission paths and denial errors
- provider / registry: auto-provisioning on identity-link changes

Only the dependency-free modules are re-exported here; import the resolver,
guard and provider from their modules.
"""

from .permissions import (
    ANY,
    FALLBACKS,
    Fallback,
    Permission,
    Resource,
    get_fallback,
    is_granted,
    is_revoked,
    permission_mask,
    permission_names,
)
from .interfaces import (
    Decision,
    Identity,
    PermissionCheck,
    ResolutionResult,
    ResourceAuthorizationProvider,
)
from .context import CommandContext
from .validators import validate_not_wildcard, validate_resource_id

__all__ = [
    # Permissions
    "ANY",
    "FALLBACKS",
    "Fallback",
    "Permission",
    "Resource",
    "get_fallback",
    "is_granted",
    "is_revoked",
    "permission_mask",
    "permission_names",
    # Interfaces
    "Decision",
    "Identity",
    "PermissionCheck",
    "ResolutionResult",
    "ResourceAuthorizationProvider",
    # Context
    "CommandContext",
    "validate_not_wildcard",
    "validate_resource_id",
]
