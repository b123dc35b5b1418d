"""
Identifier validation.

The ANY wildcard is reserved for authorization records; it can never name an
actual assignee, owner, candidate or task.
"""

from taskguard.core.auth.permissions import ANY
from taskguard.core.exceptions import ReservedIdentifierUsed


def validate_not_wildcard(identity_id: str | None, role: str, action: str = "create") -> None:
    """
    Raise ReservedIdentifierUsed if identity_id is the ANY wildcard.

    Args:
        identity_id: Id to validate (None is accepted)
        role: "assignee", "owner", "identity link to user", ...
        action: Verb used in the message ("create" or "grant")
    """
    if identity_id == ANY:
        raise ReservedIdentifierUsed(identity_id, role, action)


def validate_resource_id(resource_id: str | None, kind: str = "task", action: str = "create") -> None:
    """
    Raise ReservedIdentifierUsed if a concrete resource id is the ANY wildcard.

    A record bound to "*" covers every resource of its type, so a task can
    never be named "*", and cleanup of "*" would wipe every such record.
    """
    validate_not_wildcard(resource_id, kind, action)
