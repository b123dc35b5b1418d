"""
Domain exceptions.

Every error raised by the authorization core derives from TaskGuardError so
callers (and the HTTP layer) can translate them in one place:

- AuthorizationDenied: caller lacks every acceptable permission path (403)
- ReservedIdentifierUsed: the "*" wildcard used as a concrete identity (400)
- InfrastructureFailure: the authorization store failed (500)
"""

from dataclasses import dataclass
from typing import Any


class TaskGuardError(Exception):
    """Base class for taskguard errors."""

    status_code: int = 400
    error: str = "taskguard_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


@dataclass(frozen=True)
class MissingAuthorization:
    """One permission path the caller would have needed."""

    permission_name: str
    resource_name: str
    resource_id: str | None = None

    def describe(self) -> str:
        if self.resource_id is None:
            return f"'{self.permission_name}' permission on resource '{self.resource_name}'"
        return (
            f"'{self.permission_name}' permission on resource "
            f"'{self.resource_id}' of type '{self.resource_name}'"
        )


class AuthorizationDenied(TaskGuardError):
    """
    The identity holds none of the permission paths an operation accepts.

    Carries every attempted path so the message can be shown to the user as is.
    """

    status_code = 403
    error = "authorization_denied"

    def __init__(self, user_id: str, missing: list[MissingAuthorization]):
        self.user_id = user_id
        self.missing_authorizations = list(missing)
        super().__init__(self._build_message(user_id, self.missing_authorizations))

    @staticmethod
    def _build_message(user_id: str, missing: list[MissingAuthorization]) -> str:
        if len(missing) == 1:
            return f"The user with id '{user_id}' does not have {missing[0].describe()}."
        alternatives = " or ".join(m.describe() for m in missing)
        return (
            f"The user with id '{user_id}' does not have one of the following "
            f"permissions: {alternatives}"
        )

    @property
    def permission_names(self) -> list[str]:
        return _unique(m.permission_name for m in self.missing_authorizations)

    @property
    def resource_names(self) -> list[str]:
        return _unique(m.resource_name for m in self.missing_authorizations)

    @property
    def resource_ids(self) -> list[str]:
        return _unique(m.resource_id for m in self.missing_authorizations if m.resource_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "user_id": self.user_id,
            "missing_authorizations": [
                {
                    "permission": m.permission_name,
                    "resource": m.resource_name,
                    "resource_id": m.resource_id,
                }
                for m in self.missing_authorizations
            ],
        }


class ReservedIdentifierUsed(TaskGuardError):
    """The reserved wildcard was supplied as an identity or as a concrete resource id."""

    error = "reserved_identifier"

    def __init__(self, identity_id: str, role: str, action: str = "create"):
        self.identity_id = identity_id
        self.role = role
        super().__init__(
            f"Cannot {action} default authorization for {role} {identity_id}: "
            f"id cannot be {identity_id}. {identity_id} is a reserved identifier."
        )

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "identity_id": self.identity_id, "role": self.role}


class InvalidPermissionError(TaskGuardError):
    error = "invalid_permission"


class NotFoundError(TaskGuardError):
    status_code = 404
    error = "not_found"


class TaskAlreadyClaimedError(TaskGuardError):
    status_code = 409
    error = "task_already_claimed"

    def __init__(self, task_id: str, assignee: str):
        self.task_id = task_id
        self.assignee = assignee
        super().__init__(f"Task '{task_id}' is already claimed by someone else.")


class InvalidOperationError(TaskGuardError):
    error = "invalid_operation"


class InfrastructureFailure(TaskGuardError):
    """The authorization store could not complete a read or write."""

    status_code = 500
    error = "infrastructure_failure"


def _unique(values) -> list:
    seen: list = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
