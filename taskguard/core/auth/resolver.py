"""
Effective-permission resolver.

Decides whether an identity holds a permission on a resource:

1. No identity means trusted mode: always authorized.
2. Collect records on the resource id (or ANY) for the user (or ANY) and the
   user's groups (or ANY).
3. OR the GRANT masks and the REVOKE masks separately. GLOBAL records count
   as grants.
4. A revoked bit wins over any grant, however specific the grant is.
5. If nothing decided the check and the permission has a fallback, retry on
   the owning resource (task -> process definition) under the remapped
   permission. Checks on ANY never fall back.

Every call reads the store; nothing is cached between operations.

Usage:
    resolver = AuthorizationResolver(AuthorizationRepository(db))
    allowed = await resolver.is_authorized(identity, Permission.READ, Resource.TASK, task.id, owner=task)
"""

from typing import Any, Sequence

from taskguard.core.auth.interfaces import Decision, Identity, PermissionCheck, ResolutionResult
from taskguard.core.auth.permissions import (
    ANY,
    Permission,
    Resource,
    get_fallback,
    is_granted,
    is_revoked,
)
from taskguard.repositories.authorization import AuthorizationRepository


class AuthorizationResolver:
    """Evaluates permission checks against the authorization store."""

    def __init__(self, store: AuthorizationRepository):
        self.store = store

    async def evaluate(self, identity: Identity, check: PermissionCheck) -> Decision:
        """Evaluate one check without fallback."""
        resource_ids = [ANY] if check.is_any else [check.resource_id, ANY]
        records = await self.store.find(
            check.resource,
            resource_ids,
            user_ids=[identity.user_id, ANY],
            group_ids=[*identity.group_ids, ANY],
        )

        granted = 0
        revoked = 0
        for record in records:
            if record.is_revoke:
                revoked |= record.permissions
            elif record.is_grant:
                granted |= record.permissions

        if is_revoked(revoked, check.permission):
            return Decision.REVOKED
        if is_granted(granted, check.permission):
            return Decision.GRANTED
        return Decision.UNDETERMINED

    async def is_authorized(
        self,
        identity: Identity | None,
        permission: Permission,
        resource: Resource,
        resource_id: str = ANY,
        owner: Any | None = None,
    ) -> bool:
        """
        Check one permission, following the fallback chain.

        Args:
            identity: Caller, or None for trusted mode
            permission: Required permission
            resource: Resource type
            resource_id: Concrete id or ANY
            owner: Object carrying the owning resource id (e.g. the task)
        """
        if identity is None:
            return True

        check = PermissionCheck(permission, resource, resource_id)
        decision = await self.evaluate(identity, check)
        if decision is Decision.GRANTED:
            return True
        if decision is Decision.REVOKED:
            return False

        fallback = self.fallback_for(check, owner)
        if fallback is None:
            return False
        return await self.is_authorized(
            identity,
            fallback.permission,
            fallback.resource,
            fallback.resource_id,
        )

    async def resolve(
        self,
        identity: Identity | None,
        checks: Sequence[PermissionCheck],
    ) -> ResolutionResult:
        """
        Resolve an ordered disjunction of checks.

        The first check that is granted or revoked settles the outcome; if
        none is determined, access is denied. Fallbacks are not added here;
        see expand().
        """
        if identity is None:
            return ResolutionResult.trusted()

        result = ResolutionResult(authorized=False)
        for check in checks:
            result.attempted.append(check)
            decision = await self.evaluate(identity, check)
            if decision.is_determined:
                result.authorized = decision is Decision.GRANTED
                result.decided_by = check
                return result
        return result

    # ============================================================
    # FALLBACK
    # ============================================================

    @staticmethod
    def fallback_for(check: PermissionCheck, owner: Any | None) -> PermissionCheck | None:
        """The check to retry on the owning resource, if there is one."""
        if check.is_any or owner is None:
            return None
        fallback = get_fallback(check.resource, check.permission)
        if fallback is None:
            return None
        owner_id = getattr(owner, fallback.owner_attribute, None)
        if not owner_id:
            return None
        return PermissionCheck(fallback.permission, fallback.resource, owner_id)

    @classmethod
    def expand(cls, checks: Sequence[PermissionCheck], owner: Any | None) -> list[PermissionCheck]:
        """Place each check's fallback directly after it."""
        expanded: list[PermissionCheck] = []
        for check in checks:
            expanded.append(check)
            fallback = cls.fallback_for(check, owner)
            if fallback is not None:
                expanded.append(fallback)
        return expanded
