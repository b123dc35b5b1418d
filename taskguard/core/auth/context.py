"""
Command context - the unit of work an operation runs in.

Replaces a process-wide "authorization on/off" switch with an explicit,
scoped flag carried alongside the session and the identity.

Usage:
    ctx = CommandContext(session=db, identity=Identity.of("demo", "accounting"))

    with ctx.without_authorization():
        await service.get_task(task_id)   # every check passes here
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy.ext.asyncio import AsyncSession

from taskguard.core.auth.interfaces import Identity


@dataclass
class CommandContext:
    """
    Attributes:
        session: Database session owning the transaction
        identity: Caller identity; None means trusted (administrative) mode
        authorization_enabled: False while a scoped bypass is active
    """
    session: AsyncSession
    identity: Identity | None = None
    authorization_enabled: bool = True

    @property
    def user_id(self) -> str | None:
        return self.identity.user_id if self.identity else None

    @property
    def checks_authorization(self) -> bool:
        return self.identity is not None and self.authorization_enabled

    @contextmanager
    def without_authorization(self) -> Iterator["CommandContext"]:
        """Disable checks for the enclosed block, restoring the prior state on exit."""
        previous = self.authorization_enabled
        self.authorization_enabled = False
        try:
            yield self
        finally:
            self.authorization_enabled = previous
