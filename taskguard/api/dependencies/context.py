"""
Identity and command context dependencies.

Authentication happens upstream; the verified user id and group ids arrive in
headers. A request without a user id runs in trusted mode.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskguard.core.auth.context import CommandContext
from taskguard.core.auth.interfaces import Identity
from taskguard.core.config import settings

from .database import get_db


async def get_identity(request: Request) -> Identity | None:
    """Identity from the configured headers, or None."""
    user_id = request.headers.get(settings.auth.identity_header)
    if not user_id:
        return None

    raw_groups = request.headers.get(settings.auth.groups_header, "")
    group_ids = tuple(g.strip() for g in raw_groups.split(",") if g.strip())
    return Identity(user_id=user_id, group_ids=group_ids)


async def get_command_context(
    db: AsyncSession = Depends(get_db),
    identity: Identity | None = Depends(get_identity),
) -> CommandContext:
    return CommandContext(session=db, identity=identity)
