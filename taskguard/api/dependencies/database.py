"""
Database dependencies.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from taskguard.models.database import get_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session; commits on success, rolls back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
