"""
Health checks.

The detailed endpoint reports the database round trip and the state of the
authorization store (record counts per type, open tasks). A failing probe
marks its component unhealthy instead of failing the endpoint.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import structlog
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskguard.models.authorization import Authorization, AuthorizationType
from taskguard.models.task import Task

logger = structlog.get_logger()

# Round trips slower than this report DEGRADED.
SLOW_QUERY_MS = 100


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "latency_ms": self.latency_ms,
            "message": self.message,
            **self.details,
        }


@dataclass
class SystemHealth:
    version: str
    environment: str
    components: list[ComponentHealth] = field(default_factory=list)

    @property
    def status(self) -> HealthStatus:
        """The worst status among the components."""
        statuses = {c.status for c in self.components}
        for status in (HealthStatus.UNHEALTHY, HealthStatus.DEGRADED):
            if status in statuses:
                return status
        return HealthStatus.HEALTHY

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "components": {c.name: c.to_dict() for c in self.components},
        }


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


async def check_database(db: AsyncSession) -> ComponentHealth:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        return ComponentHealth("database", HealthStatus.UNHEALTHY, message=str(e)[:100])

    latency = _elapsed_ms(start)
    if latency > SLOW_QUERY_MS:
        return ComponentHealth("database", HealthStatus.DEGRADED, latency, "Slow response")
    return ComponentHealth("database", HealthStatus.HEALTHY, latency, "Connected")


async def check_authorization_store(db: AsyncSession) -> ComponentHealth:
    """Count authorization records by type and the tasks they protect."""
    start = time.perf_counter()
    try:
        rows = await db.execute(
            select(Authorization.type, func.count()).group_by(Authorization.type)
        )
        records = {AuthorizationType(type_).name.lower(): count for type_, count in rows.all()}
        tasks = await db.scalar(select(func.count()).select_from(Task))
    except SQLAlchemyError as e:
        logger.error("Authorization store health check failed", error=str(e))
        return ComponentHealth("authorization_store", HealthStatus.UNHEALTHY, message=str(e)[:100])

    return ComponentHealth(
        "authorization_store",
        HealthStatus.HEALTHY,
        _elapsed_ms(start),
        details={"authorizations": records, "tasks": tasks or 0},
    )


async def system_health(db: AsyncSession, version: str, environment: str) -> SystemHealth:
    health = SystemHealth(version=version, environment=environment)
    health.components.append(await check_database(db))
    health.components.append(await check_authorization_store(db))
    return health
