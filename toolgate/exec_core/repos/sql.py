from __future__ import annotations

"""SQLAlchemy async repository implementations.

This module provides the SQL persistence implementation for the repository
interfaces defined in ``toolgate.exec_core.repos.interfaces``. Postgres
(asyncpg) is the production target; SQLite (aiosqlite) works for tests.

Usage
-----

- Create an async engine with ``create_engine``.
- Create tables with ``create_all`` (for tests/dev; production uses the
  alembic migrations).
- Create a session factory with ``create_sessionmaker``.
- Build repository instances with ``build_sql_repos``.

Transaction model
-----------------

Each repository method opens an ``AsyncSession``, performs its operation, and
commits. A status change is validated against the execution lifecycle inside
the same session that persists it.
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..policy.models import OrgPolicy, PolicyRule
from ..schemas.domain import AccessLevel, Permission
from ..schemas.metrics import (
    ExecutionPolicy,
    ExecutionPolicyMode,
    Metric,
    MetricDefinition,
    MetricExecution,
    MetricExecutionStatus,
    apply_transition,
)
from .interfaces import (
    ConnectionRepository,
    MetricExecutionRepository,
    MetricRepository,
    OrgPolicyRepository,
    PermissionGrantRepository,
)
from .models import (
    Base,
    IntegrationConnectionRow,
    MetricExecutionRow,
    MetricRow,
    OrgPolicyRow,
    PermissionGrantRow,
)


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Postgres URLs are normalized to the async driver: ``postgres://``,
    ``postgresql://`` and ``postgresql+psycopg2://`` all become
    ``postgresql+asyncpg://``.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    return create_async_engine(url, pool_pre_ping=True)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata (tests and local development)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo; values are always written in UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _metric_from_row(row: MetricRow) -> Metric:
    return Metric(
        id=row.id,
        org_id=row.org_id,
        name=row.name,
        description=row.description,
        integration_id=row.integration_id,
        capability_id=row.capability_id,
        resource=row.resource,
        definition=MetricDefinition.model_validate(row.definition or {}),
        version=row.version,
        execution_policy=ExecutionPolicy.model_validate(row.execution_policy or {}),
    )


def _execution_from_row(row: MetricExecutionRow) -> MetricExecution:
    return MetricExecution(
        id=row.id,
        metric_id=row.metric_id,
        status=MetricExecutionStatus(row.status),
        started_at=_as_utc(row.started_at),
        completed_at=_as_utc(row.completed_at),
        result=row.result,
        error=row.error,
        triggered_by=row.triggered_by,
    )


@dataclass(frozen=True)
class SqlMetricRepository(MetricRepository):
    """SQL implementation of ``MetricRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def get(self, metric_id: str) -> Optional[Metric]:
        async with self.session_factory() as s:
            row = await s.get(MetricRow, metric_id)
            if row is None:
                return None
            return _metric_from_row(row)

    async def save(self, metric: Metric) -> None:
        """
        Insert or replace a metric.

        Args:
            metric: The metric to persist; an existing row with the same id is overwritten.
        """
        now = _utc_now()
        async with self.session_factory() as s:
            row = await s.get(MetricRow, metric.id)
            if row is None:
                row = MetricRow(id=metric.id, created_at=now)
                s.add(row)
            row.org_id = metric.org_id
            row.name = metric.name
            row.description = metric.description
            row.integration_id = metric.integration_id
            row.capability_id = metric.capability_id
            row.resource = metric.resource
            row.definition = metric.definition.model_dump(mode="json")
            row.version = metric.version
            row.execution_mode = metric.execution_policy.mode.value
            row.execution_policy = metric.execution_policy.model_dump(mode="json")
            row.updated_at = now
            await s.commit()

    async def list_scheduled(self, org_id: Optional[str] = None) -> List[Metric]:
        async with self.session_factory() as s:
            stmt = select(MetricRow).where(MetricRow.execution_mode == ExecutionPolicyMode.scheduled.value)
            if org_id is not None:
                stmt = stmt.where(MetricRow.org_id == org_id)
            stmt = stmt.order_by(MetricRow.created_at.asc())
            result = await s.execute(stmt)
            return [_metric_from_row(r) for r in result.scalars().all()]


@dataclass(frozen=True)
class SqlMetricExecutionRepository(MetricExecutionRepository):
    """SQL implementation of ``MetricExecutionRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def create(self, metric_id: str, triggered_by: str) -> MetricExecution:
        execution = MetricExecution(metric_id=metric_id, triggered_by=triggered_by)
        async with self.session_factory() as s:
            s.add(
                MetricExecutionRow(
                    id=execution.id,
                    metric_id=execution.metric_id,
                    status=execution.status.value,
                    started_at=execution.started_at,
                    completed_at=None,
                    result=None,
                    error=None,
                    triggered_by=execution.triggered_by,
                )
            )
            await s.commit()
        return execution

    async def get(self, execution_id: str) -> Optional[MetricExecution]:
        async with self.session_factory() as s:
            row = await s.get(MetricExecutionRow, execution_id)
            if row is None:
                return None
            return _execution_from_row(row)

    async def update_status(
        self,
        execution_id: str,
        status: MetricExecutionStatus,
        *,
        result: Any = None,
        error: Optional[str] = None,
    ) -> Optional[MetricExecution]:
        async with self.session_factory() as s:
            row = await s.get(MetricExecutionRow, execution_id)
            if row is None:
                return None
            updated = apply_transition(_execution_from_row(row), status, result=result, error=error)
            row.status = updated.status.value
            row.completed_at = updated.completed_at
            row.result = updated.result
            row.error = updated.error
            await s.commit()
            return updated

    async def latest_completed(self, metric_id: str) -> Optional[MetricExecution]:
        async with self.session_factory() as s:
            stmt = (
                select(MetricExecutionRow)
                .where(
                    MetricExecutionRow.metric_id == metric_id,
                    MetricExecutionRow.status == MetricExecutionStatus.completed.value,
                )
                .order_by(MetricExecutionRow.completed_at.desc())
                .limit(1)
            )
            result = await s.execute(stmt)
            row = result.scalars().first()
            if row is None:
                return None
            return _execution_from_row(row)


@dataclass(frozen=True)
class SqlConnectionRepository(ConnectionRepository):
    """SQL implementation of ``ConnectionRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def list_connected_integrations(self, org_id: str) -> List[str]:
        async with self.session_factory() as s:
            stmt = select(IntegrationConnectionRow.integration_id).where(IntegrationConnectionRow.org_id == org_id)
            result = await s.execute(stmt)
            return [r for r in result.scalars().all() if isinstance(r, str)]

    async def upsert(self, org_id: str, integration_id: str, *, encrypted_credentials: Optional[str] = None) -> None:
        now = _utc_now()
        async with self.session_factory() as s:
            stmt = select(IntegrationConnectionRow).where(
                IntegrationConnectionRow.org_id == org_id,
                IntegrationConnectionRow.integration_id == integration_id,
            )
            result = await s.execute(stmt)
            row = result.scalars().first()
            if row is None:
                s.add(
                    IntegrationConnectionRow(
                        id=str(uuid.uuid4()),
                        org_id=org_id,
                        integration_id=integration_id,
                        encrypted_credentials=encrypted_credentials,
                        created_at=now,
                        updated_at=now,
                    )
                )
            else:
                row.encrypted_credentials = encrypted_credentials
                row.updated_at = now
            await s.commit()


@dataclass(frozen=True)
class SqlOrgPolicyRepository(OrgPolicyRepository):
    """SQL implementation of ``OrgPolicyRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def list_for_org(self, org_id: str) -> List[OrgPolicy]:
        async with self.session_factory() as s:
            stmt = select(OrgPolicyRow).where(OrgPolicyRow.org_id == org_id).order_by(OrgPolicyRow.created_at.asc())
            result = await s.execute(stmt)
            return [
                OrgPolicy(
                    id=r.id,
                    org_id=r.org_id,
                    name=r.name,
                    rules=[PolicyRule.model_validate(rule) for rule in (r.rules or [])],
                )
                for r in result.scalars().all()
            ]

    async def save(self, policy: OrgPolicy) -> None:
        if policy.org_id is None:
            raise ValueError("policy.org_id is required to persist a policy")
        now = _utc_now()
        async with self.session_factory() as s:
            row = await s.get(OrgPolicyRow, policy.id)
            if row is None:
                row = OrgPolicyRow(id=policy.id, created_at=now)
                s.add(row)
            row.org_id = policy.org_id
            row.name = policy.name
            row.rules = [rule.model_dump(mode="json") for rule in policy.rules]
            row.updated_at = now
            await s.commit()


@dataclass(frozen=True)
class SqlPermissionGrantRepository(PermissionGrantRepository):
    """SQL implementation of ``PermissionGrantRepository``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def list_for_subject(self, org_id: str, user_id: Optional[str] = None) -> List[Permission]:
        subject = PermissionGrantRow.user_id.is_(None)
        if user_id is not None:
            subject = or_(subject, PermissionGrantRow.user_id == user_id)
        async with self.session_factory() as s:
            stmt = (
                select(PermissionGrantRow)
                .where(PermissionGrantRow.org_id == org_id, subject)
                .order_by(PermissionGrantRow.created_at.asc())
            )
            result = await s.execute(stmt)
            return [
                Permission(integration=r.integration, capability=r.capability, access=AccessLevel(r.access))
                for r in result.scalars().all()
            ]

    async def grant(self, org_id: str, permission: Permission, *, user_id: Optional[str] = None) -> None:
        async with self.session_factory() as s:
            stmt = select(PermissionGrantRow).where(
                PermissionGrantRow.org_id == org_id,
                PermissionGrantRow.user_id.is_(None) if user_id is None else PermissionGrantRow.user_id == user_id,
                PermissionGrantRow.integration == permission.integration,
                PermissionGrantRow.capability == permission.capability,
                PermissionGrantRow.access == permission.access.value,
            )
            result = await s.execute(stmt)
            if result.scalars().first() is not None:
                return
            s.add(
                PermissionGrantRow(
                    id=str(uuid.uuid4()),
                    org_id=org_id,
                    user_id=user_id,
                    integration=permission.integration,
                    capability=permission.capability,
                    access=permission.access.value,
                    created_at=_utc_now(),
                )
            )
            await s.commit()


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience bundle of all SQL repositories for dependency injection."""

    metrics: SqlMetricRepository
    executions: SqlMetricExecutionRepository
    connections: SqlConnectionRepository
    policies: SqlOrgPolicyRepository
    grants: SqlPermissionGrantRepository


def build_sql_repos(*, session_factory: async_sessionmaker[AsyncSession]) -> SqlRepoBundle:
    """Build a ``SqlRepoBundle`` from a session factory."""
    return SqlRepoBundle(
        metrics=SqlMetricRepository(session_factory=session_factory),
        executions=SqlMetricExecutionRepository(session_factory=session_factory),
        connections=SqlConnectionRepository(session_factory=session_factory),
        policies=SqlOrgPolicyRepository(session_factory=session_factory),
        grants=SqlPermissionGrantRepository(session_factory=session_factory),
    )
