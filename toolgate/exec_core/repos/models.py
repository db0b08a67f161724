from __future__ import annotations

"""SQLAlchemy ORM models for execution core persistence.

These ORM models define the SQL schema used by the SQL repository
implementation in ``toolgate.exec_core.repos.sql``.

- Metrics store the versioned query definition and its execution policy.
- Metric executions record one run each and follow the
  pending/running/completed/failed lifecycle.
- Integration connections record which integrations an organization has
  connected (credentials are stored encrypted by the caller).
- Org policies store the rule list evaluated by the policy middleware.
- Permission grants store the access each org (or user) holds.

JSON columns use ``JSONB`` on Postgres and plain ``JSON`` elsewhere (SQLite in
tests). Table names are prefixed with ``tg_`` to avoid collisions in shared
databases.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class MetricRow(Base):
    """Row model for ``tg_metrics``.

    ``execution_mode`` is denormalized out of ``execution_policy`` so the
    scheduler can select scheduled metrics without parsing JSON.
    """

    __tablename__ = "tg_metrics"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(128), index=True)
    name: Mapped[str] = mapped_column(String(256))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    integration_id: Mapped[str] = mapped_column(String(64))
    capability_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    resource: Mapped[str] = mapped_column(String(128))
    definition: Mapped[Dict[str, Any]] = mapped_column(JsonType, default=dict)

    version: Mapped[int] = mapped_column(Integer, default=1)
    execution_mode: Mapped[str] = mapped_column(String(32), index=True)
    execution_policy: Mapped[Dict[str, Any]] = mapped_column(JsonType, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class MetricExecutionRow(Base):
    """Row model for ``tg_metric_executions``."""

    __tablename__ = "tg_metric_executions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    metric_id: Mapped[str] = mapped_column(String(64), index=True)
    status: Mapped[str] = mapped_column(String(32))

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    result: Mapped[Optional[Any]] = mapped_column(JsonType, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    triggered_by: Mapped[str] = mapped_column(String(64))


class IntegrationConnectionRow(Base):
    """Row model for ``tg_integration_connections``."""

    __tablename__ = "tg_integration_connections"
    __table_args__ = (UniqueConstraint("org_id", "integration_id", name="uq_tg_connection_org_integration"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(128), index=True)
    integration_id: Mapped[str] = mapped_column(String(64))
    encrypted_credentials: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class OrgPolicyRow(Base):
    """Row model for ``tg_org_policies``.

    ``rules`` holds the serialized ``PolicyRule`` list.
    """

    __tablename__ = "tg_org_policies"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(128), index=True)
    name: Mapped[str] = mapped_column(String(256))
    rules: Mapped[List[Dict[str, Any]]] = mapped_column(JsonType, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class PermissionGrantRow(Base):
    """Row model for ``tg_permission_grants``.

    A NULL ``user_id`` grants the permission to every caller of the org.
    """

    __tablename__ = "tg_permission_grants"
    __table_args__ = (
        UniqueConstraint("org_id", "user_id", "integration", "capability", "access", name="uq_tg_permission_grant"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    org_id: Mapped[str] = mapped_column(String(128), index=True)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    integration: Mapped[str] = mapped_column(String(64))
    capability: Mapped[str] = mapped_column(String(128))
    access: Mapped[str] = mapped_column(String(16))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
