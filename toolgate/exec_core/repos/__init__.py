"""Persistence layer for metrics, executions, connections, org policies and permission grants.

- ``interfaces``: Protocols the planning and scheduling layers depend on.
- ``models``: SQLAlchemy ORM rows (``tg_*`` tables).
- ``sql``: async SQLAlchemy implementations and engine/session helpers.
"""

from .interfaces import (
    ConnectionRepository,
    MetricExecutionRepository,
    MetricRepository,
    OrgPolicyRepository,
    PermissionGrantRepository,
)
from .sql import (
    SqlConnectionRepository,
    SqlMetricExecutionRepository,
    SqlMetricRepository,
    SqlOrgPolicyRepository,
    SqlPermissionGrantRepository,
    SqlRepoBundle,
    build_sql_repos,
    create_all,
    create_engine,
    create_sessionmaker,
)

__all__ = [
    "ConnectionRepository",
    "MetricExecutionRepository",
    "MetricRepository",
    "OrgPolicyRepository",
    "PermissionGrantRepository",
    "SqlConnectionRepository",
    "SqlMetricExecutionRepository",
    "SqlMetricRepository",
    "SqlOrgPolicyRepository",
    "SqlPermissionGrantRepository",
    "SqlRepoBundle",
    "build_sql_repos",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
