"""
Database Connection and Runtime Wiring.

This module sets up the asynchronous SQLAlchemy engine and session factory
from settings, and builds the process-scoped ``ExecRuntime`` on top of the
SQL repositories.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from toolgate.core.config import Settings
from toolgate.exec_core.factory import ExecRuntime, build_runtime
from toolgate.exec_core.repos.sql import build_sql_repos, create_all, create_engine, create_sessionmaker


class Database:
    """Engine plus session factory built from ``Settings.database_url``."""

    def __init__(self, database_url: str) -> None:
        self.engine: AsyncEngine = create_engine(database_url)
        self.session_maker: async_sessionmaker[AsyncSession] = create_sessionmaker(self.engine)

    async def init_db(self) -> None:
        """
        Create all tables defined in the exec_core ORM metadata.

        NOTE: In production, Alembic migrations should be used instead of this function.
        """
        await create_all(self.engine)

    async def dispose(self) -> None:
        await self.engine.dispose()


def build_sql_runtime(database: Database, settings: Settings) -> ExecRuntime:
    """Build the runtime backed by the SQL repositories of ``database``."""
    repos = build_sql_repos(session_factory=database.session_maker)
    return build_runtime(
        metrics=repos.metrics,
        executions=repos.executions,
        connections=repos.connections,
        policies=repos.policies,
        grants=repos.grants,
        strict_replay=settings.strict_replay,
        default_ttl_seconds=settings.default_metric_ttl_seconds,
    )
