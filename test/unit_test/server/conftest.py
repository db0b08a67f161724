from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from toolgate.exec_core.factory import ExecRuntime, build_runtime
from toolgate.exec_core.schemas.domain import AccessLevel, Permission


@pytest_asyncio.fixture(name="runtime")
async def runtime_fixture(
    metric_repo, execution_repo, policy_repo, connection_repo, grant_repo, services, clock
) -> ExecRuntime:
    """Runtime backed by the in-memory repositories and fake integration services.

    ``org-1`` holds org-wide read and write grants on everything, so request
    bodies decide the effective access by narrowing them.
    """
    grant_repo.seed("org-1", Permission(access=AccessLevel.read), Permission(access=AccessLevel.write))
    return build_runtime(
        metrics=metric_repo,
        executions=execution_repo,
        connections=connection_repo,
        policies=policy_repo,
        grants=grant_repo,
        services=services,
        clock=clock,
    )


@pytest_asyncio.fixture(name="client")
async def client_fixture(runtime: ExecRuntime) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with the runtime dependency overridden.

    ASGITransport does not run the lifespan, so no database is touched.
    """
    from toolgate.server.main import app
    from toolgate.server.services.deps import get_runtime

    app.dependency_overrides[get_runtime] = lambda: runtime

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
