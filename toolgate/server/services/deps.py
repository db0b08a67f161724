"""
Runtime Dependency.

Provides the process-scoped ``ExecRuntime`` built in the application lifespan
to API endpoints. Tests override ``get_runtime`` through
``app.dependency_overrides``.

``caller_context`` turns a request's caller fields into an ``ExecutionContext``.
Access comes from the runtime's stored grants; permissions in the request body
can only narrow them.
"""

from typing import Annotated, Any

from fastapi import Depends, Request

from toolgate.core.config import settings
from toolgate.core.logging_config import get_logger
from toolgate.exec_core.factory import ExecRuntime
from toolgate.exec_core.runtime.context import ExecutionContext
from toolgate.server.schemas import CallerContext

logger = get_logger(__name__)


def get_runtime(request: Request) -> ExecRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise RuntimeError("Execution runtime is not initialized")
    return runtime


RuntimeDep = Annotated[ExecRuntime, Depends(get_runtime)]


async def caller_context(runtime: ExecRuntime, caller: CallerContext, **kwargs: Any) -> ExecutionContext:
    """
    Build the execution context for an API caller.

    Without a grant store, body permissions are ignored unless
    ``TOOLGATE_TRUST_CALLER_PERMISSIONS`` is set, so the caller holds no access.
    """
    permissions = caller.permissions
    if runtime.grants is None and not settings.trust_caller_permissions:
        if permissions:
            logger.warning(f"Ignoring caller-supplied permissions for org {caller.org_id}: no grant store configured")
        permissions = []
    return await runtime.context_for(caller.org_id, user_id=caller.user_id, permissions=permissions, **kwargs)
