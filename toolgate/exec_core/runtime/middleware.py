from __future__ import annotations

"""Middleware pipeline for capability execution.

A middleware has the shape ``(capability, params, context, next) -> result``.
``compose`` folds an ordered list of middleware around a terminal handler
(right to left, like ``reduceRight``) so that the first middleware listed is
the outermost one. The fold is pure: it only builds closures and can be reused
for any pipeline.

The standard pipeline, outermost first:

1. determinism (record/replay),
2. permission enforcement,
3. policy enforcement,
4. the capability's own executor.

Permission and policy checks short-circuit by raising; nothing downstream of
a failed check runs.
"""

import logging
from functools import partial, reduce
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence

from ..errors import LegacyCapabilityError, PermissionDeniedError, PolicyViolationError
from ..policy.engine import PolicyEngine
from ..policy.models import PolicyContext
from ..policy.permissions import check_permission, required_access
from .context import ExecutionContext

if TYPE_CHECKING:
    from ..capabilities.base import CapabilityDefinition

logger = logging.getLogger(__name__)

Next = Callable[[], Awaitable[Any]]
Middleware = Callable[["CapabilityDefinition", Dict[str, Any], ExecutionContext, Next], Awaitable[Any]]
Handler = Callable[["CapabilityDefinition", Dict[str, Any], ExecutionContext], Awaitable[Any]]


def _wrap(inner: Handler, middleware: Middleware) -> Handler:
    async def handler(capability: CapabilityDefinition, params: Dict[str, Any], context: ExecutionContext) -> Any:
        return await middleware(capability, params, context, lambda: inner(capability, params, context))

    return handler


def compose(middleware: Sequence[Middleware], terminal: Handler) -> Handler:
    """Fold ``middleware`` around ``terminal``; ``middleware[0]`` ends up outermost."""
    return reduce(_wrap, reversed(list(middleware)), terminal)


async def run_executor(capability: CapabilityDefinition, params: Dict[str, Any], context: ExecutionContext) -> Any:
    """Terminal handler: invoke the capability's own executor."""
    if capability.executor is None:
        raise LegacyCapabilityError(capability.id)
    return await capability.executor(params, context)


async def enforce_permissions(
    capability: CapabilityDefinition,
    params: Dict[str, Any],
    context: ExecutionContext,
    next: Next,
) -> Any:
    """Require ``read`` access for read capabilities and ``write`` access for everything else."""
    access = required_access(capability.mode)
    if not check_permission(context.permissions, capability.integration_id, capability.id, access):
        logger.warning(
            f"Permission denied: org={context.org_id} user={context.user_id} "
            f"capability={capability.id} access={access.value}"
        )
        raise PermissionDeniedError(capability.integration_id, capability.id, access=access.value)
    return await next()


async def enforce_policies(
    capability: CapabilityDefinition,
    params: Dict[str, Any],
    context: ExecutionContext,
    next: Next,
    *,
    engine: Optional[PolicyEngine] = None,
) -> Any:
    """Evaluate the organization's policies against the attempted call."""
    engine = engine or PolicyEngine()
    result = engine.evaluate(
        context.policies,
        PolicyContext(
            integration_id=capability.integration_id,
            capability_id=capability.id,
            action_type=required_access(capability.mode).value,
            frequency=context.frequency,
        ),
    )
    if not result.allowed:
        logger.warning(f"Policy violation for {capability.id}: {result.reason}")
        raise PolicyViolationError(
            result.reason,
            integration_id=capability.integration_id,
            capability_id=capability.id,
        )
    return await next()


def build_standard_middleware(
    determinism: Middleware,
    *,
    policy_engine: Optional[PolicyEngine] = None,
) -> List[Middleware]:
    """Return the standard ordered middleware list: determinism, permissions, policies."""
    return [
        determinism,
        enforce_permissions,
        partial(enforce_policies, engine=policy_engine or PolicyEngine()),
    ]
