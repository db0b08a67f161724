from __future__ import annotations

"""Convenience factories for wiring the execution core.

The registry, trace store and policy engine are process-scoped state. They are
built once here (normally at application startup) and injected everywhere
else; nothing in the core relies on module-level singletons.

``build_runtime`` returns an ``ExecRuntime`` bundling every component the HTTP
layer and the scheduler loop need. Tests build their own runtime with
in-memory repositories.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .capabilities.builtin import register_builtin_capabilities
from .capabilities.registry import CapabilityRegistry
from .planning.compiler import Clock, PlanCompiler
from .planning.executor import SpecExecutor
from .planning.validation import SpecSchemaValidator
from .policy.engine import PolicyEngine
from .policy.permissions import narrow_permissions
from .providers import AlertEvaluator, IntegrationServices, SchemaDiscovery, SchemaSink
from .replay.recorder import DeterminismRecorder
from .replay.trace_store import TraceStore
from .repos.interfaces import (
    ConnectionRepository,
    MetricExecutionRepository,
    MetricRepository,
    OrgPolicyRepository,
    PermissionGrantRepository,
)
from .runtime.context import ExecutionContext
from .runtime.middleware import build_standard_middleware
from .schemas.domain import AccessLevel, Permission, ReplayMode
from .schemas.metrics import Metric
from .scheduling.scheduler import MetricScheduler

logger = logging.getLogger(__name__)


def build_default_registry(
    *,
    recorder: Optional[DeterminismRecorder] = None,
    policy_engine: Optional[PolicyEngine] = None,
) -> CapabilityRegistry:
    """Build a ``CapabilityRegistry`` with the standard middleware and the built-in catalog."""
    recorder = recorder or DeterminismRecorder(TraceStore())
    registry = CapabilityRegistry(build_standard_middleware(recorder, policy_engine=policy_engine))
    return register_builtin_capabilities(registry)


@dataclass(frozen=True)
class ExecRuntime:
    """Process-scoped bundle of execution core components."""

    registry: CapabilityRegistry
    trace_store: TraceStore
    recorder: DeterminismRecorder
    policy_engine: PolicyEngine
    compiler: PlanCompiler
    executor: SpecExecutor
    scheduler: MetricScheduler
    metrics: MetricRepository
    executions: MetricExecutionRepository
    connections: Optional[ConnectionRepository] = None
    policies: Optional[OrgPolicyRepository] = None
    grants: Optional[PermissionGrantRepository] = None
    services: IntegrationServices = field(default_factory=IntegrationServices)

    async def context_for(
        self,
        org_id: str,
        *,
        user_id: Optional[str] = None,
        permissions: Optional[List[Permission]] = None,
        replay_mode: ReplayMode = ReplayMode.none,
        trace_id: Optional[str] = None,
    ) -> ExecutionContext:
        """
        Build an ``ExecutionContext`` carrying the organization's stored policies.

        With a grant repository configured, the context's permissions come from
        the stored grants of ``org_id``/``user_id``. ``permissions`` then only
        narrows them: requested entries no stored grant covers are dropped.
        Without one, ``permissions`` is taken as given (in-process callers).
        """
        policies = await self.policies.list_for_org(org_id) if self.policies is not None else []
        if self.grants is not None:
            stored = await self.grants.list_for_subject(org_id, user_id)
            if permissions is None:
                permissions = stored
            else:
                narrowed = narrow_permissions(stored, permissions)
                if len(narrowed) != len(permissions):
                    logger.warning(
                        f"Dropped {len(permissions) - len(narrowed)} requested permission(s) not granted to "
                        f"org={org_id} user={user_id}"
                    )
                permissions = narrowed
        return ExecutionContext(
            org_id=org_id,
            user_id=user_id,
            permissions=list(permissions or []),
            policies=policies,
            replay_mode=replay_mode,
            trace_id=trace_id,
            deps=self.services,
        )

    def reset(self) -> None:
        """Drop recorded traces (between test runs)."""
        self.trace_store.reset()


def build_runtime(
    *,
    metrics: MetricRepository,
    executions: MetricExecutionRepository,
    connections: Optional[ConnectionRepository] = None,
    policies: Optional[OrgPolicyRepository] = None,
    grants: Optional[PermissionGrantRepository] = None,
    services: Optional[IntegrationServices] = None,
    schema_discovery: Optional[SchemaDiscovery] = None,
    schema_sink: Optional[SchemaSink] = None,
    alert_evaluator: Optional[AlertEvaluator] = None,
    registry: Optional[CapabilityRegistry] = None,
    strict_replay: bool = False,
    default_ttl_seconds: int = 3600,
    clock: Optional[Clock] = None,
) -> ExecRuntime:
    """
    Wire every execution core component.

    Args:
        metrics: Metric definition repository.
        executions: Metric execution repository.
        connections: Connected integrations per org (advisory schema checks).
        policies: Org policy repository used to populate execution contexts.
        grants: Stored permission grants; when set, request contexts draw access from it.
        services: Credential provider and integration clients for executors.
        schema_discovery: Discovered schema source for advisory validation.
        schema_sink: Receives schemas inferred from live rows (best-effort).
        alert_evaluator: Best-effort alert hook after metric runs.
        registry: Pre-built registry; its middleware is replaced by the standard pipeline.
        strict_replay: Raise on replay step-hash mismatch instead of warning.
        default_ttl_seconds: TTL for metrics whose policy carries none.
        clock: Current-time source shared by compiler and scheduler.
    """
    trace_store = TraceStore()
    recorder = DeterminismRecorder(trace_store, strict=strict_replay)
    policy_engine = PolicyEngine()

    if registry is None:
        registry = build_default_registry(recorder=recorder, policy_engine=policy_engine)
    else:
        registry.use(build_standard_middleware(recorder, policy_engine=policy_engine))

    services = services or IntegrationServices()
    compiler = PlanCompiler(
        registry, metrics=metrics, executions=executions, clock=clock, default_ttl_seconds=default_ttl_seconds
    )
    executor = SpecExecutor(
        registry,
        compiler,
        schema_validator=SpecSchemaValidator(schema_discovery, connections),
        schema_sink=schema_sink,
    )

    async def _system_context(metric: Metric) -> ExecutionContext:
        org_policies = await policies.list_for_org(metric.org_id) if policies is not None else []
        return ExecutionContext(
            org_id=metric.org_id,
            permissions=[Permission(access=AccessLevel.read)],
            policies=org_policies,
            deps=services,
        )

    scheduler = MetricScheduler(
        metrics=metrics,
        executions=executions,
        executor=executor,
        alert_evaluator=alert_evaluator,
        context_provider=_system_context,
        clock=clock,
        default_ttl_seconds=default_ttl_seconds,
    )

    return ExecRuntime(
        registry=registry,
        trace_store=trace_store,
        recorder=recorder,
        policy_engine=policy_engine,
        compiler=compiler,
        executor=executor,
        scheduler=scheduler,
        metrics=metrics,
        executions=executions,
        connections=connections,
        policies=policies,
        grants=grants,
        services=services,
    )
