from __future__ import annotations

"""Compile a ``DashboardSpec`` into validated execution plans.

For each view the compiler:

1. resolves a persisted metric reference and, unless a refresh is forced,
   short-circuits to a cached result when the latest completed execution is
   still within the metric's TTL;
2. derives ``integration_id``/``resource`` from the view, an inline metric or
   an explicit capability;
3. flattens the structured query into a flat parameter map;
4. synthesizes (or takes) a capability id and normalizes parameters;
5. validates the plan against the registry.

Failures are per view: a rejected view yields an error ``ExecutionResult``
and never prevents other views from compiling.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from ..capabilities.registry import CapabilityRegistry
from ..errors import MetricNotFoundError, PlanValidationError
from ..repos.interfaces import MetricExecutionRepository, MetricRepository
from ..schemas.domain import ExecutionPlan, ExecutionResult, ExecutionResultStatus, ExecutionSource
from ..schemas.metrics import Metric, MetricExecution
from ..schemas.specs import DashboardSpec, MetricRef, ViewSpec
from .synthesizer import flatten_query, synthesize_query
from .validation import validate_plan

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def error_result(view_id: str, message: str, *, timestamp: Optional[datetime] = None) -> ExecutionResult:
    return ExecutionResult(
        view_id=view_id,
        status=ExecutionResultStatus.error,
        rows=[],
        error=message,
        timestamp=timestamp or utc_now(),
        source=ExecutionSource.live_api,
    )


def cached_result(view_id: str, execution: MetricExecution) -> ExecutionResult:
    payload = execution.result
    return ExecutionResult(
        view_id=view_id,
        status=ExecutionResultStatus.success,
        rows=payload if isinstance(payload, list) else None,
        data=payload,
        timestamp=execution.completed_at or execution.started_at,
        source=ExecutionSource.cached,
    )


def is_fresh(execution: MetricExecution, ttl_seconds: int, now: datetime) -> bool:
    """True when ``execution`` completed no more than ``ttl_seconds`` before ``now``."""
    if execution.completed_at is None:
        return False
    return now - execution.completed_at <= timedelta(seconds=ttl_seconds)


@dataclass
class CompiledSpec:
    """Output of ``PlanCompiler.compile``.

    ``results`` already holds the cached and rejected views; ``plans`` are the
    views that still need a live execution.
    """

    plans: List[ExecutionPlan] = field(default_factory=list)
    results: Dict[str, ExecutionResult] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


@dataclass
class _ViewSource:
    integration_id: Optional[str] = None
    resource: Optional[str] = None
    capability_id: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)


class PlanCompiler:
    """Turn declarative views into validated ``ExecutionPlan`` values."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        *,
        metrics: Optional[MetricRepository] = None,
        executions: Optional[MetricExecutionRepository] = None,
        clock: Optional[Clock] = None,
        default_ttl_seconds: int = 3600,
    ) -> None:
        """
        Args:
            registry: Capability registry plans are validated against.
            metrics: Repository used to resolve ``metric_ref`` entries.
            executions: Repository used to look up cached executions.
            clock: Returns the current UTC time; injectable for tests.
            default_ttl_seconds: Cache TTL for metrics whose policy carries none.
        """
        self._registry = registry
        self._metrics = metrics
        self._executions = executions
        self._clock = clock or utc_now
        self._default_ttl_seconds = default_ttl_seconds

    async def compile(self, spec: DashboardSpec, *, force_refresh: bool = False) -> CompiledSpec:
        compiled = CompiledSpec()
        for view in spec.views:
            try:
                await self._compile_view(spec, view, compiled, force_refresh=force_refresh)
            except (PlanValidationError, MetricNotFoundError) as exc:
                logger.warning(f"View '{view.id}' rejected: {exc}")
                compiled.warnings.append(f"View '{view.id}': {exc}")
                compiled.results[view.id] = error_result(view.id, str(exc), timestamp=self._clock())
        return compiled

    async def _compile_view(
        self,
        spec: DashboardSpec,
        view: ViewSpec,
        compiled: CompiledSpec,
        *,
        force_refresh: bool,
    ) -> None:
        source = _ViewSource(
            integration_id=view.integration_id,
            resource=view.table,
            capability_id=view.capability,
            params=flatten_query(view.query, view.params),
        )

        if view.metric_id:
            metric_spec = spec.metric(view.metric_id)
            if metric_spec is None:
                compiled.warnings.append(f"View '{view.id}' references unknown metric '{view.metric_id}'")
            elif metric_spec.metric_ref is not None:
                metric = await self._resolve_metric(metric_spec.metric_ref)
                if not force_refresh:
                    cached = await self._cached(view.id, metric)
                    if cached is not None:
                        compiled.results[view.id] = cached
                        return
                source.integration_id = metric.integration_id
                source.resource = metric.resource
                source.capability_id = source.capability_id or metric.capability_id
                source.params = {**metric.definition.filters, **source.params}
            else:
                source.integration_id = source.integration_id or metric_spec.integration_id
                source.resource = source.resource or metric_spec.table

        if source.capability_id and not (source.integration_id and source.resource):
            capability = self._registry.get(source.capability_id)
            if capability is not None:
                source.integration_id = source.integration_id or capability.integration_id
                source.resource = source.resource or capability.resource

        if not source.integration_id or not source.resource:
            compiled.warnings.append(f"View '{view.id}' has no data source; skipped")
            return

        plan = synthesize_query(
            view_id=view.id,
            integration_id=source.integration_id,
            resource=source.resource,
            params=source.params,
            capability_id=source.capability_id,
        )
        compiled.plans.append(validate_plan(plan, self._registry))

    async def _resolve_metric(self, ref: MetricRef) -> Metric:
        if self._metrics is None:
            raise MetricNotFoundError(ref.id)
        metric = await self._metrics.get(ref.id)
        if metric is None:
            raise MetricNotFoundError(ref.id)
        if ref.version is not None and ref.version != metric.version:
            logger.debug(f"Metric {ref.id}: referenced version {ref.version}, using current {metric.version}")
        return metric

    async def _cached(self, view_id: str, metric: Metric) -> Optional[ExecutionResult]:
        if self._executions is None:
            return None
        latest = await self._executions.latest_completed(metric.id)
        if latest is None or latest.result is None:
            return None
        if not is_fresh(latest, metric.execution_policy.effective_ttl(self._default_ttl_seconds), self._clock()):
            logger.debug(f"Metric {metric.id}: cached execution {latest.id} is stale")
            return None
        return cached_result(view_id, latest)
