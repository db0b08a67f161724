from __future__ import annotations

"""Execute a ``DashboardSpec`` end to end.

``SpecExecutor`` runs the advisory schema validation, compiles the spec and
executes every remaining plan through the capability registry, one after the
other. Each plan runs inside its own error boundary; results are keyed by
view id so assembly order does not matter.

After a live result with rows, the executor infers the rows' schema and hands
it to the optional ``SchemaSink`` so schema discovery learns the resource.
Inference and persistence are best-effort: failures are logged and never
change the view's result.
"""

import logging
from typing import Any, Dict, List, Optional

from ..capabilities.registry import CapabilityRegistry
from ..providers import DiscoveredField, DiscoveredSchema, SchemaSink
from ..runtime.context import ExecutionContext
from ..schemas.domain import ExecutionPlan, ExecutionResult, ExecutionResultStatus, ExecutionSource
from ..schemas.specs import DashboardSpec
from .compiler import PlanCompiler, error_result, utc_now
from .validation import SpecSchemaValidator

logger = logging.getLogger(__name__)


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def infer_schema(integration_id: str, resource: str, rows: List[Any]) -> DiscoveredSchema:
    """Collect field names (first-seen order) and the first non-null type of each across dict rows."""
    types: Dict[str, Optional[str]] = {}
    for row in rows:
        if not isinstance(row, dict):
            continue
        for name, value in row.items():
            if types.get(name) is None:
                types[name] = None if value is None else _json_type(value)
    return DiscoveredSchema(
        integration_id=integration_id,
        resource=resource,
        fields=[DiscoveredField(name=name, type=t or "null") for name, t in types.items()],
    )


def success_result(view_id: str, output: Any) -> ExecutionResult:
    return ExecutionResult(
        view_id=view_id,
        status=ExecutionResultStatus.success,
        rows=output if isinstance(output, list) else None,
        data=output,
        timestamp=utc_now(),
        source=ExecutionSource.live_api,
    )


class SpecExecutor:
    """Compile and run a specification; never lets one view fail another."""

    def __init__(
        self,
        registry: CapabilityRegistry,
        compiler: PlanCompiler,
        *,
        schema_validator: Optional[SpecSchemaValidator] = None,
        schema_sink: Optional[SchemaSink] = None,
    ) -> None:
        self._registry = registry
        self._compiler = compiler
        self._schema_validator = schema_validator
        self._schema_sink = schema_sink

    @property
    def compiler(self) -> PlanCompiler:
        return self._compiler

    async def execute(
        self,
        org_id: str,
        spec: DashboardSpec,
        context: ExecutionContext,
        *,
        force_refresh: bool = False,
    ) -> Dict[str, ExecutionResult]:
        """
        Execute every view of ``spec``.

        Args:
            org_id: Organization the spec belongs to (used for schema validation).
            spec: The dashboard specification.
            context: Execution context for the capability calls.
            force_refresh: Bypass cached metric executions.

        Returns:
            Mapping of view id to its result (live, cached or error).
        """
        await self._validate_schema(org_id, spec)

        compiled = await self._compiler.compile(spec, force_refresh=force_refresh)
        results: Dict[str, ExecutionResult] = dict(compiled.results)

        for plan in compiled.plans:
            results[plan.view_id] = await self._run_plan(org_id, plan, context)
        return results

    async def _run_plan(self, org_id: str, plan: ExecutionPlan, context: ExecutionContext) -> ExecutionResult:
        try:
            output = await self._registry.execute(plan.capability_id, plan.params, context)
        except Exception as exc:
            logger.warning(f"View '{plan.view_id}' failed executing {plan.capability_id}: {exc}")
            return error_result(plan.view_id, str(exc) or "Execution failed")
        result = success_result(plan.view_id, output)
        if result.rows is not None:
            await self._persist_inferred_schema(org_id, plan, result.rows)
        return result

    async def _persist_inferred_schema(self, org_id: str, plan: ExecutionPlan, rows: List[Any]) -> None:
        if self._schema_sink is None:
            return
        try:
            schema = infer_schema(plan.integration_id, plan.resource, rows)
            await self._schema_sink.persist_schema(org_id, schema)
        except Exception as exc:
            logger.warning(f"Failed to infer/persist schema for {plan.integration_id}/{plan.resource}: {exc}")

    async def _validate_schema(self, org_id: str, spec: DashboardSpec) -> None:
        if self._schema_validator is None:
            return
        try:
            report = await self._schema_validator.validate(org_id, spec)
        except Exception as exc:
            logger.warning(f"Schema validation unavailable for org {org_id}: {exc}")
            return
        if not report.valid:
            logger.warning(f"Schema validation warnings for org {org_id}: {report.errors}")
