from __future__ import annotations

"""Metric scheduler and execution lifecycle.

``MetricScheduler`` owns two decisions:

- ``run_metric_execution``: run one metric now. The run is a LangGraph state
  machine over a small ``_RunState``::

      start -> execute -> complete
                       -> fail

  ``start`` creates the ``pending`` execution row and moves it to
  ``running``. ``execute`` wraps the metric in a single-view spec and runs it
  through the ``SpecExecutor`` with the cache bypassed. ``complete`` stores
  the result and schedules alert evaluation in the background; ``fail``
  stores the error message. A failed run never raises to the caller.

- ``schedule_metric_execution``: decide from the metric's execution policy
  whether a run is due (``on_demand`` metrics are never scheduled; otherwise
  a run is due when nothing completed yet or the TTL elapsed).

Alert evaluation is best-effort: its failures are logged and swallowed so
they can never fail a metric run.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, NotRequired, Optional, Required, Set, TypedDict

from langgraph.graph import END, StateGraph

from ..errors import MetricExecutionError, MetricNotFoundError
from ..planning.compiler import Clock, utc_now
from ..planning.executor import SpecExecutor
from ..providers import AlertEvaluator
from ..repos.interfaces import MetricExecutionRepository, MetricRepository
from ..runtime.context import ExecutionContext
from ..schemas.domain import AccessLevel, ExecutionResultStatus, Permission
from ..schemas.metrics import ExecutionPolicyMode, Metric, MetricExecution, MetricExecutionStatus
from ..schemas.specs import DashboardSpec, MetricRef, MetricSpec, ViewSpec, ViewType

logger = logging.getLogger(__name__)

EXEC_VIEW_ID = "exec-view"
DEFAULT_TRIGGER = "scheduler"

ContextProvider = Callable[[Metric], Awaitable[ExecutionContext]]


class _RunState(TypedDict):
    """LangGraph state for a single metric run.

    ``result``/``error`` are filled by the ``execute`` node and decide the
    route to ``complete`` or ``fail``.
    """

    metric: Required[Metric]
    triggered_by: Required[str]
    execution_id: NotRequired[str]
    result: NotRequired[Any]
    error: NotRequired[Optional[str]]


def wrap_metric_in_spec(metric: Metric) -> DashboardSpec:
    """Single-view spec that executes exactly ``metric`` through its persisted reference."""
    return DashboardSpec(
        title="Execution Wrapper",
        metrics=[
            MetricSpec(
                id=metric.id,
                label=metric.name,
                integration_id=metric.integration_id,
                metric_ref=MetricRef(id=metric.id, version=metric.version),
            )
        ],
        views=[ViewSpec(id=EXEC_VIEW_ID, type=ViewType.metric, metric_id=metric.id)],
    )


def is_due(latest_completed_at: Optional[datetime], ttl_seconds: int, now: datetime) -> bool:
    """True when a scheduled metric last completed at ``latest_completed_at`` needs a new run."""
    if latest_completed_at is None:
        return True
    return now - latest_completed_at > timedelta(seconds=ttl_seconds)


async def system_context(metric: Metric) -> ExecutionContext:
    """Context used for scheduled runs: read access to everything, no org policies."""
    return ExecutionContext(
        org_id=metric.org_id,
        user_id=None,
        permissions=[Permission(access=AccessLevel.read)],
    )


class MetricScheduler:
    """Run metrics and decide when scheduled metrics are due."""

    def __init__(
        self,
        *,
        metrics: MetricRepository,
        executions: MetricExecutionRepository,
        executor: SpecExecutor,
        alert_evaluator: Optional[AlertEvaluator] = None,
        context_provider: Optional[ContextProvider] = None,
        clock: Optional[Clock] = None,
        default_ttl_seconds: int = 3600,
    ) -> None:
        """
        Args:
            metrics: Metric definitions.
            executions: Execution rows; enforces the lifecycle.
            executor: Spec executor used to run the wrapped metric.
            alert_evaluator: Optional best-effort alert hook called after success.
            context_provider: Builds the execution context for a metric run.
            clock: Returns the current UTC time; injectable for tests.
            default_ttl_seconds: TTL used when a policy carries none.
        """
        self._metrics = metrics
        self._executions = executions
        self._executor = executor
        self._alert_evaluator = alert_evaluator
        self._context_provider = context_provider or system_context
        self._clock = clock or utc_now
        self._default_ttl_seconds = default_ttl_seconds
        self._alert_tasks: Set[asyncio.Task] = set()
        self._graph = self._build_graph()

    def _build_graph(self):
        """Build and compile the run lifecycle state machine."""
        g: StateGraph = StateGraph(_RunState)
        g.add_node("start", self._node_start)
        g.add_node("execute", self._node_execute)
        g.add_node("complete", self._node_complete)
        g.add_node("fail", self._node_fail)

        g.set_entry_point("start")
        g.add_edge("start", "execute")
        g.add_conditional_edges(
            "execute",
            self._route_after_execute,
            {"complete": "complete", "fail": "fail"},
        )
        g.add_edge("complete", END)
        g.add_edge("fail", END)
        return g.compile()

    async def run_metric_execution(self, metric_id: str, triggered_by: str = DEFAULT_TRIGGER) -> MetricExecution:
        """
        Run ``metric_id`` now and return its final execution row.

        Raises:
            MetricNotFoundError: If the metric does not exist (no row is created).
        """
        metric = await self._metrics.get(metric_id)
        if metric is None:
            raise MetricNotFoundError(metric_id)

        final = await self._graph.ainvoke({"metric": metric, "triggered_by": triggered_by})
        execution = await self._executions.get(final["execution_id"])
        if execution is None:
            raise MetricExecutionError(metric_id, f"Execution {final['execution_id']} disappeared")
        return execution

    async def schedule_metric_execution(self, metric_id: str) -> bool:
        """Run ``metric_id`` if its policy says it is due; return whether a run happened."""
        metric = await self._metrics.get(metric_id)
        if metric is None:
            return False

        policy = metric.execution_policy
        if policy.mode == ExecutionPolicyMode.on_demand:
            return False

        latest = await self._executions.latest_completed(metric_id)
        completed_at = latest.completed_at if latest is not None else None
        if not is_due(completed_at, policy.effective_ttl(self._default_ttl_seconds), self._clock()):
            return False

        await self.run_metric_execution(metric_id)
        return True

    async def run_due_metrics(self, org_id: Optional[str] = None) -> List[str]:
        """Evaluate every scheduled metric and return the ids that ran."""
        triggered: List[str] = []
        for metric in await self._metrics.list_scheduled(org_id):
            try:
                if await self.schedule_metric_execution(metric.id):
                    triggered.append(metric.id)
            except Exception:
                logger.exception(f"Scheduler failed for metric {metric.id}")
        return triggered

    async def latest_execution(self, metric_id: str) -> Optional[MetricExecution]:
        return await self._executions.latest_completed(metric_id)

    async def wait_for_alerts(self) -> None:
        """Wait for pending background alert evaluations (used at shutdown and in tests)."""
        if self._alert_tasks:
            await asyncio.gather(*list(self._alert_tasks))

    async def _node_start(self, state: _RunState) -> dict:
        execution = await self._executions.create(state["metric"].id, state["triggered_by"])
        await self._executions.update_status(execution.id, MetricExecutionStatus.running)
        logger.info(f"Metric {execution.metric_id}: execution {execution.id} running")
        return {"execution_id": execution.id}

    async def _node_execute(self, state: _RunState) -> dict:
        metric = state["metric"]
        try:
            context = await self._context_provider(metric)
            results = await self._executor.execute(
                metric.org_id,
                wrap_metric_in_spec(metric),
                context,
                force_refresh=True,
            )
            result = results.get(EXEC_VIEW_ID)
            if result is None:
                raise MetricExecutionError(metric.id, "Metric view produced no result")
            if result.status == ExecutionResultStatus.error:
                raise MetricExecutionError(metric.id, result.error or "Unknown error")
        except Exception as exc:
            logger.error(f"Execution failed for metric {metric.id}", exc_info=True)
            return {"error": str(exc) or "Unknown error"}

        payload = result.data if result.data is not None else (result.rows or [])
        return {"result": payload, "error": None}

    def _route_after_execute(self, state: _RunState) -> str:
        return "fail" if state.get("error") else "complete"

    async def _node_complete(self, state: _RunState) -> dict:
        execution_id = state["execution_id"]
        await self._executions.update_status(
            execution_id,
            MetricExecutionStatus.completed,
            result=state["result"],
        )
        logger.info(f"Metric {state['metric'].id}: execution {execution_id} completed")
        self._schedule_alerts(state["metric"].id, state["result"], execution_id)
        return {}

    async def _node_fail(self, state: _RunState) -> dict:
        await self._executions.update_status(
            state["execution_id"],
            MetricExecutionStatus.failed,
            error=state["error"],
        )
        return {}

    def _schedule_alerts(self, metric_id: str, result: Any, execution_id: str) -> None:
        if self._alert_evaluator is None:
            return
        task = asyncio.create_task(self._evaluate_alerts(metric_id, result, execution_id))
        self._alert_tasks.add(task)
        task.add_done_callback(self._alert_tasks.discard)

    async def _evaluate_alerts(self, metric_id: str, result: Any, execution_id: str) -> None:
        try:
            await self._alert_evaluator.evaluate_alerts(metric_id, result, execution_id)
        except Exception:
            logger.error(f"Alert evaluation failed for metric {metric_id}", exc_info=True)

