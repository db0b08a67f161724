"""Persisted metric definitions and their execution records.

A ``MetricExecution`` follows a fixed lifecycle::

    pending -> running -> completed
                       -> failed

``check_transition`` is the single authority for that state machine; the
repositories call it before persisting a status change.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import Field

from ..errors import ExecutionStateError
from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionPolicyMode(str, Enum):
    on_demand = "on_demand"
    scheduled = "scheduled"


class ExecutionPolicy(BaseSchema):
    mode: ExecutionPolicyMode = ExecutionPolicyMode.on_demand
    # None defers to the configured default TTL.
    ttl_seconds: Optional[int] = Field(default=None, gt=0)

    def effective_ttl(self, default_ttl_seconds: int) -> int:
        return self.ttl_seconds if self.ttl_seconds is not None else default_ttl_seconds


class MetricDefinition(BaseSchema):
    type: str = "count"
    field: Optional[str] = None
    group_by: Optional[str] = None
    filters: Dict[str, Any] = Field(default_factory=dict)


class Metric(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    org_id: str
    name: str
    description: Optional[str] = None

    integration_id: str
    capability_id: Optional[str] = None
    resource: str
    definition: MetricDefinition = Field(default_factory=MetricDefinition)

    version: int = 1
    execution_policy: ExecutionPolicy = Field(default_factory=ExecutionPolicy)


class MetricExecutionStatus(str, Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


ALLOWED_TRANSITIONS: Dict[MetricExecutionStatus, frozenset[MetricExecutionStatus]] = {
    MetricExecutionStatus.pending: frozenset({MetricExecutionStatus.running}),
    MetricExecutionStatus.running: frozenset({MetricExecutionStatus.completed, MetricExecutionStatus.failed}),
    MetricExecutionStatus.completed: frozenset(),
    MetricExecutionStatus.failed: frozenset(),
}


class MetricExecution(BaseSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    metric_id: str
    status: MetricExecutionStatus = MetricExecutionStatus.pending

    started_at: datetime = Field(default_factory=_utc_now)
    completed_at: Optional[datetime] = None

    result: Optional[Any] = None
    error: Optional[str] = None

    triggered_by: str = "system"


def check_transition(
    execution: MetricExecution,
    status: MetricExecutionStatus,
    *,
    result: Any = None,
    error: Optional[str] = None,
) -> None:
    """
    Validate a requested status change for ``execution``.

    Raises:
        ExecutionStateError: If the transition is not part of the lifecycle, or
            if a terminal state is requested without its payload (``completed``
            needs a non-null result, ``failed`` needs a non-null error).
    """
    if status not in ALLOWED_TRANSITIONS[execution.status]:
        raise ExecutionStateError(execution.id, execution.status.value, status.value)
    if status == MetricExecutionStatus.completed and result is None:
        raise ExecutionStateError(execution.id, execution.status.value, "completed (missing result)")
    if status == MetricExecutionStatus.failed and error is None:
        raise ExecutionStateError(execution.id, execution.status.value, "failed (missing error)")


def apply_transition(
    execution: MetricExecution,
    status: MetricExecutionStatus,
    *,
    result: Any = None,
    error: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MetricExecution:
    """Return a copy of ``execution`` moved to ``status`` after validating the change."""
    check_transition(execution, status, result=result, error=error)
    updates: Dict[str, Any] = {"status": status}
    if status == MetricExecutionStatus.completed:
        updates["completed_at"] = now or _utc_now()
        updates["result"] = result
    elif status == MetricExecutionStatus.failed:
        updates["completed_at"] = now or _utc_now()
        updates["error"] = error
    return execution.model_copy(update=updates)
