"""Schemas and DTOs for the execution core."""

from .domain import (
    AccessLevel,
    CapabilityMode,
    ExecutionPlan,
    ExecutionResult,
    ExecutionResultStatus,
    ExecutionSource,
    Permission,
    ReplayMode,
)
from .graph import (
    CompiledIntent,
    ExecutionEdge,
    ExecutionNode,
    IntentGraph,
    IntentGraphRejection,
    SandboxError,
    SandboxLog,
    SandboxResult,
    UiContract,
    UiView,
)
from .metrics import (
    ExecutionPolicy,
    ExecutionPolicyMode,
    Metric,
    MetricDefinition,
    MetricExecution,
    MetricExecutionStatus,
)
from .specs import DashboardSpec, MetricRef, MetricSpec, QuerySort, QuerySpec, ViewSpec

__all__ = [
    "AccessLevel",
    "CapabilityMode",
    "ExecutionPlan",
    "ExecutionResult",
    "ExecutionResultStatus",
    "ExecutionSource",
    "Permission",
    "ReplayMode",
    "CompiledIntent",
    "ExecutionEdge",
    "ExecutionNode",
    "IntentGraph",
    "IntentGraphRejection",
    "SandboxError",
    "SandboxLog",
    "SandboxResult",
    "UiContract",
    "UiView",
    "ExecutionPolicy",
    "ExecutionPolicyMode",
    "Metric",
    "MetricDefinition",
    "MetricExecution",
    "MetricExecutionStatus",
    "DashboardSpec",
    "MetricRef",
    "MetricSpec",
    "QuerySort",
    "QuerySpec",
    "ViewSpec",
]
