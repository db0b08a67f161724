"""Error types for the execution core.

Defines the hierarchy of exceptions raised while registering, governing,
replaying and planning capability executions. Every error derives from
``ExecCoreError`` so the HTTP layer (and callers in general) can catch the
whole family at once while still inspecting the structured attributes each
subclass carries.
"""

from __future__ import annotations

from typing import Any, Optional


class ExecCoreError(Exception):
    """Base error for all execution core exceptions."""


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class UnknownCapabilityError(ExecCoreError):
    """Raised when a capability id is not registered."""

    def __init__(self, capability_id: str) -> None:
        super().__init__(f"Unknown capability: '{capability_id}'")
        self.capability_id = capability_id


class LegacyCapabilityError(ExecCoreError):
    """Raised when a registered capability has no executor attached."""

    def __init__(self, capability_id: str) -> None:
        super().__init__(f"Capability '{capability_id}' has no executor and cannot be executed")
        self.capability_id = capability_id


class CapabilityExecutionError(ExecCoreError):
    """Raised by capability executors for failures at the integration edge."""

    def __init__(self, capability_id: str, message: str) -> None:
        super().__init__(f"Capability '{capability_id}' failed: {message}")
        self.capability_id = capability_id


# ---------------------------------------------------------------------------
# Governance
# ---------------------------------------------------------------------------


class PermissionDeniedError(ExecCoreError):
    """Raised when the caller's permission set does not grant the required access."""

    def __init__(self, integration_id: str, capability_id: str, *, access: str = "write") -> None:
        super().__init__(
            f"Permission denied: '{access}' access to capability '{capability_id}' "
            f"on integration '{integration_id}' is not granted"
        )
        self.integration_id = integration_id
        self.capability_id = capability_id
        self.access = access


class PolicyViolationError(ExecCoreError):
    """Raised when an organization policy blocks a capability call."""

    def __init__(self, reason: Optional[str], *, integration_id: str, capability_id: str) -> None:
        self.reason = reason or "Action blocked by organization policy"
        super().__init__(f"Policy Violation: {self.reason}")
        self.integration_id = integration_id
        self.capability_id = capability_id


# ---------------------------------------------------------------------------
# Replay integrity
# ---------------------------------------------------------------------------


class ReplayError(ExecCoreError):
    """Base error for record/replay integrity failures."""


class TraceNotFoundError(ReplayError):
    """Raised when replay targets a trace id with no recorded steps."""

    def __init__(self, trace_id: Optional[str]) -> None:
        if trace_id is None:
            super().__init__("Trace id required for replay")
        else:
            super().__init__(f"Trace '{trace_id}' not found")
        self.trace_id = trace_id


class ReplayDivergenceError(ReplayError):
    """Raised when a replayed call cannot be matched to a recorded step."""

    def __init__(self, trace_id: str, step_index: int, detail: str) -> None:
        super().__init__(f"Replay divergence in trace '{trace_id}' at step {step_index}: {detail}")
        self.trace_id = trace_id
        self.step_index = step_index
        self.detail = detail


# ---------------------------------------------------------------------------
# Plan compilation
# ---------------------------------------------------------------------------


class PlanValidationError(ExecCoreError):
    """Base error for a plan rejected against the capability registry."""

    def __init__(self, message: str, *, capability_id: str, view_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.capability_id = capability_id
        self.view_id = view_id


class UnknownCapabilityIdError(PlanValidationError):
    def __init__(self, capability_id: str, *, view_id: Optional[str] = None) -> None:
        super().__init__(f"Unknown capability ID: {capability_id}", capability_id=capability_id, view_id=view_id)


class IntegrationMismatchError(PlanValidationError):
    def __init__(self, capability_id: str, integration_id: str, *, view_id: Optional[str] = None) -> None:
        super().__init__(
            f"Capability {capability_id} does not belong to integration {integration_id}",
            capability_id=capability_id,
            view_id=view_id,
        )
        self.integration_id = integration_id


class MissingRequiredParameterError(PlanValidationError):
    def __init__(self, capability_id: str, key: str, *, view_id: Optional[str] = None) -> None:
        super().__init__(
            f"Capability {capability_id} requires parameter '{key}'",
            capability_id=capability_id,
            view_id=view_id,
        )
        self.key = key


# ---------------------------------------------------------------------------
# Intent graphs
# ---------------------------------------------------------------------------


class InvalidIntentGraphError(ExecCoreError):
    """Raised by ``ensure_valid_intent`` when the sandbox rejects a graph.

    ``error`` holds the structured ``SandboxError`` so callers can inspect the
    rejection reason, node id and auto-fix hint.
    """

    def __init__(self, error: Any) -> None:
        super().__init__(f"Invalid intent graph ({error.reason.value}): {error.details}")
        self.error = error


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class MetricNotFoundError(ExecCoreError):
    def __init__(self, metric_id: str) -> None:
        super().__init__(f"Metric {metric_id} not found")
        self.metric_id = metric_id


class MetricExecutionError(ExecCoreError):
    """Raised inside a metric run when its single view produced an error result."""

    def __init__(self, metric_id: str, message: str) -> None:
        super().__init__(message)
        self.metric_id = metric_id


class ExecutionStateError(ExecCoreError):
    """Raised on an illegal MetricExecution status transition."""

    def __init__(self, execution_id: str, current: str, requested: str) -> None:
        super().__init__(f"Execution {execution_id}: cannot transition from '{current}' to '{requested}'")
        self.execution_id = execution_id
        self.current = current
        self.requested = requested
