from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from .base import BaseSchema, ExternalSchema


class ExecutionNodeType(str, Enum):
    integration_call = "integration_call"
    transform = "transform"
    condition = "condition"
    emit_event = "emit_event"


class EntryKind(str, Enum):
    lifecycle = "lifecycle"
    ui = "ui"
    synthetic = "synthetic"


class ExecutionNode(ExternalSchema):
    id: str
    # Kept as a plain string: unsupported types must reach the sandbox to be rejected there.
    type: str
    capability_id: Optional[str] = Field(default=None, alias="capabilityId")
    params: Dict[str, Any] = Field(default_factory=dict)


class ExecutionEdge(ExternalSchema):
    from_: str = Field(alias="from")
    to: str
    condition: Optional[str] = None


class IntentGraph(ExternalSchema):
    # None means the key was absent or null; the sandbox rejects such graphs.
    nodes: Optional[List[ExecutionNode]] = None
    edges: Optional[List[ExecutionEdge]] = None


class UiView(ExternalSchema):
    title: str
    type: Literal["list", "detail", "form", "dashboard"] = "list"
    data_source_node_id: Optional[str] = None


class UiContract(ExternalSchema):
    views: List[UiView] = Field(default_factory=list)


class CompiledIntent(ExternalSchema):
    intent_type: Literal["chat", "create", "execute", "modify"] = "execute"
    system_goal: str = ""
    execution_graph: Optional[IntentGraph] = None
    ui_contract: Optional[UiContract] = None


class SandboxLogType(str, Enum):
    node_start = "node_start"
    node_complete = "node_complete"
    node_skip = "node_skip"
    error = "error"


class SandboxLog(BaseSchema):
    type: SandboxLogType
    node_id: Optional[str] = None
    message: str


class IntentGraphRejection(str, Enum):
    unreachable_node = "UnreachableNode"
    dangling_edge = "DanglingEdge"
    cycle_detected = "CycleDetected"
    invalid_action_type = "InvalidActionType"
    missing_capability = "MissingCapability"
    sandbox_execution_failed = "SandboxExecutionFailed"


class SandboxError(BaseSchema):
    type: Literal["InvalidIntentGraph"] = "InvalidIntentGraph"
    reason: IntentGraphRejection
    node_id: Optional[str] = None
    details: str
    auto_fix: Optional[str] = None
    status: Literal["rejected"] = "rejected"


class SandboxResult(BaseSchema):
    ok: bool
    logs: List[SandboxLog] = Field(default_factory=list)
    error: Optional[SandboxError] = None
