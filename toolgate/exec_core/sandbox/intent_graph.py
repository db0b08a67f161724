from __future__ import annotations

"""Static sandbox validation of externally produced intent graphs.

The sandbox never performs a real integration call. It checks the graph's
shape and simulates each node, producing ``node_start``/``node_complete`` log
entries. Checks run in this order and the first failure is terminal:

1. the graph is present with both node and edge lists, and node ids are
   unique (``SandboxExecutionFailed`` otherwise);
2. every edge references known nodes (``DanglingEdge``);
3. the graph is acyclic, via Kahn's algorithm (``CycleDetected``);
4. every root carries ``params.entry_kind`` in lifecycle/ui/synthetic
   (``UnreachableNode``);
5. in topological order, node types are supported (``InvalidActionType``)
   and ``integration_call`` nodes name a capability (``MissingCapability``);
6. with a UI contract, referenced data-source nodes exist and every node is
   connected to one of them through an undirected walk (``UnreachableNode``).
"""

import logging
from collections import deque
from typing import Dict, List, Optional

from ..errors import InvalidIntentGraphError
from ..schemas.graph import (
    CompiledIntent,
    EntryKind,
    ExecutionNode,
    ExecutionNodeType,
    IntentGraph,
    IntentGraphRejection,
    SandboxError,
    SandboxLog,
    SandboxLogType,
    SandboxResult,
    UiContract,
)

logger = logging.getLogger(__name__)

ENTRY_KINDS = frozenset(k.value for k in EntryKind)
NODE_TYPES = frozenset(t.value for t in ExecutionNodeType)
CONNECT_TO_UI_HINT = "Remove node or connect it to a UI view"

_SIMULATED = {
    ExecutionNodeType.integration_call.value: "integration_call simulated (no side effects)",
    ExecutionNodeType.transform.value: "transform simulated",
    ExecutionNodeType.condition.value: "condition evaluated deterministically",
    ExecutionNodeType.emit_event.value: "event emission simulated",
}


def _reject(
    logs: List[SandboxLog],
    reason: IntentGraphRejection,
    details: str,
    *,
    node_id: Optional[str] = None,
    auto_fix: Optional[str] = None,
) -> SandboxResult:
    logger.warning(f"Intent graph rejected: reason={reason.value} node={node_id} details={details}")
    return SandboxResult(
        ok=False,
        logs=logs,
        error=SandboxError(reason=reason, node_id=node_id, details=details, auto_fix=auto_fix),
    )


def validate_intent_graph(graph: Optional[IntentGraph], ui_contract: Optional[UiContract] = None) -> SandboxResult:
    """
    Validate ``graph`` (and optionally its UI contract) without executing it.

    Returns:
        ``SandboxResult(ok=True, logs=...)`` or a rejected result carrying a
        ``SandboxError`` with reason, node id, details and optional auto-fix.
    """
    logs: List[SandboxLog] = []

    if graph is None or graph.nodes is None or graph.edges is None:
        return _reject(logs, IntentGraphRejection.sandbox_execution_failed, "Missing execution_graph")

    nodes: Dict[str, ExecutionNode] = {}
    for node in graph.nodes:
        if node.id in nodes:
            return _reject(
                logs,
                IntentGraphRejection.sandbox_execution_failed,
                f"Duplicate node id '{node.id}'",
                node_id=node.id,
            )
        nodes[node.id] = node

    for edge in graph.edges:
        if edge.from_ not in nodes or edge.to not in nodes:
            return _reject(
                logs,
                IntentGraphRejection.dangling_edge,
                f"Edge from {edge.from_} to {edge.to} references unknown node",
            )

    indegree: Dict[str, int] = {node_id: 0 for node_id in nodes}
    outgoing: Dict[str, List[str]] = {node_id: [] for node_id in nodes}
    neighbors: Dict[str, List[str]] = {node_id: [] for node_id in nodes}
    for edge in graph.edges:
        indegree[edge.to] += 1
        outgoing[edge.from_].append(edge.to)
        neighbors[edge.from_].append(edge.to)
        neighbors[edge.to].append(edge.from_)

    roots = [node_id for node_id, degree in indegree.items() if degree == 0]
    queue = deque(roots)
    order: List[str] = []
    while queue:
        current = queue.popleft()
        order.append(current)
        for nxt in outgoing[current]:
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                queue.append(nxt)

    if len(order) != len(nodes):
        return _reject(logs, IntentGraphRejection.cycle_detected, "Execution graph contains a cycle")

    for root_id in roots:
        kind = nodes[root_id].params.get("entry_kind")
        if kind not in ENTRY_KINDS:
            return _reject(
                logs,
                IntentGraphRejection.unreachable_node,
                f"Root node '{root_id}' is not bound to a lifecycle or UI trigger",
                node_id=root_id,
            )

    for node_id in order:
        node = nodes[node_id]
        if node.type not in NODE_TYPES:
            return _reject(
                logs,
                IntentGraphRejection.invalid_action_type,
                f"Unsupported node type '{node.type}'",
                node_id=node_id,
            )
        if node.type == ExecutionNodeType.integration_call.value and not node.capability_id:
            return _reject(
                logs,
                IntentGraphRejection.missing_capability,
                "integration_call node missing capabilityId",
                node_id=node_id,
            )
        logs.append(
            SandboxLog(type=SandboxLogType.node_start, node_id=node_id, message=f"Simulating node {node_id} ({node.type})")
        )
        logs.append(SandboxLog(type=SandboxLogType.node_complete, node_id=node_id, message=_SIMULATED[node.type]))

    if ui_contract is not None and ui_contract.views:
        referenced: List[str] = []
        for view in ui_contract.views:
            if not view.data_source_node_id:
                continue
            if view.data_source_node_id not in nodes:
                return _reject(
                    logs,
                    IntentGraphRejection.unreachable_node,
                    f"UI view '{view.title}' references missing node '{view.data_source_node_id}'",
                    node_id=view.data_source_node_id,
                )
            referenced.append(view.data_source_node_id)

        if referenced:
            visited = set(referenced)
            walk = deque(referenced)
            while walk:
                current = walk.popleft()
                for nxt in neighbors[current]:
                    if nxt not in visited:
                        visited.add(nxt)
                        walk.append(nxt)

            for node_id in nodes:
                if node_id not in visited:
                    return _reject(
                        logs,
                        IntentGraphRejection.unreachable_node,
                        f"Node '{node_id}' is not connected to any UI view",
                        node_id=node_id,
                        auto_fix=CONNECT_TO_UI_HINT,
                    )

    return SandboxResult(ok=True, logs=logs)


def run_intent_in_sandbox(intent: CompiledIntent) -> SandboxResult:
    """Validate the execution graph and UI contract carried by a compiled intent."""
    return validate_intent_graph(intent.execution_graph, intent.ui_contract)


def ensure_valid_intent(intent: CompiledIntent) -> SandboxResult:
    """Like ``run_intent_in_sandbox`` but raise ``InvalidIntentGraphError`` on rejection."""
    result = run_intent_in_sandbox(intent)
    if not result.ok and result.error is not None:
        raise InvalidIntentGraphError(result.error)
    return result
