"""
Capability Endpoints.

Lists the registered capabilities and executes a single capability through the
governed middleware pipeline (determinism, permissions, policies).
"""

from typing import List, Optional

from fastapi import APIRouter

from toolgate.core.logging_config import get_logger
from toolgate.exec_core.replay.recorder import DEFAULT_TRACE_ID
from toolgate.exec_core.replay.trace_store import ReplayCursor
from toolgate.exec_core.schemas.domain import ReplayMode
from toolgate.server.schemas import CapabilityExecuteRequest, CapabilityExecuteResponse, CapabilityOut
from toolgate.server.services.deps import RuntimeDep, caller_context

logger = get_logger(__name__)
router = APIRouter()


@router.get(
    "",
    response_model=List[CapabilityOut],
    summary="List Capabilities",
    description="List registered capabilities, optionally for one integration.",
)
async def list_capabilities(runtime: RuntimeDep, integration_id: Optional[str] = None) -> List[CapabilityOut]:
    definitions = (
        runtime.registry.list_for_integration(integration_id)
        if integration_id is not None
        else runtime.registry.list()
    )
    return [CapabilityOut.from_definition(d) for d in definitions]


@router.post(
    "/{capability_id}/execute",
    response_model=CapabilityExecuteResponse,
    summary="Execute Capability",
    description="Execute one capability for an organization, optionally recording or replaying it.",
    responses={
        403: {"description": "Permission denied or blocked by policy"},
        404: {"description": "Unknown capability or replay trace"},
        409: {"description": "Replay diverged from the recorded trace"},
    },
)
async def execute_capability(
    capability_id: str,
    body: CapabilityExecuteRequest,
    runtime: RuntimeDep,
) -> CapabilityExecuteResponse:
    """
    Execute a capability.

    Errors raised by the pipeline (permission, policy, replay) are mapped to
    HTTP responses by the exception handlers.
    """
    context = await caller_context(runtime, body, replay_mode=body.replay_mode, trace_id=body.trace_id)
    context.cursor = ReplayCursor(position=body.step_index)

    result = await runtime.registry.execute(capability_id, body.params, context)
    logger.debug(f"Executed {capability_id} for org {body.org_id} (mode={body.replay_mode.value})")
    return CapabilityExecuteResponse(
        capability_id=capability_id,
        result=result,
        trace_id=body.trace_id or (DEFAULT_TRACE_ID if body.replay_mode == ReplayMode.record else None),
        next_step_index=context.cursor.position,
    )
