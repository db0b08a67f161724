"""
Intent Graph Endpoints.

Validates an upstream-produced compiled intent in the sandbox. A rejection is a
normal response (``ok=false`` with a structured error), not an HTTP error, so
callers can patch and resubmit the graph.
"""

from fastapi import APIRouter

from toolgate.exec_core.sandbox import run_intent_in_sandbox
from toolgate.exec_core.schemas.graph import CompiledIntent, SandboxResult

router = APIRouter()


@router.post(
    "/validate",
    response_model=SandboxResult,
    summary="Validate Intent Graph",
    description="Statically validate an execution graph and its UI contract without running it.",
)
async def validate_intent(intent: CompiledIntent) -> SandboxResult:
    return run_intent_in_sandbox(intent)
