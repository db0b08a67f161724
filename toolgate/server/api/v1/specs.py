"""
Specification Execution Endpoints.

Executes a dashboard specification for an organization. Per-view failures are
reported inside the result map; the request itself only fails for malformed
input or unexpected server errors.
"""

from fastapi import APIRouter

from toolgate.core.logging_config import get_logger
from toolgate.server.schemas import SpecExecuteRequest, SpecExecuteResponse
from toolgate.server.services.deps import RuntimeDep, caller_context

logger = get_logger(__name__)
router = APIRouter()


@router.post(
    "/execute",
    response_model=SpecExecuteResponse,
    summary="Execute Specification",
    description="Compile and execute every view of a dashboard specification.",
)
async def execute_spec(body: SpecExecuteRequest, runtime: RuntimeDep) -> SpecExecuteResponse:
    context = await caller_context(runtime, body)
    results = await runtime.executor.execute(body.org_id, body.spec, context, force_refresh=body.force_refresh)
    failed = [view_id for view_id, r in results.items() if r.error]
    if failed:
        logger.info(f"Spec '{body.spec.title}' for org {body.org_id}: {len(failed)} view(s) failed")
    return SpecExecuteResponse(results=results)
