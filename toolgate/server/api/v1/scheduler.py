"""
Scheduler Endpoints.

Triggers one scheduler pass over every scheduled metric. Intended for an
external cron; when ``TOOLGATE_SCHEDULER_SECRET`` is set the request must carry
``Authorization: Bearer <secret>``.
"""

import hmac
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException

from toolgate.core.config import settings
from toolgate.server.schemas import SchedulerRunRequest, SchedulerRunResponse
from toolgate.server.services.deps import RuntimeDep

router = APIRouter()


def require_scheduler_secret(authorization: Annotated[Optional[str], Header()] = None) -> None:
    secret = settings.scheduler_secret
    if secret and not hmac.compare_digest((authorization or "").encode("utf-8"), f"Bearer {secret}".encode("utf-8")):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post(
    "/run",
    response_model=SchedulerRunResponse,
    summary="Run Scheduler",
    description="Run every scheduled metric whose TTL has elapsed.",
    dependencies=[Depends(require_scheduler_secret)],
    responses={401: {"description": "Missing or wrong scheduler secret"}},
)
async def run_scheduler(runtime: RuntimeDep, body: Optional[SchedulerRunRequest] = None) -> SchedulerRunResponse:
    triggered = await runtime.scheduler.run_due_metrics(body.org_id if body is not None else None)
    return SchedulerRunResponse(triggered=triggered)
