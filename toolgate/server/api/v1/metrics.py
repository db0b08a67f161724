"""
Metric Execution Endpoints.

Runs a persisted metric on demand and exposes its latest completed execution.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException

from toolgate.exec_core.schemas.metrics import MetricExecution
from toolgate.server.schemas import MetricRunRequest
from toolgate.server.services.deps import RuntimeDep

router = APIRouter()


@router.post(
    "/{metric_id}/run",
    response_model=MetricExecution,
    summary="Run Metric",
    description="Run a metric now, bypassing its cache. A failed run is returned with status 'failed'.",
    responses={404: {"description": "Metric not found"}},
)
async def run_metric(metric_id: str, runtime: RuntimeDep, body: Optional[MetricRunRequest] = None) -> MetricExecution:
    triggered_by = body.triggered_by if body is not None else "api"
    return await runtime.scheduler.run_metric_execution(metric_id, triggered_by=triggered_by)


@router.get(
    "/{metric_id}/executions/latest",
    response_model=MetricExecution,
    summary="Latest Metric Execution",
    description="Return the most recent completed execution of a metric.",
    responses={404: {"description": "No completed execution"}},
)
async def latest_execution(metric_id: str, runtime: RuntimeDep) -> MetricExecution:
    execution = await runtime.scheduler.latest_execution(metric_id)
    if execution is None:
        raise HTTPException(status_code=404, detail=f"No completed execution for metric {metric_id}")
    return execution
