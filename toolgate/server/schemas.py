"""
API Schemas.

This module contains Pydantic models used for API request bodies and response validation.
Domain models from ``toolgate.exec_core.schemas`` are reused directly where they already
describe the wire shape (specs, intents, execution results).
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from toolgate.exec_core.capabilities.base import CapabilityDefinition
from toolgate.exec_core.schemas.domain import CapabilityMode, ExecutionResult, Permission, ReplayMode
from toolgate.exec_core.schemas.specs import DashboardSpec


class CapabilityOut(BaseModel):
    """Public description of a registered capability."""

    id: str
    integration_id: str
    mode: CapabilityMode
    resource: str
    description: str = ""
    supported_fields: List[str] = Field(default_factory=list)
    required_filters: List[str] = Field(default_factory=list)
    max_limit: Optional[int] = None
    executable: bool = Field(description="False for catalog-only entries without an executor.")

    @classmethod
    def from_definition(cls, definition: CapabilityDefinition) -> "CapabilityOut":
        contract = definition.parameter_contract
        return cls(
            id=definition.id,
            integration_id=definition.integration_id,
            mode=definition.mode,
            resource=definition.resource,
            description=definition.description,
            supported_fields=list(contract.supported_fields),
            required_filters=list(contract.required_filters),
            max_limit=contract.max_limit,
            executable=definition.executor is not None,
        )


class CallerContext(BaseModel):
    """Caller identity shared by execution requests.

    Access is resolved from stored grants on the server; ``permissions`` can
    only narrow it.
    """

    org_id: str = Field(..., description="Organization the call is made for.", examples=["org-123"])
    user_id: Optional[str] = Field(default=None, description="Calling user, if any.")
    permissions: Optional[List[Permission]] = Field(
        default=None,
        description=(
            "Optional subset of the caller's stored grants to act with; entries not granted are dropped. "
            "Integration/capability accept '*'."
        ),
        examples=[[{"integration": "github", "capability": "*", "access": "read"}]],
    )


class CapabilityExecuteRequest(CallerContext):
    """
    Schema for executing a single capability.

    ``step_index`` positions the replay cursor so a replayed chain can be driven
    across several requests; the response returns the position to send next.
    """

    params: Dict[str, Any] = Field(default_factory=dict)
    replay_mode: ReplayMode = ReplayMode.none
    trace_id: Optional[str] = None
    step_index: int = Field(default=0, ge=0)


class CapabilityExecuteResponse(BaseModel):
    capability_id: str
    result: Any = None
    trace_id: Optional[str] = None
    next_step_index: int


class SpecExecuteRequest(CallerContext):
    spec: DashboardSpec
    force_refresh: bool = False

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "org_id": "org-123",
            "permissions": [{"access": "read"}],
            "spec": {
                "title": "Engineering overview",
                "metrics": [],
                "views": [{"id": "open-issues", "type": "table", "integration_id": "github", "table": "issues"}],
            },
        }
    })


class SpecExecuteResponse(BaseModel):
    results: Dict[str, ExecutionResult]


class MetricRunRequest(BaseModel):
    triggered_by: str = Field(default="api", description="Recorded on the execution row.")


class SchedulerRunRequest(BaseModel):
    org_id: Optional[str] = Field(default=None, description="Restrict the run to one organization.")


class SchedulerRunResponse(BaseModel):
    triggered: List[str]
