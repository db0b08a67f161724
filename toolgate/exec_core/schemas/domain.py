from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CapabilityMode(str, Enum):
    read = "read"
    write = "write"
    action = "action"


class AccessLevel(str, Enum):
    read = "read"
    write = "write"


class ReplayMode(str, Enum):
    none = "none"
    record = "record"
    replay = "replay"


class ExecutionResultStatus(str, Enum):
    success = "success"
    error = "error"


class ExecutionSource(str, Enum):
    live_api = "live_api"
    cached = "cached"


WILDCARD = "*"


class Permission(BaseSchema):
    """A single grant: ``integration``/``capability`` match exactly or via ``"*"``."""

    integration: str = WILDCARD
    capability: str = WILDCARD
    access: AccessLevel


class ExecutionPlan(BaseSchema):
    view_id: str
    integration_id: str
    capability_id: str
    resource: str
    params: Dict[str, Any] = Field(default_factory=dict)
    # True when capability_id came from the ``{integration}_{resource}_list`` convention.
    capability_synthesized: bool = False


class ExecutionResult(BaseSchema):
    view_id: str
    status: ExecutionResultStatus
    rows: Optional[List[Any]] = None
    data: Optional[Any] = None
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)
    source: ExecutionSource = ExecutionSource.live_api
