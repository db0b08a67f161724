from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field

from ..schemas.base import BaseSchema


class PolicyRuleType(str, Enum):
    """
    Kinds of organization-level rules understood by ``PolicyEngine``.

    Attributes:
        integration_allowlist: ``params.integrations`` lists the integrations that may be called.
        capability_allowlist: ``params.allowed_capabilities`` lists the capabilities that may be called.
        max_execution_frequency: ``params.max_frequency`` caps the call frequency reported by the caller.
    """
    integration_allowlist = "integration_allowlist"
    capability_allowlist = "capability_allowlist"
    max_execution_frequency = "max_execution_frequency"


class PolicyRule(BaseSchema):
    type: PolicyRuleType
    params: Dict[str, Any] = Field(default_factory=dict)


class OrgPolicy(BaseSchema):
    """
    A named set of rules attached to an organization.

    Rules are restrictions: a policy with no rules allows everything, and the
    first rule that blocks an attempted call decides the outcome.
    """
    id: str = Field(default_factory=lambda: str(uuid4()))
    org_id: Optional[str] = None
    name: str
    rules: List[PolicyRule] = Field(default_factory=list)


class PolicyContext(BaseSchema):
    """Attributes of an attempted capability call, as seen by the policy engine."""
    integration_id: Optional[str] = None
    capability_id: Optional[str] = None
    action_type: Optional[str] = None
    frequency: Optional[float] = None


@dataclass(frozen=True)
class PolicyEvaluationResult:
    """
    Result of evaluating a policy set for a single attempted call.

    Attributes:
        allowed: Whether the call may proceed.
        reason: Human-readable reason if the call is blocked.
        blocking_rule: The rule that blocked the call, if any.
    """
    allowed: bool
    reason: Optional[str] = None
    blocking_rule: Optional[PolicyRule] = None
