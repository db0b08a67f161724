"""Permission and organization policy evaluators.

Two independent checks govern every capability call:

- ``check_permission``: the caller's granted ``Permission`` set must contain an
  entry matching the integration, the capability and the exact access level
  (``read`` for read capabilities, ``write`` otherwise).
- ``PolicyEngine``: organization-wide ``OrgPolicy`` rules (allow-lists,
  frequency caps) evaluated against the attempted call, independent of the
  individual caller.

Both are pure functions of their inputs; they are wired into the middleware
pipeline by ``toolgate.exec_core.runtime``.
"""

from .engine import PolicyEngine
from .models import OrgPolicy, PolicyContext, PolicyEvaluationResult, PolicyRule, PolicyRuleType
from .permissions import check_permission, narrow_permissions, required_access

__all__ = [
    "PolicyEngine",
    "OrgPolicy",
    "PolicyContext",
    "PolicyEvaluationResult",
    "PolicyRule",
    "PolicyRuleType",
    "check_permission",
    "narrow_permissions",
    "required_access",
]
