from __future__ import annotations

"""Organization policy evaluation.

``PolicyEngine`` is the runtime authority the policy middleware consults
before a capability runs. It is a pure evaluator: the same policy set and call
attributes always yield the same decision, and no state is kept between
calls, so one engine instance is shared by every pipeline.

Evaluation is default-allow. Each rule can only restrict; the first rule that
blocks wins and its reason is reported together with the owning policy name.
"""

from typing import Iterable, Optional

from .models import OrgPolicy, PolicyContext, PolicyEvaluationResult, PolicyRule, PolicyRuleType


class PolicyEngine:
    """Evaluate ``OrgPolicy`` rule sets against an attempted capability call."""

    def evaluate(self, policies: Iterable[OrgPolicy], context: PolicyContext) -> PolicyEvaluationResult:
        """
        Decide whether the attempted call is allowed.

        Args:
            policies: The organization's policies, evaluated in order.
            context: The integration/capability/action attributes of the call.

        Returns:
            A PolicyEvaluationResult; when blocked, ``reason`` names the policy.
        """
        for policy in policies:
            for rule in policy.rules:
                reason = self._evaluate_rule(rule, context)
                if reason is not None:
                    return PolicyEvaluationResult(
                        allowed=False,
                        reason=f"Blocked by policy '{policy.name}': {reason}",
                        blocking_rule=rule,
                    )
        return PolicyEvaluationResult(allowed=True)

    def _evaluate_rule(self, rule: PolicyRule, context: PolicyContext) -> Optional[str]:
        """Return a block reason for ``rule``, or None when the rule allows the call."""
        if rule.type == PolicyRuleType.integration_allowlist:
            allowed = rule.params.get("integrations") or []
            if context.integration_id and context.integration_id not in allowed:
                return f"Integration {context.integration_id} not in allowlist"

        elif rule.type == PolicyRuleType.capability_allowlist:
            allowed = rule.params.get("allowed_capabilities")
            if context.capability_id and allowed is not None and context.capability_id not in allowed:
                return f"Capability {context.capability_id} not in allowlist"

        elif rule.type == PolicyRuleType.max_execution_frequency:
            limit = rule.params.get("max_frequency")
            if context.frequency and limit and context.frequency > limit:
                return f"Execution frequency {context.frequency} exceeds limit {limit}"

        return None
