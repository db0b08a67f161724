from __future__ import annotations

import pytest

from toolgate.exec_core.policy.engine import PolicyEngine
from toolgate.exec_core.policy.models import OrgPolicy, PolicyContext, PolicyRule, PolicyRuleType
from toolgate.exec_core.policy.permissions import check_permission, narrow_permissions, required_access
from toolgate.exec_core.schemas.domain import AccessLevel, CapabilityMode, Permission


def _policy(name: str, *rules: PolicyRule) -> OrgPolicy:
    return OrgPolicy(org_id="org-1", name=name, rules=list(rules))


def test_no_policies_allows_everything() -> None:
    result = PolicyEngine().evaluate([], PolicyContext(integration_id="github", capability_id="github_issues_list"))
    assert result.allowed is True
    assert result.reason is None


def test_integration_allowlist_blocks_other_integrations() -> None:
    rule = PolicyRule(type=PolicyRuleType.integration_allowlist, params={"integrations": ["slack"]})
    result = PolicyEngine().evaluate(
        [_policy("slack-only", rule)],
        PolicyContext(integration_id="github", capability_id="github_issues_list"),
    )

    assert result.allowed is False
    assert result.reason == "Blocked by policy 'slack-only': Integration github not in allowlist"
    assert result.blocking_rule == rule


def test_capability_allowlist() -> None:
    rule = PolicyRule(type=PolicyRuleType.capability_allowlist, params={"allowed_capabilities": ["github_repos_list"]})
    engine = PolicyEngine()

    blocked = engine.evaluate([_policy("p", rule)], PolicyContext(integration_id="github", capability_id="github_issues_list"))
    allowed = engine.evaluate([_policy("p", rule)], PolicyContext(integration_id="github", capability_id="github_repos_list"))

    assert blocked.allowed is False
    assert "github_issues_list not in allowlist" in (blocked.reason or "")
    assert allowed.allowed is True


def test_capability_allowlist_without_list_allows() -> None:
    rule = PolicyRule(type=PolicyRuleType.capability_allowlist)
    result = PolicyEngine().evaluate([_policy("p", rule)], PolicyContext(capability_id="github_issues_list"))
    assert result.allowed is True


@pytest.mark.parametrize(
    ("frequency", "allowed"),
    [
        (None, True),
        (5, True),
        (6, False),
    ],
)
def test_max_execution_frequency(frequency, allowed: bool) -> None:
    rule = PolicyRule(type=PolicyRuleType.max_execution_frequency, params={"max_frequency": 5})
    result = PolicyEngine().evaluate([_policy("rate", rule)], PolicyContext(frequency=frequency))
    assert result.allowed is allowed


def test_first_blocking_policy_wins() -> None:
    first = _policy("first", PolicyRule(type=PolicyRuleType.integration_allowlist, params={"integrations": ["slack"]}))
    second = _policy("second", PolicyRule(type=PolicyRuleType.capability_allowlist, params={"allowed_capabilities": []}))

    result = PolicyEngine().evaluate([first, second], PolicyContext(integration_id="github", capability_id="x"))

    assert result.reason is not None and result.reason.startswith("Blocked by policy 'first'")


def test_evaluation_is_pure() -> None:
    engine = PolicyEngine()
    policies = [_policy("p", PolicyRule(type=PolicyRuleType.integration_allowlist, params={"integrations": ["github"]}))]
    ctx = PolicyContext(integration_id="github", capability_id="github_issues_list")

    assert engine.evaluate(policies, ctx) == engine.evaluate(policies, ctx)


@pytest.mark.parametrize(
    ("mode", "expected"),
    [
        (CapabilityMode.read, AccessLevel.read),
        (CapabilityMode.write, AccessLevel.write),
        (CapabilityMode.action, AccessLevel.write),
    ],
)
def test_required_access(mode: CapabilityMode, expected: AccessLevel) -> None:
    assert required_access(mode) == expected


def test_check_permission_exact_and_wildcard_matches() -> None:
    exact = [Permission(integration="github", capability="github_issues_list", access=AccessLevel.read)]
    assert check_permission(exact, "github", "github_issues_list", AccessLevel.read)
    assert not check_permission(exact, "github", "github_repos_list", AccessLevel.read)
    assert not check_permission(exact, "slack", "github_issues_list", AccessLevel.read)

    wildcard = [Permission(access=AccessLevel.read)]
    assert check_permission(wildcard, "notion", "notion_pages_search", AccessLevel.read)


def test_write_grant_does_not_imply_read() -> None:
    perms = [Permission(integration="github", access=AccessLevel.write)]
    assert check_permission(perms, "github", "github_issues_list", AccessLevel.write)
    assert not check_permission(perms, "github", "github_issues_list", AccessLevel.read)


def test_empty_permission_set_denies() -> None:
    assert not check_permission([], "github", "github_issues_list", AccessLevel.read)


def test_narrow_permissions_never_widens_grants() -> None:
    granted = [Permission(integration="github", access=AccessLevel.read)]
    exact = Permission(integration="github", capability="github_issues_list", access=AccessLevel.read)
    requested = [
        Permission(access=AccessLevel.read),
        Permission(integration="github", access=AccessLevel.write),
        Permission(integration="github", access=AccessLevel.read),
        exact,
    ]

    assert narrow_permissions(granted, requested) == [requested[2], exact]
    assert narrow_permissions([], requested) == []
