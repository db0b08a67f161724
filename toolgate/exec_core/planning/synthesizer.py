from __future__ import annotations

"""Query synthesis: turn a view's integration/resource pair into a bound plan.

``synthesize_capability_id`` applies the ``{integration}_{resource}_list``
naming convention. The resulting id is only a guess; the plan validator
decides whether it resolves to a registered capability.

``normalize_params`` applies capability-specific parameter rewrites. It never
raises: a parameter it cannot fix is left in place so the failure surfaces at
execution time, at the integration edge.
"""

import logging
from typing import Any, Dict, Optional

from ..schemas.domain import ExecutionPlan
from ..schemas.specs import QuerySpec

logger = logging.getLogger(__name__)

GITHUB_ISSUE_STATES = ("open", "closed", "all")
_REPO_KEYS = ("repo", "full_name", "owner_repo")


def synthesize_capability_id(integration_id: str, resource: str) -> str:
    return f"{integration_id}_{resource}_list"


def flatten_query(query: Optional[QuerySpec], params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Flatten structured filters/sort/limit into a flat parameter map.

    Explicit ``params`` win over flattened query values with the same key.
    """
    flat: Dict[str, Any] = {}
    if query is not None:
        flat.update(query.filters)
        if query.sort is not None:
            flat["sort"] = query.sort.field
            flat["direction"] = query.sort.direction
        if query.limit is not None:
            flat["limit"] = query.limit
        if query.group_by:
            flat["group_by"] = list(query.group_by)
    flat.update(params or {})
    return flat


def _split_repo(value: str) -> tuple[str, str]:
    if "/" in value:
        owner, _, repo = value.partition("/")
        return owner, repo
    return "", value


def normalize_params(capability_id: str, params: Dict[str, Any]) -> Dict[str, Any]:
    """Return a normalized copy of ``params`` for ``capability_id``."""
    normalized = dict(params)

    if capability_id == "github_issues_list":
        state = normalized.get("state")
        if state is not None and state not in GITHUB_ISSUE_STATES:
            logger.warning(f"github_issues_list: unsupported state '{state}' left as-is")

    elif capability_id == "github_commits_list":
        for key in _REPO_KEYS:
            value = normalized.get(key)
            if not isinstance(value, str):
                continue
            owner, repo = _split_repo(value)
            del normalized[key]
            # A bare repo name keeps an explicitly given owner.
            if owner or "owner" not in normalized:
                normalized["owner"] = owner
            normalized["repo"] = repo
        if not normalized.get("owner") or not normalized.get("repo"):
            logger.debug("github_commits_list: owner/repo unresolved, deferring to execution")

    return normalized


def synthesize_query(
    *,
    view_id: str,
    integration_id: str,
    resource: str,
    params: Optional[Dict[str, Any]] = None,
    capability_id: Optional[str] = None,
) -> ExecutionPlan:
    """
    Build an ``ExecutionPlan`` for one view.

    Args:
        view_id: The view the plan belongs to.
        integration_id: Integration the view reads from.
        resource: Resource (table) within the integration.
        params: Flat parameter map.
        capability_id: Explicit capability id; synthesized by convention when omitted.
    """
    synthesized = capability_id is None
    cap_id = capability_id or synthesize_capability_id(integration_id, resource)
    if synthesized:
        logger.debug(f"View '{view_id}': synthesized capability id '{cap_id}'")

    return ExecutionPlan(
        view_id=view_id,
        integration_id=integration_id,
        capability_id=cap_id,
        resource=resource,
        params=normalize_params(cap_id, params or {}),
        capability_synthesized=synthesized,
    )
