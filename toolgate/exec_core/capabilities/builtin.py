from __future__ import annotations

"""Built-in integration capability catalog.

Each entry describes one integration operation (id, owning integration,
mode, resource, parameter contract). Executors are thin: they obtain a bearer
token from the injected ``CredentialProvider`` and delegate the call to the
``IntegrationClient`` registered for the integration. Permission and policy
checks happen in the middleware pipeline before an executor is reached.
"""

import logging
from typing import Any, Dict, List

from ..errors import CapabilityExecutionError
from ..runtime.context import ExecutionContext
from ..schemas.domain import CapabilityMode
from .base import CapabilityDefinition, CapabilityExecutor, ParameterContract
from .registry import CapabilityRegistry

logger = logging.getLogger(__name__)


def integration_executor(capability_id: str, integration_id: str) -> CapabilityExecutor:
    """Build an executor delegating to the integration client found on ``context.deps``."""

    async def _execute(params: Dict[str, Any], context: ExecutionContext) -> Any:
        deps = context.deps
        credentials = getattr(deps, "credentials", None)
        if credentials is None:
            raise CapabilityExecutionError(capability_id, "no credential provider configured")
        clients = getattr(deps, "clients", None) or {}
        client = clients.get(integration_id)
        if client is None:
            raise CapabilityExecutionError(capability_id, f"no client configured for integration '{integration_id}'")

        token = await credentials.get_valid_access_token(context.org_id, integration_id)
        logger.debug(f"Calling {integration_id} for {capability_id} (org={context.org_id})")
        return await client.call(capability_id, dict(params), access_token=token)

    return _execute


def _cap(
    capability_id: str,
    integration_id: str,
    resource: str,
    *,
    mode: CapabilityMode = CapabilityMode.read,
    fields: tuple = (),
    required: tuple = (),
    max_limit: int | None = None,
    description: str = "",
) -> CapabilityDefinition:
    return CapabilityDefinition(
        id=capability_id,
        integration_id=integration_id,
        mode=mode,
        resource=resource,
        description=description,
        parameter_contract=ParameterContract(
            supported_fields=fields,
            required_filters=required,
            max_limit=max_limit,
        ),
        executor=integration_executor(capability_id, integration_id),
    )


def build_catalog() -> List[CapabilityDefinition]:
    return [
        # GitHub
        _cap(
            "github_issues_list",
            "github",
            "issues",
            fields=("state", "labels", "assignee", "sort", "direction"),
            description="List issues visible to the connected account",
        ),
        _cap("github_repos_list", "github", "repos", fields=("type", "sort", "direction")),
        _cap(
            "github_commits_list",
            "github",
            "commits",
            fields=("owner", "repo", "author", "since", "until"),
            required=("repo",),
            description="List commits of one repository",
        ),
        # Linear
        _cap("linear_issues_list", "linear", "issues", fields=("first", "includeArchived"), max_limit=250),
        _cap("linear_teams_list", "linear", "teams"),
        _cap(
            "linear_issue_create",
            "linear",
            "issues",
            mode=CapabilityMode.write,
            fields=("teamId", "title", "description", "priority", "assigneeId"),
            required=("teamId", "title"),
        ),
        # Slack
        _cap("slack_channels_list", "slack", "channels", fields=("types", "exclude_archived")),
        _cap(
            "slack_messages_list",
            "slack",
            "messages",
            fields=("channel", "limit"),
            required=("channel",),
            max_limit=1000,
        ),
        _cap(
            "slack_message_post",
            "slack",
            "messages",
            mode=CapabilityMode.write,
            fields=("channel", "text", "thread_ts"),
            required=("channel", "text"),
        ),
        # Notion
        _cap("notion_pages_search", "notion", "pages", fields=("query", "sort")),
        _cap("notion_databases_list", "notion", "databases"),
        # Google
        _cap("google_drive_list", "google", "drive", fields=("q", "orderBy", "pageSize")),
        _cap("google_gmail_list", "google", "gmail", fields=("q", "maxResults", "includeSpamTrash")),
    ]


def register_builtin_capabilities(registry: CapabilityRegistry) -> CapabilityRegistry:
    for definition in build_catalog():
        registry.register(definition)
    return registry
