from __future__ import annotations

"""Collaborator interfaces consumed by the execution core.

The core does not talk to OAuth servers, integration APIs, schema crawlers or
alerting backends itself. It depends on these protocols and expects the
application to inject concrete implementations:

- ``CredentialProvider``: yields a valid bearer token for an org/integration.
- ``IntegrationClient``: performs one capability call against a third-party API.
- ``SchemaDiscovery``: lists the resources and fields discovered per integration.
- ``SchemaSink``: stores schemas inferred from live results (best-effort).
- ``AlertEvaluator``: evaluates alert rules after a metric run (fire-and-forget).

``IntegrationServices`` bundles the credential provider and clients and is
handed to capability executors through ``ExecutionContext.deps``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from pydantic import Field

from .schemas.base import ExternalSchema


class DiscoveredField(ExternalSchema):
    name: str
    type: Optional[str] = None


class DiscoveredSchema(ExternalSchema):
    integration_id: str = Field(alias="integrationId")
    resource: str
    fields: List[DiscoveredField] = Field(default_factory=list)


class CredentialProvider(Protocol):
    async def get_valid_access_token(self, org_id: str, integration_id: str) -> str:
        """Return a bearer token, refreshing it when needed. Errors propagate and are never cached."""
        ...


class IntegrationClient(Protocol):
    async def call(self, capability_id: str, params: Dict[str, Any], *, access_token: str) -> Any: ...


class SchemaDiscovery(Protocol):
    async def get_discovered_schemas(self, org_id: str) -> List[DiscoveredSchema]: ...


class SchemaSink(Protocol):
    async def persist_schema(self, org_id: str, schema: DiscoveredSchema) -> None:
        """Store a schema inferred from live rows so later discovery sees it."""
        ...


class AlertEvaluator(Protocol):
    async def evaluate_alerts(self, metric_id: str, result: Any, execution_id: str) -> None: ...


@dataclass
class IntegrationServices:
    """Runtime services available to capability executors."""

    credentials: Optional[CredentialProvider] = None
    clients: Dict[str, IntegrationClient] = field(default_factory=dict)
