from __future__ import annotations

"""Plan and specification validation.

Two levels of checking exist and they deliberately differ in strictness:

- ``validate_plan`` binds one ``ExecutionPlan`` to the registry. Unknown ids,
  integration mismatches and missing required parameters reject the plan
  (for that view only). Parameters the capability does not understand are
  dropped with a warning and never reject the plan.
- ``SpecSchemaValidator`` checks a whole ``DashboardSpec`` against discovered
  integration schemas. It is advisory: the errors it reports are logged by the
  caller and never stop compilation.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from ..capabilities.registry import CapabilityRegistry
from ..errors import IntegrationMismatchError, MissingRequiredParameterError, UnknownCapabilityIdError
from ..schemas.domain import ExecutionPlan
from ..schemas.specs import DashboardSpec, ViewType

if TYPE_CHECKING:
    from ..providers import SchemaDiscovery
    from ..repos.interfaces import ConnectionRepository

logger = logging.getLogger(__name__)


def validate_plan(plan: ExecutionPlan, registry: CapabilityRegistry) -> ExecutionPlan:
    """
    Validate ``plan`` against the registry and return the accepted plan.

    The returned plan only carries parameters the capability supports; a
    ``limit`` above the capability's ``max_limit`` is clamped.

    Raises:
        UnknownCapabilityIdError: The capability id is not registered.
        IntegrationMismatchError: The capability belongs to another integration.
        MissingRequiredParameterError: A required filter is absent.
    """
    capability = registry.get(plan.capability_id)
    if capability is None:
        raise UnknownCapabilityIdError(plan.capability_id, view_id=plan.view_id)
    if capability.integration_id != plan.integration_id:
        raise IntegrationMismatchError(plan.capability_id, plan.integration_id, view_id=plan.view_id)

    contract = capability.parameter_contract
    for key in contract.required_filters:
        if plan.params.get(key) in (None, ""):
            raise MissingRequiredParameterError(plan.capability_id, key, view_id=plan.view_id)

    params = {}
    for key, value in plan.params.items():
        if not contract.accepts(key):
            logger.warning(f"View '{plan.view_id}': dropping parameter '{key}' unsupported by {plan.capability_id}")
            continue
        params[key] = value

    if contract.max_limit is not None and isinstance(params.get("limit"), int) and params["limit"] > contract.max_limit:
        logger.warning(f"View '{plan.view_id}': clamping limit {params['limit']} to {contract.max_limit}")
        params["limit"] = contract.max_limit

    return plan.model_copy(update={"params": params})


@dataclass(frozen=True)
class SchemaValidationReport:
    valid: bool
    errors: List[str] = field(default_factory=list)


class SpecSchemaValidator:
    """Advisory check of a ``DashboardSpec`` against discovered integration schemas."""

    def __init__(
        self,
        schema_discovery: Optional[SchemaDiscovery] = None,
        connections: Optional[ConnectionRepository] = None,
    ) -> None:
        self._schema_discovery = schema_discovery
        self._connections = connections

    async def validate(self, org_id: str, spec: DashboardSpec) -> SchemaValidationReport:
        if self._schema_discovery is None:
            return SchemaValidationReport(valid=True)

        schemas = await self._schema_discovery.get_discovered_schemas(org_id)
        connected: Set[str] = set()
        if self._connections is not None:
            connected = set(await self._connections.list_connected_integrations(org_id))

        # integration -> resource -> field names
        index: Dict[str, Dict[str, Set[str]]] = {}
        for schema in schemas:
            index.setdefault(schema.integration_id, {})[schema.resource] = {f.name for f in schema.fields}

        errors: List[str] = []

        def _unknown_integration(integration_id: str, subject: str) -> str:
            if integration_id in connected:
                return f'Integration "{integration_id}" is connected but has no registered schema.'
            return f'{subject} references unknown integration "{integration_id}"'

        for metric in spec.metrics:
            if not metric.integration_id or not metric.table:
                continue
            resources = index.get(metric.integration_id)
            if resources is None:
                errors.append(_unknown_integration(metric.integration_id, f'Metric "{metric.label}"'))
                continue
            fields = resources.get(metric.table)
            if fields is None:
                errors.append(
                    f'Metric "{metric.label}" references unknown table "{metric.table}" in "{metric.integration_id}"'
                )
                continue
            if metric.field and metric.field not in fields:
                errors.append(f'Metric "{metric.label}" references unknown field "{metric.field}" in "{metric.table}"')

        for view in spec.views:
            if view.type != ViewType.table or not view.integration_id or not view.table:
                continue
            resources = index.get(view.integration_id)
            if resources is None:
                errors.append(_unknown_integration(view.integration_id, f'View "{view.id}"'))
                continue
            if view.table not in resources:
                errors.append(f'View "{view.id}" references unknown table "{view.table}" in "{view.integration_id}"')

        return SchemaValidationReport(valid=not errors, errors=errors)
