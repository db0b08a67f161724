from __future__ import annotations

"""Capability definition and parameter contract.

A capability is a named, permissioned, typed unit of integration work. The
registry stores ``CapabilityDefinition`` values keyed by ``id``; the middleware
pipeline reads the definition's ``integration_id`` and ``mode`` to enforce
permissions and policy, then invokes ``executor``.

Capabilities should:

- be deterministic with respect to their inputs as much as possible,
- never perform permission or policy decisions themselves (the pipeline
  enforces both before the executor runs),
- raise ``CapabilityExecutionError`` for failures at the integration edge.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, Tuple

from ..schemas.domain import CapabilityMode

if TYPE_CHECKING:
    from ..runtime.context import ExecutionContext

CapabilityExecutor = Callable[[Dict[str, Any], "ExecutionContext"], Awaitable[Any]]


@dataclass(frozen=True)
class ParameterContract:
    """Parameters a capability understands.

    Attributes
    ----------
    supported_fields:
        Parameter names the capability accepts; anything else is dropped by
        the plan validator.
    required_filters:
        Parameter names that must be present for a plan to be accepted.
    max_limit:
        Optional upper bound for a ``limit`` parameter.
    """

    supported_fields: Tuple[str, ...] = ()
    required_filters: Tuple[str, ...] = ()
    max_limit: Optional[int] = None

    def accepts(self, name: str) -> bool:
        return name in self.supported_fields or name in self.required_filters


@dataclass(frozen=True)
class CapabilityDefinition:
    """Immutable description of one capability.

    ``executor`` may be None for catalog-only (legacy) entries; such
    capabilities can be planned against but not executed.
    """

    id: str
    integration_id: str
    mode: CapabilityMode
    resource: str = "unknown"
    description: str = ""
    parameter_contract: ParameterContract = field(default_factory=ParameterContract)
    executor: Optional[CapabilityExecutor] = None
