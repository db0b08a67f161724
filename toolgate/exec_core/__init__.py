"""Capability execution core.

This package is the governed layer between upstream planners and third-party
integrations.

Design overview
---------------

- ``capabilities``: typed, permissioned units of integration work held in a
  ``CapabilityRegistry``.
- ``runtime``: the middleware pipeline every execution goes through, outermost
  first: determinism (record/replay), permission enforcement, policy
  enforcement, then the capability's executor.
- ``replay``: trace store and the record/replay middleware.
- ``policy``: permission matching and the organization ``PolicyEngine``.
- ``planning``: compiles declarative dashboard specs into validated plans
  and executes them with per-view error isolation.
- ``sandbox``: static validation of AI-produced intent graphs.
- ``scheduling``: TTL-based metric scheduling with an execution lifecycle.
- ``repos``: persistence Protocols and their SQLAlchemy implementations.

Typical usage
-------------

1. Build an ``ExecRuntime`` with ``build_runtime`` once at startup.
2. Build an ``ExecutionContext`` per caller with ``ExecRuntime.context_for``.
3. Execute single capabilities via ``registry.execute`` or whole specs via
   ``executor.execute``.
"""

from .capabilities import CapabilityDefinition, CapabilityRegistry, ParameterContract
from .factory import ExecRuntime, build_default_registry, build_runtime
from .runtime import ExecutionContext

__all__ = [
    "CapabilityDefinition",
    "CapabilityRegistry",
    "ExecRuntime",
    "ExecutionContext",
    "ParameterContract",
    "build_default_registry",
    "build_runtime",
]
