"""Execution context and middleware pipeline.

The runtime turns a registered capability into one governed callable:

- ``ExecutionContext`` carries the caller's identity, permissions, the
  organization's policies and the record/replay settings of a chain.
- ``compose`` folds a list of middleware around a terminal handler.
- ``build_standard_middleware`` returns the standard order: determinism,
  permission enforcement, policy enforcement.
"""

from .context import ExecutionContext
from .middleware import (
    Handler,
    Middleware,
    Next,
    build_standard_middleware,
    compose,
    enforce_permissions,
    enforce_policies,
    run_executor,
)

__all__ = [
    "ExecutionContext",
    "Handler",
    "Middleware",
    "Next",
    "build_standard_middleware",
    "compose",
    "enforce_permissions",
    "enforce_policies",
    "run_executor",
]
