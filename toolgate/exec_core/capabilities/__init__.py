"""Capability definitions, registry and built-in catalog.

- ``CapabilityDefinition``/``ParameterContract``: immutable description of one
  unit of integration work.
- ``CapabilityRegistry``: keyed store and governed ``execute`` entry point.
- ``register_builtin_capabilities``: installs the integration catalog.
"""

from .base import CapabilityDefinition, CapabilityExecutor, ParameterContract
from .builtin import build_catalog, integration_executor, register_builtin_capabilities
from .registry import CapabilityRegistry

__all__ = [
    "CapabilityDefinition",
    "CapabilityExecutor",
    "ParameterContract",
    "CapabilityRegistry",
    "build_catalog",
    "integration_executor",
    "register_builtin_capabilities",
]
