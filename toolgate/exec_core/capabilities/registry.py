from __future__ import annotations

"""Capability registry.

The registry maps a capability id to its ``CapabilityDefinition`` and is the
single entry point for executing one.

``execute`` resolves the definition and only then builds the middleware chain
around it, so an unknown id fails before any middleware runs. The registry
never retries; retry policy belongs to the caller.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..errors import LegacyCapabilityError, UnknownCapabilityError
from ..runtime.context import ExecutionContext
from ..runtime.middleware import Middleware, compose, run_executor
from .base import CapabilityDefinition

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """
    In-memory mapping of capability ids to definitions.

    A registry is a process-scoped object: build it once at startup (see
    ``toolgate.exec_core.factory``) and inject it where needed.

    Notes:
        - ``register`` overwrites an existing definition with the same id and
          logs a warning; definitions are never merged.
        - ``get`` returns None for unknown ids; ``execute`` raises.
    """

    def __init__(self, middleware: Optional[Sequence[Middleware]] = None) -> None:
        """
        Initialize an empty registry.

        Args:
            middleware: Ordered middleware wrapped around every execution,
                outermost first. Empty means the executor is called directly.
        """
        self._caps: Dict[str, CapabilityDefinition] = {}
        self._middleware: List[Middleware] = list(middleware or [])

    @property
    def middleware(self) -> List[Middleware]:
        return list(self._middleware)

    def use(self, middleware: Sequence[Middleware]) -> None:
        """Replace the middleware list used for subsequent executions."""
        self._middleware = list(middleware)

    def register(self, definition: CapabilityDefinition) -> None:
        if definition.id in self._caps:
            logger.warning(f"Capability '{definition.id}' is already registered; overwriting")
        self._caps[definition.id] = definition

    def get(self, capability_id: str) -> Optional[CapabilityDefinition]:
        return self._caps.get(capability_id)

    def has(self, capability_id: str) -> bool:
        return capability_id in self._caps

    def list(self) -> List[CapabilityDefinition]:
        return list(self._caps.values())

    def list_for_integration(self, integration_id: str) -> List[CapabilityDefinition]:
        return [c for c in self._caps.values() if c.integration_id == integration_id]

    def reset(self) -> None:
        self._caps.clear()

    async def execute(self, capability_id: str, params: Dict[str, Any], context: ExecutionContext) -> Any:
        """
        Execute a registered capability through the middleware pipeline.

        Args:
            capability_id: Id of the capability to run.
            params: Parameters handed to the executor.
            context: Caller identity, grants and replay settings.

        Returns:
            Whatever the capability's executor returns (or the recorded output
            during replay).

        Raises:
            UnknownCapabilityError: If the id is not registered.
            LegacyCapabilityError: If the definition has no executor.
        """
        definition = self._caps.get(capability_id)
        if definition is None:
            raise UnknownCapabilityError(capability_id)
        if definition.executor is None:
            raise LegacyCapabilityError(capability_id)

        handler = compose(self._middleware, run_executor)
        return await handler(definition, params, context)
