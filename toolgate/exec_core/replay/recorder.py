from __future__ import annotations

"""Determinism middleware: record and replay capability calls.

``DeterminismRecorder`` is the outermost middleware of the standard pipeline.
Its behaviour depends on ``ExecutionContext.replay_mode``:

- ``none``: passthrough, nothing is recorded.
- ``record``: run the rest of the pipeline, then append
  ``{step_hash, input, output, timestamp}`` to the trace.
- ``replay``: do not run the rest of the pipeline (no side effects). Return
  the output recorded at the cursor position and advance the cursor.

Because replay skips everything inside it, the recorder must sit *outside*
the permission and policy middleware: a recorded call was already governed
when it ran, and a replay never reaches an integration.

Step hashes are computed over ``{capability id, params}``. A mismatch between
the recorded and the fresh hash means the inputs changed; by default this is
logged and the recorded output is still returned. With ``strict=True`` the
mismatch raises ``ReplayDivergenceError`` instead.
"""

import hashlib
import json
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict

from ..errors import ReplayDivergenceError, TraceNotFoundError
from ..schemas.domain import ReplayMode
from .trace_store import TraceStep, TraceStore, snapshot

if TYPE_CHECKING:
    from ..capabilities.base import CapabilityDefinition
    from ..runtime.context import ExecutionContext

logger = logging.getLogger(__name__)

DEFAULT_TRACE_ID = "default"


def step_hash(capability_id: str, params: Dict[str, Any]) -> str:
    """Stable sha256 over the capability id and its parameters."""
    payload = json.dumps({"cap": capability_id, "params": params}, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class DeterminismRecorder:
    """Record/replay middleware bound to one ``TraceStore``."""

    def __init__(self, store: TraceStore, *, strict: bool = False) -> None:
        """
        Args:
            store: Trace store shared by every pipeline in the process.
            strict: Raise on step-hash mismatch instead of warning.
        """
        self._store = store
        self._strict = strict

    @property
    def store(self) -> TraceStore:
        return self._store

    @property
    def strict(self) -> bool:
        return self._strict

    async def __call__(
        self,
        capability: CapabilityDefinition,
        params: Dict[str, Any],
        context: ExecutionContext,
        next: Callable[[], Awaitable[Any]],
    ) -> Any:
        mode = context.replay_mode or ReplayMode.none
        if mode == ReplayMode.none:
            return await next()

        fresh_hash = step_hash(capability.id, params)

        if mode == ReplayMode.record:
            result = await next()
            trace_id = context.trace_id or DEFAULT_TRACE_ID
            self._store.append(
                trace_id,
                TraceStep(step_hash=fresh_hash, input=snapshot(params), output=snapshot(result)),
            )
            logger.debug(f"Recorded step for {capability.id} into trace '{trace_id}'")
            return result

        return self._replay(capability, context, fresh_hash)

    def _replay(self, capability: CapabilityDefinition, context: ExecutionContext, fresh_hash: str) -> Any:
        trace_id = context.trace_id
        if trace_id is None or not self._store.has(trace_id):
            raise TraceNotFoundError(trace_id)

        index = context.cursor.position
        recorded = self._store.step(trace_id, index)
        if recorded is None:
            raise ReplayDivergenceError(trace_id, index, "no recorded step at this index")

        if recorded.step_hash != fresh_hash:
            if self._strict:
                raise ReplayDivergenceError(trace_id, index, f"step hash mismatch for {capability.id}")
            logger.warning(
                f"Replay step hash mismatch in trace '{trace_id}' at step {index} "
                f"({capability.id}); inputs may have changed"
            )

        logger.info(f"Replay: skipping execution of {capability.id}, returning recorded result")
        context.cursor.advance()
        return snapshot(recorded.output)
