from __future__ import annotations

"""Trace storage and replay position.

``TraceStore`` is the append-only log of recorded capability calls, keyed by
trace id. It is a process-scoped object: build one at startup, inject it into
the ``DeterminismRecorder`` and call ``reset`` between test runs. Concurrent
writers to the same trace id are last-write-wins; nothing here locks.

``ReplayCursor`` is the explicit replay position for one replayed chain. The
caller owns it (normally through ``ExecutionContext.cursor``) and must reuse
the same cursor for every call of the chain being replayed.
"""

import copy
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class TraceStep:
    """One recorded capability call."""

    step_hash: str
    input: Dict[str, Any]
    output: Any
    timestamp: float = field(default_factory=time.time)


@dataclass
class ReplayCursor:
    """Position of the next recorded step to consume."""

    position: int = 0

    def advance(self) -> int:
        """Move to the next step and return the new position."""
        self.position += 1
        return self.position

    def rewind(self) -> None:
        self.position = 0


class TraceStore:
    """In-memory mapping of trace id to its ordered list of steps."""

    def __init__(self) -> None:
        self._traces: Dict[str, List[TraceStep]] = {}

    def append(self, trace_id: str, step: TraceStep) -> None:
        self._traces.setdefault(trace_id, []).append(step)

    def get(self, trace_id: str) -> Optional[List[TraceStep]]:
        """Return a copy of the steps for ``trace_id``, or None if nothing was recorded."""
        steps = self._traces.get(trace_id)
        if steps is None:
            return None
        return list(steps)

    def step(self, trace_id: str, index: int) -> Optional[TraceStep]:
        steps = self._traces.get(trace_id)
        if steps is None or index < 0 or index >= len(steps):
            return None
        return steps[index]

    def has(self, trace_id: str) -> bool:
        return trace_id in self._traces

    def trace_ids(self) -> List[str]:
        return list(self._traces)

    def reset(self) -> None:
        self._traces.clear()


def snapshot(value: Any) -> Any:
    """Deep-copy a recorded input/output so later mutation by callers cannot alter the trace."""
    return copy.deepcopy(value)
