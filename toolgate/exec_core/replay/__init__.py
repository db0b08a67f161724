"""Deterministic record/replay of capability executions.

- ``TraceStore``: append-only, process-scoped log of recorded steps per trace id.
- ``ReplayCursor``: explicit replay position owned by the caller.
- ``DeterminismRecorder``: the middleware implementing ``none``/``record``/``replay``.
- ``step_hash``: stable content hash of ``(capability id, params)``.
"""

from .recorder import DEFAULT_TRACE_ID, DeterminismRecorder, step_hash
from .trace_store import ReplayCursor, TraceStep, TraceStore

__all__ = [
    "DEFAULT_TRACE_ID",
    "DeterminismRecorder",
    "ReplayCursor",
    "TraceStep",
    "TraceStore",
    "step_hash",
]
