from __future__ import annotations

"""Execution context threaded through the middleware pipeline.

One ``ExecutionContext`` describes a single execution chain: who is calling
(``org_id``/``user_id``), what they are allowed to do (``permissions``), which
organization rules apply (``policies``) and how record/replay behaves.

The context is the only mutable object in a chain: during replay the
``cursor`` advances by one per consumed step. Reuse the same context (or at
least the same cursor) for every call of a replayed chain, and serialize those
calls; concurrent calls sharing one cursor are unsafe.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..policy.models import OrgPolicy
from ..replay.trace_store import ReplayCursor
from ..schemas.domain import Permission, ReplayMode


@dataclass
class ExecutionContext:
    """Caller identity, grants and replay settings for one execution chain.

    Attributes
    ----------
    org_id:
        Organization the call is made on behalf of.
    permissions:
        Grants checked by the permission middleware.
    policies:
        Organization policies checked by the policy middleware.
    replay_mode:
        ``none`` (passthrough), ``record`` or ``replay``.
    trace_id:
        Trace to record into or replay from.
    cursor:
        Replay position; advanced by the determinism recorder.
    deps:
        Runtime services handed to capability executors (credentials,
        integration clients). See ``toolgate.exec_core.providers``.
    frequency:
        Optional call frequency reported to frequency-capping policies.
    """

    org_id: str
    user_id: Optional[str] = None
    permissions: List[Permission] = field(default_factory=list)
    policies: List[OrgPolicy] = field(default_factory=list)
    replay_mode: ReplayMode = ReplayMode.none
    trace_id: Optional[str] = None
    cursor: ReplayCursor = field(default_factory=ReplayCursor)
    deps: Any = None
    frequency: Optional[float] = None

    @property
    def step_index(self) -> int:
        """Index of the next recorded step replay will consume."""
        return self.cursor.position
