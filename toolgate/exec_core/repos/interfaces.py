from __future__ import annotations

"""Repository interface contracts.

The planning and scheduling layers depend on these Protocols instead of
concrete persistence implementations.

Contract guidelines
-------------------

- All methods are async.
- Implementations must not leak sessions or transactions to callers; each
  method is its own unit of work.
- ``MetricExecutionRepository.update_status`` enforces the execution
  lifecycle (pending -> running -> completed|failed) and raises
  ``ExecutionStateError`` for any other transition.
- ``PermissionGrantRepository`` is server-side truth for access; callers may
  narrow it per request but never extend it.
- Concurrent writers to the same row are last-write-wins.
"""

from typing import Any, List, Optional, Protocol

from ..policy.models import OrgPolicy
from ..schemas.domain import Permission
from ..schemas.metrics import Metric, MetricExecution, MetricExecutionStatus


class MetricRepository(Protocol):
    """Persist and query metric definitions."""

    async def get(self, metric_id: str) -> Optional[Metric]: ...

    async def save(self, metric: Metric) -> None:
        """Insert or replace the metric with the same id."""
        ...

    async def list_scheduled(self, org_id: Optional[str] = None) -> List[Metric]:
        """
        List metrics whose execution policy is ``scheduled``.

        Args:
            org_id: Restrict to one organization when given.
        """
        ...


class MetricExecutionRepository(Protocol):
    """Persist metric execution rows and their lifecycle."""

    async def create(self, metric_id: str, triggered_by: str) -> MetricExecution:
        """Create a new ``pending`` execution row and return it."""
        ...

    async def get(self, execution_id: str) -> Optional[MetricExecution]: ...

    async def update_status(
        self,
        execution_id: str,
        status: MetricExecutionStatus,
        *,
        result: Any = None,
        error: Optional[str] = None,
    ) -> Optional[MetricExecution]:
        """
        Move an execution to ``status``.

        Args:
            execution_id: The execution to update.
            status: Requested status.
            result: Result payload, required for ``completed``.
            error: Error message, required for ``failed``.

        Returns:
            The updated execution, or None if the id is unknown.

        Raises:
            ExecutionStateError: If the transition is not allowed.
        """
        ...

    async def latest_completed(self, metric_id: str) -> Optional[MetricExecution]:
        """Return the most recently completed execution of ``metric_id``."""
        ...


class ConnectionRepository(Protocol):
    """Integration connections per organization."""

    async def list_connected_integrations(self, org_id: str) -> List[str]: ...

    async def upsert(self, org_id: str, integration_id: str, *, encrypted_credentials: Optional[str] = None) -> None:
        ...


class OrgPolicyRepository(Protocol):
    """Organization policies consulted by the policy middleware."""

    async def list_for_org(self, org_id: str) -> List[OrgPolicy]: ...

    async def save(self, policy: OrgPolicy) -> None: ...


class PermissionGrantRepository(Protocol):
    """Stored permission grants; the only source of a caller's access."""

    async def list_for_subject(self, org_id: str, user_id: Optional[str] = None) -> List[Permission]:
        """
        Return the organization-wide grants of ``org_id``, plus the grants of
        ``user_id`` when one is given.
        """
        ...

    async def grant(self, org_id: str, permission: Permission, *, user_id: Optional[str] = None) -> None: ...
