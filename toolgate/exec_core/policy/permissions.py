"""Permission matching over a caller's granted permission set."""

from __future__ import annotations

from typing import Iterable, List

from ..schemas.domain import WILDCARD, AccessLevel, CapabilityMode, Permission


def required_access(mode: CapabilityMode) -> AccessLevel:
    """Map a capability mode to the access it needs: ``read`` only for read capabilities."""
    return AccessLevel.read if mode == CapabilityMode.read else AccessLevel.write


def _matches(granted: str, requested: str) -> bool:
    return granted == WILDCARD or granted == requested


def check_permission(
    permissions: Iterable[Permission],
    integration_id: str,
    capability_id: str,
    access: AccessLevel,
) -> bool:
    """
    Check whether any permission entry grants ``access``.

    Integration and capability match exactly or via ``"*"``; access must match
    exactly, so a ``write`` grant does not imply ``read``.
    """
    for perm in permissions:
        if (
            _matches(perm.integration, integration_id)
            and _matches(perm.capability, capability_id)
            and perm.access == access
        ):
            return True
    return False


def narrow_permissions(granted: Iterable[Permission], requested: Iterable[Permission]) -> List[Permission]:
    """
    Keep the requested permissions that a granted entry already covers.

    A requested wildcard survives only against a granted wildcard, so the
    result can never hold more access than ``granted``.
    """
    granted = list(granted)
    return [
        req
        for req in requested
        if any(
            _matches(g.integration, req.integration) and _matches(g.capability, req.capability) and g.access == req.access
            for g in granted
        )
    ]
