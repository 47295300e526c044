"""Role-based authorization: a pure table lookup, deny by default."""

from __future__ import annotations

from otpdesk.models import Operation, Role

PERMISSIONS: dict[Role, frozenset[Operation]] = {
    Role.ADMIN: frozenset({Operation.READ, Operation.MUTATE}),
    Role.VIEWER: frozenset({Operation.READ}),
}


def allow(role: object, operation: object) -> bool:
    """Return True only for a known role granted the given operation."""
    try:
        granted = PERMISSIONS.get(Role(role))
        op = Operation(operation)
    except (ValueError, TypeError):
        return False
    return granted is not None and op in granted
