"""Tests for the role/operation authorization table."""

from __future__ import annotations

import pytest

from otpdesk.auth.permissions import allow
from otpdesk.models import Operation, Role


@pytest.mark.parametrize(
    "role,operation,expected",
    [
        (Role.ADMIN, Operation.READ, True),
        (Role.ADMIN, Operation.MUTATE, True),
        (Role.VIEWER, Operation.READ, True),
        (Role.VIEWER, Operation.MUTATE, False),
    ],
)
def test_permission_table(role, operation, expected):
    assert allow(role, operation) is expected


def test_plain_strings_accepted():
    assert allow("admin", "mutate") is True
    assert allow("viewer", "mutate") is False


@pytest.mark.parametrize("role", ["root", "ADMIN", "", None, 0, object()])
@pytest.mark.parametrize("operation", list(Operation))
def test_unknown_roles_denied(role, operation):
    assert allow(role, operation) is False


@pytest.mark.parametrize("operation", ["delete", "", None])
def test_unknown_operations_denied(operation):
    assert allow(Role.ADMIN, operation) is False
