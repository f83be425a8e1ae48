from datetime import date

import pytest

from gymdesk.core.errors import ConflictError, InvalidTransitionError
from gymdesk.services import lifecycle


@pytest.mark.parametrize(
    "status, action, expected",
    [
        ("active", "freeze", "frozen"),
        ("active", "cancel", "cancelled"),
        ("frozen", "unfreeze", "active"),
        ("frozen", "cancel", "cancelled"),
    ],
)
def test_allowed_transitions(status, action, expected):
    assert lifecycle.next_status(action, status) == expected


@pytest.mark.parametrize(
    "status, action",
    [
        ("active", "unfreeze"),
        ("frozen", "freeze"),
        ("cancelled", "freeze"),
        ("cancelled", "unfreeze"),
        ("cancelled", "cancel"),
        ("expired", "freeze"),
        ("expired", "cancel"),
    ],
)
def test_illegal_transitions(status, action):
    with pytest.raises(InvalidTransitionError) as exc_info:
        lifecycle.next_status(action, status)
    assert status in exc_info.value.message
    assert exc_info.value.status_code == 409


def test_invalid_transition_is_a_conflict():
    assert issubclass(InvalidTransitionError, ConflictError)


def test_payment_capability():
    assert lifecycle.can("pay", "active")
    assert lifecycle.can("pay", "frozen")
    assert lifecycle.can("pay", "expired")
    assert not lifecycle.can("pay", "cancelled")


def test_cancelled_is_not_editable():
    with pytest.raises(InvalidTransitionError):
        lifecycle.ensure_can_edit("cancelled", ["notes"])


def test_expired_only_allows_bookkeeping_edits():
    lifecycle.ensure_can_edit("expired", ["notes", "auto_renew"])
    with pytest.raises(InvalidTransitionError) as exc_info:
        lifecycle.ensure_can_edit("expired", ["notes", "end_date"])
    assert "end_date" in exc_info.value.message


def test_is_overdue():
    today = date(2024, 2, 1)
    assert lifecycle.is_overdue("active", date(2024, 1, 31), today)
    assert not lifecycle.is_overdue("active", date(2024, 2, 1), today)
    assert not lifecycle.is_overdue("frozen", date(2024, 1, 1), today)
