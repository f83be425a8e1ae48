"""
Subscription lifecycle rules shared by memberships and trainings
"""
from datetime import date
from typing import Iterable

from gymdesk.core.errors import InvalidTransitionError

ACTIVE = "active"
FROZEN = "frozen"
CANCELLED = "cancelled"
EXPIRED = "expired"

# status -> actions allowed in that status
CAPABILITIES = {
    ACTIVE: {"freeze", "cancel", "edit", "pay"},
    FROZEN: {"unfreeze", "cancel", "edit", "pay"},
    CANCELLED: set(),
    EXPIRED: {"edit", "pay"},
}

TRANSITIONS = {
    "freeze": FROZEN,
    "unfreeze": ACTIVE,
    "cancel": CANCELLED,
}

ACTION_VERBS = {
    "freeze": "freeze",
    "unfreeze": "unfreeze",
    "cancel": "cancel",
    "edit": "edit",
    "pay": "record a payment for",
}

# Expired subscriptions only keep their bookkeeping fields editable
EXPIRED_EDITABLE_FIELDS = {"notes", "auto_renew"}


def can(action: str, status: str) -> bool:
    return action in CAPABILITIES.get(status, set())


def ensure_can(action: str, status: str) -> None:
    if not can(action, status):
        raise InvalidTransitionError(ACTION_VERBS.get(action, action), status)


def next_status(action: str, status: str) -> str:
    """Return the status reached by applying a lifecycle action."""
    ensure_can(action, status)
    return TRANSITIONS[action]


def ensure_can_edit(status: str, fields: Iterable[str]) -> None:
    ensure_can("edit", status)
    if status == EXPIRED:
        blocked = sorted(set(fields) - EXPIRED_EDITABLE_FIELDS)
        if blocked:
            raise InvalidTransitionError(f"change {', '.join(blocked)} on", status)


def is_overdue(status: str, end_date: date, today: date) -> bool:
    """Active subscriptions past their end date are due to expire. Frozen ones never are."""
    return status == ACTIVE and end_date < today
