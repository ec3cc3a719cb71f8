"""Reservation state machine.

    PENDING      --accept-->        ACCEPTED
    PENDING      --reject-->        REJECTED
    PENDING      --cancel-->        CANCELLED
    PENDING      --sweep-->         NO_RESPONSE   (after RESPONSE_WINDOW)
    NO_RESPONSE  --accept-->        ACCEPTED
    NO_RESPONSE  --reject-->        REJECTED
    NO_RESPONSE  --provide-phone--> NO_RESPONSE   (annotation only)
    ACCEPTED     --cancel-->        CANCELLED
"""
from datetime import datetime, timedelta, timezone
from enum import Enum


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    NO_RESPONSE = "NO_RESPONSE"


class Action(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    CANCEL = "cancel"
    SWEEP = "sweep"
    PROVIDE_PHONE = "provide-phone"


RESPONSE_WINDOW = timedelta(minutes=5)
PICKUP_WINDOW_MINUTES = 30

TERMINAL_STATUSES = frozenset({
    ReservationStatus.ACCEPTED,
    ReservationStatus.REJECTED,
    ReservationStatus.CANCELLED,
})

# action -> (allowed current statuses, resulting status)
TRANSITIONS: dict[Action, tuple[frozenset, ReservationStatus]] = {
    Action.ACCEPT: (
        frozenset({ReservationStatus.PENDING, ReservationStatus.NO_RESPONSE}),
        ReservationStatus.ACCEPTED,
    ),
    Action.REJECT: (
        frozenset({ReservationStatus.PENDING, ReservationStatus.NO_RESPONSE}),
        ReservationStatus.REJECTED,
    ),
    Action.CANCEL: (
        frozenset({ReservationStatus.PENDING, ReservationStatus.ACCEPTED}),
        ReservationStatus.CANCELLED,
    ),
    Action.SWEEP: (
        frozenset({ReservationStatus.PENDING}),
        ReservationStatus.NO_RESPONSE,
    ),
    Action.PROVIDE_PHONE: (
        frozenset({ReservationStatus.NO_RESPONSE}),
        ReservationStatus.NO_RESPONSE,
    ),
}


def allowed_sources(action: Action) -> frozenset:
    return TRANSITIONS[action][0]


def target_status(action: Action) -> ReservationStatus:
    return TRANSITIONS[action][1]


def can_apply(action: Action, status: ReservationStatus) -> bool:
    return status in allowed_sources(action)


def overdue_cutoff(now: datetime) -> datetime:
    """Reservations requested at or before this instant have used up the response window."""
    return now - RESPONSE_WINDOW


def utcnow() -> datetime:
    # naive UTC, the form every DateTime column in this service stores
    return datetime.now(timezone.utc).replace(tzinfo=None)
