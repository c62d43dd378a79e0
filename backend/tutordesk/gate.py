"""Access and eligibility checks for public assignment links.

`evaluate_gate` is the read-only state machine used both when a taker
opens a link and, authoritatively, when a submission arrives:

    token lookup -> not_found | inactive | expired_by_window | eligible

The submit path layers the time-limit and audience checks on top of an
`eligible` result. All checks raise the matching `errors` class.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from . import models
from .errors import (
    AudienceRestricted,
    Inactive,
    MissingAttemptStart,
    NotFound,
    TimeLimitExceeded,
    WindowExpired,
)


class GateState(str, Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED_BY_WINDOW = "expired_by_window"
    ELIGIBLE = "eligible"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def evaluate_gate(assignment: Optional[models.Assignment], now: datetime) -> GateState:
    if assignment is None:
        return GateState.NOT_FOUND
    if not assignment.is_active:
        return GateState.INACTIVE
    now = as_utc(now)
    available_until = as_utc(assignment.available_until)
    due_date = as_utc(assignment.due_date)
    if available_until is not None and now > available_until:
        return GateState.EXPIRED_BY_WINDOW
    if due_date is not None and now > due_date:
        return GateState.EXPIRED_BY_WINDOW
    return GateState.ELIGIBLE


def ensure_open(assignment: Optional[models.Assignment], now: datetime) -> models.Assignment:
    """Return the assignment when it is eligible, raise otherwise."""
    state = evaluate_gate(assignment, now)
    if state == GateState.NOT_FOUND:
        raise NotFound()
    if state == GateState.INACTIVE:
        raise Inactive()
    if state == GateState.EXPIRED_BY_WINDOW:
        if assignment.available_until is not None and as_utc(now) > as_utc(assignment.available_until):
            raise WindowExpired("assignment is no longer available")
        raise WindowExpired("the due date for this assignment has passed")
    return assignment


def ensure_within_time_limit(assignment: models.Assignment, started_at: Optional[datetime], now: datetime) -> None:
    """Reject attempts that ran past `time_limit_minutes`.

    Elapsed time equal to the limit is still accepted.
    """
    if not assignment.time_limit_minutes:
        return
    if started_at is None:
        raise MissingAttemptStart()
    elapsed = (as_utc(now) - as_utc(started_at)).total_seconds()
    if elapsed > assignment.time_limit_minutes * 60:
        raise TimeLimitExceeded(
            f"time limit of {assignment.time_limit_minutes} minutes exceeded"
        )


def ensure_audience(assignment: models.Assignment, student: Optional[models.Student], is_recipient: bool) -> None:
    """Restricted assignments accept only resolved students on the recipient list."""
    if assignment.audience != models.AUDIENCE_RESTRICTED:
        return
    if student is None:
        raise AudienceRestricted("this assignment is only open to selected students")
    if not is_recipient:
        raise AudienceRestricted("you are not on the recipient list for this assignment")
