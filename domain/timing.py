"""Time status of a booked slot relative to the wall clock.

Used to show "starts in N minutes" / "you are N minutes late" hints and to
decide which bookings the overdue sweep may cancel.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

COUNTDOWN = "countdown"
LATE = "late"
AUTO_CANCEL_CANDIDATE = "auto_cancel_candidate"
NONE = "none"

DEFAULT_COUNTDOWN_MINUTES = 30
DEFAULT_LATE_GRACE_MINUTES = 15


@dataclass(frozen=True)
class TimeStatus:
    kind: str
    minutes: int = 0
    message: str = ""

    def to_dict(self) -> dict:
        return {"type": self.kind, "minutes": self.minutes, "message": self.message}


def time_status(
    slot_date: date,
    slot_start_time: time,
    now: datetime,
    countdown_minutes: int = DEFAULT_COUNTDOWN_MINUTES,
    late_grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
) -> TimeStatus:
    starts_at = datetime.combine(slot_date, slot_start_time)
    delta = starts_at - now

    if timedelta(0) < delta <= timedelta(minutes=countdown_minutes):
        minutes = _whole_minutes(delta)
        return TimeStatus(COUNTDOWN, minutes, f"Service starts in {minutes} minutes")

    overdue = -delta
    if timedelta(0) < overdue <= timedelta(minutes=late_grace_minutes):
        minutes = _whole_minutes(overdue)
        return TimeStatus(LATE, minutes, f"You are {minutes} minutes late!")

    if overdue > timedelta(minutes=late_grace_minutes):
        return TimeStatus(
            AUTO_CANCEL_CANDIDATE,
            _whole_minutes(overdue),
            "Service auto-cancelled due to no-show",
        )

    return TimeStatus(NONE)


def is_overdue(slot_date: date, slot_start_time: time, now: datetime,
               late_grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES) -> bool:
    status = time_status(slot_date, slot_start_time, now, late_grace_minutes=late_grace_minutes)
    return status.kind == AUTO_CANCEL_CANDIDATE


def _whole_minutes(delta: timedelta) -> int:
    # a partial minute still counts, so "starts in 0 minutes" never shows
    seconds = int(delta.total_seconds())
    return max(1, -(-seconds // 60))
