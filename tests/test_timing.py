"""Unit tests for the booking time status calculation."""

from datetime import date, datetime, time, timedelta

from domain.timing import (
    AUTO_CANCEL_CANDIDATE,
    COUNTDOWN,
    LATE,
    NONE,
    is_overdue,
    time_status,
)

DAY = date(2026, 5, 4)
START = time(10, 0)
STARTS_AT = datetime.combine(DAY, START)


def status_at(offset_minutes, seconds=0):
    """Status when `now` is start + offset."""
    now = STARTS_AT + timedelta(minutes=offset_minutes, seconds=seconds)
    return time_status(DAY, START, now)


class TestTimeStatus:

    def test_exactly_at_start_is_none(self):
        assert status_at(0).kind == NONE

    def test_exactly_thirty_minutes_before_is_countdown(self):
        status = status_at(-30)
        assert status.kind == COUNTDOWN
        assert status.minutes == 30
        assert status.message == "Service starts in 30 minutes"

    def test_more_than_thirty_minutes_before_is_none(self):
        assert status_at(-30, seconds=-1).kind == NONE
        assert status_at(-120).kind == NONE

    def test_one_minute_before_is_countdown(self):
        status = status_at(-1)
        assert status.kind == COUNTDOWN
        assert status.minutes == 1

    def test_partial_minutes_round_up(self):
        """Thirty seconds to go still shows one minute."""
        status = status_at(0, seconds=-30)
        assert status.kind == COUNTDOWN
        assert status.minutes == 1

    def test_exactly_fifteen_minutes_late_is_late(self):
        status = status_at(15)
        assert status.kind == LATE
        assert status.minutes == 15
        assert status.message == "You are 15 minutes late!"

    def test_just_after_start_is_late(self):
        assert status_at(0, seconds=1).kind == LATE

    def test_past_grace_is_auto_cancel_candidate(self):
        status = status_at(15, seconds=1)
        assert status.kind == AUTO_CANCEL_CANDIDATE
        assert status.message == "Service auto-cancelled due to no-show"
        assert status_at(240).kind == AUTO_CANCEL_CANDIDATE

    def test_custom_windows(self):
        now = STARTS_AT - timedelta(minutes=45)
        assert time_status(DAY, START, now, countdown_minutes=60).kind == COUNTDOWN
        now = STARTS_AT + timedelta(minutes=20)
        assert time_status(DAY, START, now, late_grace_minutes=30).kind == LATE

    def test_to_dict_shape(self):
        assert status_at(-10).to_dict() == {
            "type": COUNTDOWN,
            "minutes": 10,
            "message": "Service starts in 10 minutes",
        }
        assert status_at(0).to_dict() == {"type": NONE, "minutes": 0, "message": ""}


class TestIsOverdue:

    def test_overdue_only_past_grace(self):
        assert is_overdue(DAY, START, STARTS_AT + timedelta(minutes=16))
        assert not is_overdue(DAY, START, STARTS_AT + timedelta(minutes=15))
        assert not is_overdue(DAY, START, STARTS_AT - timedelta(minutes=5))
