"""Tests for table status derivation."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from uuid import uuid4

import pytest

from app.models.reservation import Reservation
from app.services.table_status import (
    AVAILABLE,
    OCCUPIED,
    RESERVED,
    derive_table_status,
)

DAY = date(2026, 1, 20)


def _reservation(start: time, duration: int = 60, status: str = "confirmed", day: date = DAY):
    return Reservation(
        id=uuid4(),
        table_id=uuid4(),
        user_id="u",
        reservation_date=day,
        reservation_time=start,
        duration_minutes=duration,
        guest_count=2,
        status=status,
    )


def _at(hour: int, minute: int) -> datetime:
    return datetime.combine(DAY, time(hour, minute))


class TestDeriveTableStatus:
    """Lunch service: one confirmed 13:00-14:00 reservation and one at 16:00."""

    def setup_method(self):
        self.lunch = _reservation(time(13, 0))
        self.afternoon = _reservation(time(16, 0))
        self.reservations = [self.lunch, self.afternoon]

    def test_in_progress_is_occupied(self):
        decision = derive_table_status(self.reservations, _at(13, 5))
        assert decision.status == OCCUPIED
        assert decision.reservation_id == self.lunch.id
        assert "14:00" in decision.reason

    def test_within_buffer_is_occupied(self):
        decision = derive_table_status(self.reservations, _at(12, 30))
        assert decision.status == OCCUPIED
        assert decision.reservation_id == self.lunch.id

    def test_exactly_buffer_away_is_occupied(self):
        decision = derive_table_status(self.reservations, _at(15, 0))
        assert decision.status == OCCUPIED
        assert decision.reservation_id == self.afternoon.id

    def test_beyond_buffer_is_reserved(self):
        decision = derive_table_status(self.reservations, _at(14, 30))
        assert decision.status == RESERVED
        assert decision.reservation_id == self.afternoon.id
        assert "16:00" in decision.reason

    def test_end_is_exclusive(self):
        decision = derive_table_status([self.lunch], _at(14, 0))
        assert decision.status == AVAILABLE

    def test_after_last_reservation_is_available(self):
        decision = derive_table_status(self.reservations, _at(17, 30))
        assert decision.status == AVAILABLE
        assert decision.reservation_id is None

    def test_empty_is_available(self):
        assert derive_table_status([], _at(12, 0)).status == AVAILABLE

    def test_order_independent(self):
        forward = derive_table_status(self.reservations, _at(14, 30))
        backward = derive_table_status(list(reversed(self.reservations)), _at(14, 30))
        assert forward == backward

    @pytest.mark.parametrize("status", ["pending", "cancelled", "completed"])
    def test_ignores_non_confirmed(self, status):
        decision = derive_table_status([_reservation(time(13, 0), status=status)], _at(13, 5))
        assert decision.status == AVAILABLE

    def test_ignores_other_days(self):
        tomorrow = _reservation(time(13, 0), day=DAY + timedelta(days=1))
        yesterday = _reservation(time(13, 0), day=DAY - timedelta(days=1))
        decision = derive_table_status([tomorrow, yesterday], _at(13, 5))
        assert decision.status == AVAILABLE

    def test_custom_buffer(self):
        decision = derive_table_status(self.reservations, _at(12, 30), buffer_minutes=15)
        assert decision.status == RESERVED

    def test_in_progress_wins_over_upcoming(self):
        back_to_back = _reservation(time(14, 0))
        decision = derive_table_status([self.lunch, back_to_back], _at(13, 50))
        assert decision.status == OCCUPIED
        assert decision.reservation_id == self.lunch.id


class TestAfternoonBooking:
    """One confirmed 14:00 reservation for 60 minutes, seen across the day."""

    @pytest.mark.parametrize(
        "hour,minute,expected",
        [
            (12, 30, RESERVED),
            (13, 5, OCCUPIED),
            (14, 30, OCCUPIED),
            (15, 30, AVAILABLE),
        ],
    )
    def test_status_through_the_day(self, hour, minute, expected):
        booking = _reservation(time(14, 0))
        assert derive_table_status([booking], _at(hour, minute)).status == expected


class TestSubMinuteNow:
    """``now`` carries seconds; reservation windows are whole minutes."""

    def test_last_second_of_window_is_occupied(self):
        booking = _reservation(time(13, 0))
        now = datetime.combine(DAY, time(13, 59, 59))
        assert derive_table_status([booking], now).status == OCCUPIED

    def test_seconds_past_end_is_available(self):
        booking = _reservation(time(13, 0))
        now = datetime.combine(DAY, time(14, 0, 10))
        assert derive_table_status([booking], now).status == AVAILABLE
