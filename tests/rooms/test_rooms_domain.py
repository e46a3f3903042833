"""
Тесты доменной модели номеров.
"""

from datetime import date, datetime, time, timedelta

import pytest
from front_desk.rooms.domain import (
    GuestInfo,
    ReservationSlot,
    Room,
    RoomStatus,
    StayStamp,
    check_out_observation,
    hours_until,
    is_near,
    reservation_observation,
    status_change_observation,
)
from front_desk.shared_kernel import ValidationException
from pydantic import ValidationError

NOW = datetime(2024, 2, 1, 10, 0)


def arrival_at(moment: datetime):
    return moment.date(), moment.time()


class TestProximityGuard:
    """Тесты проверки близости заезда."""

    def test_exactly_at_window_is_near(self):
        assert is_near(*arrival_at(NOW + timedelta(hours=3)), NOW) is True

    def test_one_second_past_window_is_not_near(self):
        assert is_near(*arrival_at(NOW + timedelta(hours=3, seconds=1)), NOW) is False

    def test_past_arrival_is_not_near(self):
        assert is_near(*arrival_at(NOW - timedelta(seconds=1)), NOW) is False

    def test_arrival_right_now_is_not_near(self):
        assert is_near(*arrival_at(NOW), NOW) is False

    def test_custom_window(self):
        assert is_near(*arrival_at(NOW + timedelta(hours=5)), NOW, window_hours=6)
        assert not is_near(*arrival_at(NOW + timedelta(hours=5)), NOW, window_hours=4)

    def test_hours_until(self):
        assert hours_until(date(2024, 2, 1), time(14, 30), NOW) == 4.5
        assert hours_until(date(2024, 2, 1), time(9, 0), NOW) == -1


class TestRoomConsistency:
    """Инвариант: бронь только у reserved, гость только у occupied."""

    def test_new_room_is_vacant(self):
        room = Room(id=1, name="R101")

        assert room.status == RoomStatus.VACANT
        assert room.guest is None and room.reservation is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"status": "reserved"},
            {"status": "occupied"},
            {"status": "vacant", "guest": {"name": "Juan Pérez"}},
            {"status": "cleaning", "reservation": {"date": "2024-02-01", "time": "14:00"}},
            {
                "status": "occupied",
                "guest": {"name": "Juan Pérez"},
                "reservation": {"date": "2024-02-01", "time": "14:00"},
            },
        ],
    )
    def test_inconsistent_rooms_are_rejected(self, payload):
        with pytest.raises(ValidationError):
            Room(id=1, name="R101", **payload)

    def test_negative_price_is_rejected(self):
        with pytest.raises(ValidationError):
            Room(id=1, name="R101", price_per_night=-1)

    def test_camel_case_input_is_accepted(self):
        room = Room.model_validate(
            {
                "id": 3,
                "name": "R103",
                "pricePerNight": 180,
                "status": "reserved",
                "reservation": {"date": "2024-01-18", "time": "15:00"},
            }
        )

        assert room.price_per_night == 180
        assert room.to_record()["pricePerNight"] == 180

    def test_release_clears_guest_and_sets_check_out(self):
        room = Room(id=1, name="R101")
        room.occupy(
            GuestInfo(name="Juan Pérez", document="12345678"),
            StayStamp(date=date(2024, 2, 1), time=time(14, 5)),
        )

        room.release(StayStamp(date=date(2024, 2, 3), time=time(11, 0)), requires_cleaning=False)

        assert room.status == RoomStatus.VACANT
        assert room.guest is None
        assert room.check_in is not None
        room.ensure_consistent()

    def test_override_to_occupied_requires_guest(self):
        room = Room(id=1, name="R101")

        with pytest.raises(ValidationException):
            room.override_status(RoomStatus.OCCUPIED)

    def test_override_to_reserved_keeps_existing_reservation(self):
        slot = ReservationSlot(date=date(2024, 2, 1), time=time(14, 0))
        room = Room(id=1, name="R101", status=RoomStatus.RESERVED, reservation=slot)

        room.override_status(RoomStatus.RESERVED)

        assert room.reservation == slot


class TestObservations:
    def test_texts_are_deterministic(self):
        slot = ReservationSlot(date="2024-02-01", time="14:00")

        assert reservation_observation(slot) == "Reservation created for 2024-02-01 at 14:00"
        assert check_out_observation(True) == "Check-out completed, requires cleaning"
        assert check_out_observation(False) == "Check-out completed"
        assert (
            status_change_observation(RoomStatus.VACANT, RoomStatus.CLEANING)
            == "Status changed from vacant to cleaning"
        )
