"""
Тесты обобщенного журнала движений.
"""

from datetime import date, time

import pytest
from front_desk.rooms.domain import GuestInfo, MovementRecord, MovementType, RoomStatus
from front_desk.rooms.infrastructure import MovementLedger
from front_desk.shared_kernel import NullLedger


def make_record(room_id=1, room_name="R101", on=date(2024, 2, 1), at=time(9, 0), **kwargs):
    values = dict(
        room_id=room_id,
        room_name=room_name,
        movement_type=MovementType.STATUS_CHANGE,
        previous_status=RoomStatus.VACANT,
        new_status=RoomStatus.CLEANING,
        date=on,
        time=at,
        observations="Status changed from vacant to cleaning",
        actor="System",
    )
    values.update(kwargs)
    return MovementRecord(**values)


class TestLedgerAppend:
    """Тесты добавления записей."""

    def test_ids_are_assigned_sequentially(self, clock):
        ledger = MovementLedger(clock=clock)

        first = ledger.append(make_record())
        second = ledger.append(make_record())

        assert (first.id, second.id) == (1, 2)
        assert len(ledger) == 2

    def test_append_continues_after_existing_ids(self, clock):
        ledger = MovementLedger([make_record(id=7)], clock=clock)

        assert ledger.append(make_record()).id == 8

    def test_ids_are_not_reused_after_restore(self, clock):
        ledger = MovementLedger(clock=clock)
        for _ in range(3):
            ledger.append(make_record())

        ledger.restore([])

        assert ledger.append(make_record()).id == 4

    def test_records_are_immutable(self, clock):
        ledger = MovementLedger(clock=clock)
        record = ledger.append(make_record())

        with pytest.raises(Exception):
            record.observations = "edited"

        assert ledger.get(record.id).observations == "Status changed from vacant to cleaning"

    def test_all_returns_a_copy_of_the_list(self, clock):
        ledger = MovementLedger(clock=clock)
        ledger.append(make_record())

        ledger.all().clear()

        assert len(ledger) == 1


class TestLedgerQueries:
    """Тесты запросов к журналу."""

    @pytest.fixture
    def ledger(self, clock):
        ledger = MovementLedger(clock=clock)
        ledger.append(make_record(on=date(2024, 1, 31), at=time(8, 0)))
        ledger.append(
            make_record(
                movement_type=MovementType.CHECK_IN,
                previous_status=RoomStatus.VACANT,
                new_status=RoomStatus.OCCUPIED,
                guest_snapshot=GuestInfo(name="Juan Pérez", document="12345678"),
                observations="Check-in for Juan Pérez",
                actor="Receptionist",
                at=time(14, 5),
            )
        )
        ledger.append(make_record(room_id=2, room_name="R102", at=time(14, 5)))
        ledger.append(make_record(at=time(14, 5)))
        return ledger

    def test_by_entity_orders_newest_first(self, ledger):
        records = ledger.by_entity(1)

        assert [r.id for r in records] == [4, 2, 1]

    def test_by_type_accepts_enum_and_string(self, ledger):
        assert [r.id for r in ledger.by_type(MovementType.CHECK_IN)] == [2]
        assert [r.id for r in ledger.by_type("status_change")] == [1, 3, 4]

    def test_by_date_exact(self, ledger):
        assert [r.id for r in ledger.by_date_exact(date(2024, 1, 31))] == [1]
        assert len(ledger.by_date_exact("2024-02-01")) == 3

    def test_search_is_case_insensitive_over_guest_fields(self, ledger):
        assert [r.id for r in ledger.search("juan")] == [2]
        assert [r.id for r in ledger.search("12345678")] == [2]
        assert [r.id for r in ledger.search("r102")] == [3]
        assert [r.id for r in ledger.search("RECEPTIONIST")] == [2]

    def test_stats(self, ledger):
        stats = ledger.stats(recent=2)

        assert stats.total == 4
        assert stats.counts_by_type == {"status_change": 3, "check_in": 1}
        assert stats.entities_with_open_state == 1
        assert stats.records_today == 3
        assert [r.id for r in stats.most_recent] == [4, 3]

    def test_stats_uses_configured_recent_limit(self, clock):
        ledger = MovementLedger(clock=clock, recent_limit=1)
        ledger.append(make_record())
        ledger.append(make_record())

        assert len(ledger.stats().most_recent) == 1


class TestNullLedger:
    def test_drops_writes(self):
        ledger = NullLedger()

        ledger.append(make_record())

        assert len(ledger) == 0
        assert ledger.all() == []
