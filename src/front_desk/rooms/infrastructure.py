"""
Инфраструктурный слой контекста номеров.

Содержит хранилище номеров, журнал движений, единицу работы
и начальные данные.
"""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field

from ..shared_kernel import Ledger, NullLedger
from ..shared_kernel import interfaces as kernel_ports
from ..shared_kernel.infrastructure import InMemoryEntityStore, InMemoryUnitOfWork
from . import interfaces as ports
from .domain import (
    GuestInfo,
    MovementRecord,
    ReservationSlot,
    Room,
    RoomStatus,
    StayStamp,
)


class InMemoryRoomStore(InMemoryEntityStore[Room]):
    """Хранилище номеров в памяти."""

    def __init__(self, rooms=None, clock: Optional[kernel_ports.IClock] = None):
        super().__init__("Room", rooms, clock)


class MovementLedger(Ledger[MovementRecord]):
    """Журнал движений номеров."""


class FrontDeskUnitOfWork(InMemoryUnitOfWork, ports.IFrontDeskUnitOfWork):
    """Единица работы для номеров и журнала движений."""

    def __init__(
        self,
        rooms: Optional[InMemoryRoomStore] = None,
        movements: Optional[Ledger[MovementRecord]] = None,
        logger: Optional[kernel_ports.ILogger] = None,
    ):
        super().__init__(logger)
        self._rooms = rooms if rooms is not None else InMemoryRoomStore()
        # Без журнала записи молча отбрасываются
        self._movements = movements if movements is not None else NullLedger()

    @property
    def rooms(self) -> InMemoryRoomStore:
        return self._rooms

    @property
    def movements(self) -> Ledger[MovementRecord]:
        return self._movements

    def _stores(self):
        return [self._rooms]

    def _ledgers(self):
        return [self._movements]


def sample_rooms(now: Optional[datetime] = None) -> List[Room]:
    """Начальный набор номеров для пустого хранилища."""
    now = now or datetime.now()
    return [
        Room(
            id=1,
            name="Room 101",
            price_per_night=150,
            status=RoomStatus.VACANT,
            created_at=now,
            updated_at=now,
        ),
        Room(
            id=2,
            name="Room 102",
            price_per_night=150,
            status=RoomStatus.CLEANING,
            created_at=now,
            updated_at=now,
        ),
        Room(
            id=3,
            name="Room 103",
            price_per_night=180,
            status=RoomStatus.RESERVED,
            reservation=ReservationSlot(date=date(2024, 1, 18), time=time(15, 0)),
            created_at=now,
            updated_at=now,
        ),
        Room(
            id=4,
            name="Room 201",
            price_per_night=200,
            status=RoomStatus.OCCUPIED,
            guest=GuestInfo(name="María García", document="87654321"),
            check_in=StayStamp(date=date(2024, 1, 16), time=time(16, 0)),
            created_at=now,
            updated_at=now,
        ),
    ]


class FrontDeskSnapshot(BaseModel):
    """Снимок номеров и журнала движений для шлюза сохранения."""

    rooms: List[Room] = Field(default_factory=list)
    movements: List[MovementRecord] = Field(default_factory=list)


# Поле снимка -> ключ хранилища
FRONT_DESK_SNAPSHOT_KEYS = {
    "rooms": "rooms_data",
    "movements": "room_movements_data",
}
