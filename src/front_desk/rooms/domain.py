"""
Доменная модель контекста номеров.

Содержит сущность номера с правилами согласованности статуса,
запись журнала движений, построители текстов наблюдений
и проверку близости заезда (ProximityGuard).
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from ..shared_kernel import (
    DomainEvent,
    EntityId,
    LedgerRecord,
    RecordModel,
    ValidationException,
    ValueObject,
    format_time,
)


class RoomStatus(str, Enum):
    """Статусы номера."""

    VACANT = "vacant"  # Свободен
    OCCUPIED = "occupied"  # Занят гостем
    CLEANING = "cleaning"  # Требует уборки
    RESERVED = "reserved"  # Забронирован


class MovementType(str, Enum):
    """Типы движений в журнале номеров."""

    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    STATUS_CHANGE = "status_change"
    RESERVATION = "reservation"
    CANCELLATION = "cancellation"


class ReservationSlot(ValueObject):
    """Дата и время ожидаемого заезда."""

    date: date
    time: time

    def arrival(self) -> datetime:
        return datetime.combine(self.date, self.time)


class GuestInfo(ValueObject):
    """Гость, проживающий в номере."""

    name: str = Field(..., min_length=1)
    document: str = ""


class StayStamp(ValueObject):
    """Отметка заезда или выезда."""

    date: date
    time: time


class Room(RecordModel):
    """
    Номер в отеле.

    Инвариант: бронь есть только у забронированного номера, гость есть
    только у занятого; у свободного номера и номера на уборке нет ни того,
    ни другого.
    """

    id: EntityId = Field(..., gt=0)
    name: str = Field(..., min_length=1)
    price_per_night: Optional[float] = Field(None, ge=0)
    status: RoomStatus = RoomStatus.VACANT
    reservation: Optional[ReservationSlot] = None
    guest: Optional[GuestInfo] = None
    check_in: Optional[StayStamp] = None
    check_out: Optional[StayStamp] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _status_matches_payload(self) -> "Room":
        problem = self.consistency_problem()
        if problem:
            raise ValueError(problem)
        return self

    def consistency_problem(self) -> Optional[str]:
        """Описание нарушения инварианта или None."""
        if self.status == RoomStatus.RESERVED:
            if self.reservation is None or self.guest is not None:
                return "Reserved room must have a reservation and no guest"
        elif self.status == RoomStatus.OCCUPIED:
            if self.guest is None or self.reservation is not None:
                return "Occupied room must have a guest and no reservation"
        elif self.reservation is not None or self.guest is not None:
            return f"Room in status {self.status.value} must have neither guest nor reservation"
        return None

    def ensure_consistent(self) -> None:
        problem = self.consistency_problem()
        if problem:
            raise ValidationException(f"Номер {self.id}: {problem}")

    def reserve(self, slot: ReservationSlot) -> None:
        """Бронирует номер; сведения о прошлом проживании очищаются."""
        self.status = RoomStatus.RESERVED
        self.reservation = slot
        self.guest = None
        self.check_in = None
        self.check_out = None

    def occupy(self, guest: GuestInfo, stamp: StayStamp) -> None:
        """Заселяет гостя."""
        self.status = RoomStatus.OCCUPIED
        self.guest = guest
        self.check_in = stamp
        self.check_out = None
        self.reservation = None

    def release(self, stamp: StayStamp, requires_cleaning: bool) -> None:
        """Выселяет гостя."""
        self.status = RoomStatus.CLEANING if requires_cleaning else RoomStatus.VACANT
        self.check_out = stamp
        self.guest = None
        self.reservation = None

    def cancel_reservation(self) -> None:
        self.status = RoomStatus.VACANT
        self.reservation = None

    def override_status(
        self,
        status: RoomStatus,
        guest: Optional[GuestInfo] = None,
        reservation: Optional[ReservationSlot] = None,
    ) -> None:
        """
        Прямая смена статуса.

        Очищает только то, что несовместимо с целевым статусом.
        Для статуса "занят" нужен гость, для "забронирован" - бронь
        (переданные или уже имеющиеся у номера).
        """
        if status == RoomStatus.OCCUPIED:
            guest = guest or self.guest
            if guest is None:
                raise ValidationException(
                    f"Для перевода номера {self.id} в статус occupied нужен гость"
                )
            self.guest = guest
            self.reservation = None
        elif status == RoomStatus.RESERVED:
            reservation = reservation or self.reservation
            if reservation is None:
                raise ValidationException(
                    f"Для перевода номера {self.id} в статус reserved нужна бронь"
                )
            self.reservation = reservation
            self.guest = None
        else:
            self.guest = None
            self.reservation = None
        self.status = status


class MovementRecord(LedgerRecord):
    """Запись журнала движений номера."""

    room_id: EntityId
    room_name: str
    movement_type: MovementType
    previous_status: Optional[RoomStatus] = None
    new_status: RoomStatus
    guest_snapshot: Optional[GuestInfo] = None

    @property
    def entity_id(self) -> EntityId:
        return self.room_id

    @property
    def entity_name(self) -> str:
        return self.room_name

    @property
    def kind(self) -> str:
        return self.movement_type.value

    def searchable_fields(self) -> List[Optional[str]]:
        fields = super().searchable_fields()
        if self.guest_snapshot is not None:
            fields += [self.guest_snapshot.name, self.guest_snapshot.document]
        return fields

    def opens_state(self) -> bool:
        return self.new_status == RoomStatus.OCCUPIED


# Тексты наблюдений: по одной функции на тип движения
def reservation_observation(slot: ReservationSlot) -> str:
    return f"Reservation created for {slot.date.isoformat()} at {format_time(slot.time)}"


def check_in_observation(guest: GuestInfo) -> str:
    return f"Check-in for {guest.name}"


def check_out_observation(requires_cleaning: bool) -> str:
    if requires_cleaning:
        return "Check-out completed, requires cleaning"
    return "Check-out completed"


def cancellation_observation() -> str:
    return "Reservation cancelled"


def status_change_observation(previous: RoomStatus, new: RoomStatus) -> str:
    return f"Status changed from {previous.value} to {new.value}"


# ProximityGuard
def hours_until(reservation_date: date, reservation_time: time, now: datetime) -> float:
    """Часы до заезда; отрицательное значение - заезд уже прошел."""
    arrival = datetime.combine(reservation_date, reservation_time)
    return (arrival - now) / timedelta(hours=1)


def is_near(
    reservation_date: date,
    reservation_time: time,
    now: datetime,
    window_hours: float = 3,
) -> bool:
    """
    Проверяет, что заезд близок.

    True, если до заезда больше нуля и не больше window_hours часов.
    Прошедшие заезды и заезды за пределами окна дают False.
    """
    remaining = hours_until(reservation_date, reservation_time, now)
    return 0 < remaining <= window_hours


# События
class RoomMovementRecorded(DomainEvent):
    """Событие: номер изменил состояние, в журнал добавлена запись."""

    event_type: str = "room_movement_recorded"
    room_id: EntityId
    movement_id: int
    movement_type: MovementType
    previous_status: Optional[RoomStatus] = None
    new_status: RoomStatus


class RoomCatalogChanged(DomainEvent):
    """Событие: номер добавлен, изменен, удален или каталог импортирован."""

    event_type: str = "room_catalog_changed"
    room_id: Optional[EntityId] = None
    change: str


class RoomMovementsImported(DomainEvent):
    """Событие: журнал движений заменен пакетным импортом."""

    event_type: str = "room_movements_imported"
    count: int
