"""
Прикладной слой контекста номеров.

Содержит машину состояний номера (RoomLifecycleEngine), сервис каталога
номеров и сервис истории движений. Ожидаемые ошибки не выбрасываются:
сервисы возвращают RoomOperationResult.
"""

from datetime import date, time
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ValidationError

from ..shared_kernel import (
    DomainException,
    EntityId,
    InvalidTransitionException,
    LedgerStats,
    OperationResult,
    SystemClock,
    ValidationException,
    split_moment,
)
from ..shared_kernel import interfaces as kernel_ports
from ..shared_kernel.infrastructure import LoggingAdapter
from ..shared_kernel.transfer import select_valid_records
from . import interfaces as ports
from .domain import (
    GuestInfo,
    MovementRecord,
    MovementType,
    ReservationSlot,
    Room,
    RoomCatalogChanged,
    RoomMovementRecorded,
    RoomMovementsImported,
    RoomStatus,
    StayStamp,
    cancellation_observation,
    check_in_observation,
    check_out_observation,
    hours_until,
    is_near,
    reservation_observation,
    status_change_observation,
)

DateInput = Union[date, str]
TimeInput = Union[time, str]

ROOM_REQUIRED_FIELDS = ("id", "name", "status")
MOVEMENT_REQUIRED_FIELDS = ("id", "room_id", "date")


class RoomOperationResult(OperationResult):
    """Результат операции над номером."""

    room: Optional[Room] = None
    movement: Optional[MovementRecord] = None


class RoomStatistics(BaseModel):
    """Сводка по номерам."""

    total: int
    vacant: int
    occupied: int
    cleaning: int
    reserved: int
    potential_revenue: float
    occupancy_rate: int  # Процент занятых номеров, округленный
    upcoming_reservations: List[Room]


def _validation_error(e: ValidationError) -> ValidationException:
    return ValidationException(
        "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}"
            for err in e.errors()
        )
    )


class RoomLifecycleEngine:
    """
    Машина состояний номера.

    Единственный санкционированный способ менять статус номера. Каждое
    изменение номера и запись в журнал выполняются в одной единице работы.
    """

    def __init__(
        self,
        uow: ports.IFrontDeskUnitOfWork,
        clock: Optional[kernel_ports.IClock] = None,
        event_publisher: Optional[kernel_ports.IEventPublisher] = None,
        logger: Optional[kernel_ports.ILogger] = None,
        proximity_window_hours: float = 3,
        system_actor: str = "System",
        front_desk_actor: str = "Receptionist",
    ):
        self._uow = uow
        self._clock = clock or SystemClock()
        self._event_publisher = event_publisher
        self._logger = logger or LoggingAdapter(__name__)
        self._window_hours = proximity_window_hours
        self._system_actor = system_actor
        self._front_desk_actor = front_desk_actor

    # Операции

    def reserve(
        self,
        room_id: EntityId,
        date: DateInput,
        time: TimeInput,
        actor: Optional[str] = None,
    ) -> RoomOperationResult:
        """Бронирует номер на указанные дату и время заезда."""
        try:
            slot = ReservationSlot(date=date, time=time)
        except ValidationError as e:
            return RoomOperationResult.failure(_validation_error(e))

        def effect(room: Room) -> str:
            room.reserve(slot)
            return reservation_observation(slot)

        return self._apply(
            room_id,
            MovementType.RESERVATION,
            actor or self._front_desk_actor,
            effect,
        )

    def check_in(
        self,
        room_id: EntityId,
        guest_name: str,
        guest_document: str,
        date: DateInput,
        time: TimeInput,
        actor: Optional[str] = None,
    ) -> RoomOperationResult:
        """Заселяет гостя; дата и время записи - переданные дата и время заезда."""
        try:
            guest = GuestInfo(name=guest_name, document=guest_document or "")
            stamp = StayStamp(date=date, time=time)
        except ValidationError as e:
            return RoomOperationResult.failure(_validation_error(e))

        def effect(room: Room) -> str:
            room.occupy(guest, stamp)
            return check_in_observation(guest)

        return self._apply(
            room_id,
            MovementType.CHECK_IN,
            actor or self._front_desk_actor,
            effect,
            moment=(stamp.date, stamp.time),
        )

    def check_out(
        self,
        room_id: EntityId,
        date: DateInput,
        time: TimeInput,
        requires_cleaning: bool = True,
        actor: Optional[str] = None,
    ) -> RoomOperationResult:
        """Выселяет гостя; номер уходит на уборку или сразу освобождается."""
        try:
            stamp = StayStamp(date=date, time=time)
        except ValidationError as e:
            return RoomOperationResult.failure(_validation_error(e))

        def effect(room: Room) -> str:
            room.release(stamp, requires_cleaning)
            return check_out_observation(requires_cleaning)

        return self._apply(
            room_id,
            MovementType.CHECK_OUT,
            actor or self._front_desk_actor,
            effect,
            moment=(stamp.date, stamp.time),
        )

    def cancel_reservation(
        self,
        room_id: EntityId,
        actor: Optional[str] = None,
        override: bool = False,
    ) -> RoomOperationResult:
        """
        Отменяет бронь.

        Для номера не в статусе reserved ничего не происходит: номер и журнал
        не меняются, результат успешный с applied=False.
        """

        def precondition(room: Room) -> Optional[RoomOperationResult]:
            if room.status != RoomStatus.RESERVED:
                return RoomOperationResult.unchanged(
                    f"Room {room.id} is not reserved", room=room
                )
            self._guard_proximity(room, override)
            return None

        def effect(room: Room) -> str:
            room.cancel_reservation()
            return cancellation_observation()

        return self._apply(
            room_id,
            MovementType.CANCELLATION,
            actor or self._front_desk_actor,
            effect,
            precondition=precondition,
        )

    def change_status(
        self,
        room_id: EntityId,
        new_status: Union[RoomStatus, str],
        actor: Optional[str] = None,
        override: bool = False,
        guest: Optional[Union[GuestInfo, Dict[str, Any]]] = None,
        reservation: Optional[Union[ReservationSlot, Dict[str, Any]]] = None,
    ) -> RoomOperationResult:
        """Прямая смена статуса номера."""
        try:
            target = RoomStatus(new_status)
        except ValueError:
            return RoomOperationResult.failure(
                ValidationException(f"Неизвестный статус номера: {new_status}")
            )
        try:
            guest_info = GuestInfo.model_validate(guest) if guest is not None else None
            slot = (
                ReservationSlot.model_validate(reservation)
                if reservation is not None
                else None
            )
        except ValidationError as e:
            return RoomOperationResult.failure(_validation_error(e))

        def precondition(room: Room) -> Optional[RoomOperationResult]:
            self._guard_proximity(room, override)
            return None

        captured: Dict[str, RoomStatus] = {}

        def effect(room: Room) -> str:
            captured["previous"] = room.status
            room.override_status(target, guest=guest_info, reservation=slot)
            return status_change_observation(captured["previous"], target)

        return self._apply(
            room_id,
            MovementType.STATUS_CHANGE,
            actor or self._system_actor,
            effect,
            precondition=precondition,
        )

    # Проверка близости заезда

    def is_locked(self, room: Room) -> bool:
        """Заблокирован ли номер близким заездом по брони."""
        if room.status != RoomStatus.RESERVED or room.reservation is None:
            return False
        return is_near(
            room.reservation.date,
            room.reservation.time,
            self._clock.now(),
            self._window_hours,
        )

    def _guard_proximity(self, room: Room, override: bool) -> None:
        if override or not self.is_locked(room):
            return
        raise InvalidTransitionException(
            f"Номер {room.id}: до заезда по брони осталось не более "
            f"{self._window_hours:g} ч, изменение требует override"
        )

    # Общий порядок выполнения операции

    def _apply(
        self,
        room_id: EntityId,
        movement_type: MovementType,
        actor: str,
        effect: Callable[[Room], str],
        moment: Optional[tuple] = None,
        precondition: Optional[Callable[[Room], Optional[RoomOperationResult]]] = None,
    ) -> RoomOperationResult:
        try:
            with self._uow as uow:
                current = uow.rooms.get(room_id)
                if precondition is not None:
                    outcome = precondition(current)
                    if outcome is not None:
                        return outcome

                previous_status = current.status
                observations: List[str] = []

                def mutator(room: Room) -> None:
                    observations.append(effect(room))
                    room.ensure_consistent()

                updated = uow.rooms.update(room_id, mutator)

                guest_snapshot = updated.guest
                if guest_snapshot is None and movement_type == MovementType.CHECK_OUT:
                    guest_snapshot = current.guest

                record_date, record_time = moment or split_moment(self._clock.now())
                movement = uow.movements.append(
                    MovementRecord(
                        room_id=updated.id,
                        room_name=updated.name,
                        movement_type=movement_type,
                        previous_status=previous_status,
                        new_status=updated.status,
                        guest_snapshot=guest_snapshot,
                        date=record_date,
                        time=record_time,
                        observations=observations[0],
                        actor=actor,
                    )
                )
        except DomainException as e:
            self._logger.warning(
                f"Room operation {movement_type.value} rejected",
                room_id=room_id,
                error=e.kind.value,
                reason=str(e),
            )
            return RoomOperationResult.failure(e)
        except Exception as e:
            self._logger.error(
                f"Room operation {movement_type.value} failed",
                room_id=room_id,
                error=str(e),
            )
            raise

        self._logger.info(
            f"Room {updated.id} {previous_status.value} -> {updated.status.value}",
            movement_type=movement_type.value,
            movement_id=movement.id,
            actor=actor,
        )
        if self._event_publisher is not None:
            self._event_publisher.publish(
                RoomMovementRecorded(
                    room_id=updated.id,
                    movement_id=movement.id,
                    movement_type=movement_type,
                    previous_status=previous_status,
                    new_status=updated.status,
                )
            )
        return RoomOperationResult.done(room=updated, movement=movement)


class RoomApplicationService:
    """Сервис каталога номеров: добавление, поиск, статистика, импорт и экспорт."""

    def __init__(
        self,
        uow: ports.IFrontDeskUnitOfWork,
        clock: Optional[kernel_ports.IClock] = None,
        event_publisher: Optional[kernel_ports.IEventPublisher] = None,
        logger: Optional[kernel_ports.ILogger] = None,
        proximity_window_hours: float = 3,
        upcoming_reservations_limit: int = 5,
    ):
        self._uow = uow
        self._clock = clock or SystemClock()
        self._event_publisher = event_publisher
        self._logger = logger or LoggingAdapter(__name__)
        self._window_hours = proximity_window_hours
        self._upcoming_limit = upcoming_reservations_limit

    def _publish(self, change: str, room_id: Optional[EntityId] = None) -> None:
        if self._event_publisher is not None:
            self._event_publisher.publish(
                RoomCatalogChanged(room_id=room_id, change=change)
            )

    # Каталог

    def add_room(
        self, name: str, price_per_night: Optional[float] = None
    ) -> RoomOperationResult:
        """Добавляет свободный номер с идентификатором max(id) + 1."""
        try:
            with self._uow as uow:
                now = self._clock.now()
                try:
                    room = Room(
                        id=uow.rooms.next_id(),
                        name=name,
                        price_per_night=price_per_night,
                        created_at=now,
                        updated_at=now,
                    )
                except ValidationError as e:
                    raise _validation_error(e)
                room = uow.rooms.add(room)
        except DomainException as e:
            self._logger.warning("Room was not added", error=str(e))
            return RoomOperationResult.failure(e)

        self._logger.info(f"Room {room.id} added", name=room.name)
        self._publish("added", room.id)
        return RoomOperationResult.done(room=room)

    def update_room_details(
        self,
        room_id: EntityId,
        name: Optional[str] = None,
        price_per_night: Optional[float] = None,
    ) -> RoomOperationResult:
        """Меняет название и/или цену номера. Статус так не меняется."""

        def mutator(room: Room) -> None:
            if name is not None:
                if not name.strip():
                    raise ValidationException("Название номера не может быть пустым")
                room.name = name
            if price_per_night is not None:
                if price_per_night < 0:
                    raise ValidationException("Цена за ночь не может быть отрицательной")
                room.price_per_night = price_per_night

        try:
            with self._uow as uow:
                room = uow.rooms.update(room_id, mutator)
        except DomainException as e:
            self._logger.warning("Room was not updated", room_id=room_id, error=str(e))
            return RoomOperationResult.failure(e)

        self._publish("updated", room.id)
        return RoomOperationResult.done(room=room)

    def remove_room(self, room_id: EntityId) -> RoomOperationResult:
        """Удаляет номер. Записи журнала остаются."""
        try:
            with self._uow as uow:
                room = uow.rooms.remove(room_id)
        except DomainException as e:
            return RoomOperationResult.failure(e)

        self._logger.info(f"Room {room_id} removed", name=room.name)
        self._publish("removed", room_id)
        return RoomOperationResult.done(room=room)

    # Запросы

    def get_room(self, room_id: EntityId) -> Optional[Room]:
        return self._uow.rooms.find(room_id)

    def list_rooms(self) -> List[Room]:
        return sorted(self._uow.rooms.all(), key=lambda r: r.id)

    def rooms_by_status(self, status: Union[RoomStatus, str]) -> List[Room]:
        """Номера в статусе; для неизвестного статуса пустой список."""
        try:
            status = RoomStatus(status)
        except ValueError:
            self._logger.warning("Unknown room status in query", status=str(status))
            return []
        return [r for r in self.list_rooms() if r.status == status]

    def available_rooms(self) -> List[Room]:
        return self.rooms_by_status(RoomStatus.VACANT)

    def occupied_rooms(self) -> List[Room]:
        return self.rooms_by_status(RoomStatus.OCCUPIED)

    def search_rooms(self, term: str) -> List[Room]:
        """Поиск по названию, статусу и данным гостя без учета регистра."""
        needle = term.lower()

        def matches(room: Room) -> bool:
            fields = [room.name, room.status.value]
            if room.guest is not None:
                fields += [room.guest.name, room.guest.document]
            return any(needle in value.lower() for value in fields if value)

        return [r for r in self.list_rooms() if matches(r)]

    def statistics(self) -> RoomStatistics:
        rooms = self.list_rooms()
        counts = {status: 0 for status in RoomStatus}
        for room in rooms:
            counts[room.status] += 1

        revenue = sum(
            room.price_per_night or 0
            for room in rooms
            if room.status == RoomStatus.OCCUPIED
        )
        occupancy = (
            round(counts[RoomStatus.OCCUPIED] / len(rooms) * 100) if rooms else 0
        )
        upcoming = sorted(
            (r for r in rooms if r.status == RoomStatus.RESERVED and r.reservation),
            key=lambda r: r.reservation.arrival(),
        )

        return RoomStatistics(
            total=len(rooms),
            vacant=counts[RoomStatus.VACANT],
            occupied=counts[RoomStatus.OCCUPIED],
            cleaning=counts[RoomStatus.CLEANING],
            reserved=counts[RoomStatus.RESERVED],
            potential_revenue=revenue,
            occupancy_rate=occupancy,
            upcoming_reservations=upcoming[: self._upcoming_limit],
        )

    def is_reservation_locked(self, room_id: EntityId) -> bool:
        """Близок ли заезд по брони (для отображения и блокировки действий)."""
        room = self._uow.rooms.find(room_id)
        if room is None or room.status != RoomStatus.RESERVED or room.reservation is None:
            return False
        return is_near(
            room.reservation.date,
            room.reservation.time,
            self._clock.now(),
            self._window_hours,
        )

    def hours_until_arrival(self, room_id: EntityId) -> Optional[float]:
        room = self._uow.rooms.find(room_id)
        if room is None or room.reservation is None:
            return None
        return hours_until(room.reservation.date, room.reservation.time, self._clock.now())

    # Экспорт и импорт

    def export_rooms(self) -> List[dict]:
        return [room.to_record() for room in self.list_rooms()]

    def import_rooms(self, records: Iterable[Any]) -> bool:
        """
        Заменяет каталог номеров допустимыми записями.

        Возвращает False и ничего не меняет, если не прошла ни одна запись.
        """
        valid = select_valid_records(records, Room, ROOM_REQUIRED_FIELDS, self._logger)
        if not valid:
            self._logger.warning("Room import rejected: no valid records")
            return False

        with self._uow as uow:
            uow.rooms.replace_all(valid)

        self._logger.info("Rooms imported", count=len(valid))
        self._publish("imported")
        return True


class MovementHistoryService:
    """Запросы к журналу движений номеров."""

    def __init__(
        self,
        uow: ports.IFrontDeskUnitOfWork,
        event_publisher: Optional[kernel_ports.IEventPublisher] = None,
        logger: Optional[kernel_ports.ILogger] = None,
    ):
        self._uow = uow
        self._event_publisher = event_publisher
        self._logger = logger or LoggingAdapter(__name__)

    def list_movements(self) -> List[MovementRecord]:
        return self._uow.movements.all()

    def by_room(self, room_id: EntityId) -> List[MovementRecord]:
        return self._uow.movements.by_entity(room_id)

    def by_type(self, movement_type: Union[MovementType, str]) -> List[MovementRecord]:
        """Записи одного типа; для неизвестного типа пустой список."""
        try:
            kind = MovementType(movement_type)
        except ValueError:
            self._logger.warning(
                "Unknown movement type in query", movement_type=str(movement_type)
            )
            return []
        return self._uow.movements.by_type(kind)

    def by_date(self, on: Union[date, str]) -> List[MovementRecord]:
        """Записи за день; дата в ISO-формате, некорректная дата дает пустой список."""
        try:
            return self._uow.movements.by_date_exact(on)
        except ValueError:
            self._logger.warning("Invalid date in movement query", on=str(on))
            return []

    def search(self, term: str) -> List[MovementRecord]:
        return self._uow.movements.search(term)

    def stats(self, recent: Optional[int] = None) -> LedgerStats:
        return self._uow.movements.stats(recent)

    def export_movements(self) -> List[dict]:
        return [record.to_record() for record in self._uow.movements.all()]

    def import_movements(self, records: Iterable[Any]) -> bool:
        """Заменяет журнал допустимыми записями (административная операция)."""
        valid = select_valid_records(
            records, MovementRecord, MOVEMENT_REQUIRED_FIELDS, self._logger
        )
        if not valid:
            self._logger.warning("Movement import rejected: no valid records")
            return False

        with self._uow as uow:
            uow.movements.restore(valid)

        self._logger.info("Movements imported", count=len(valid))
        if self._event_publisher is not None:
            self._event_publisher.publish(RoomMovementsImported(count=len(valid)))
        return True
