"""
Журнал движений (Ledger).

Обобщенное хранилище "только добавление" для записей аудита. Используется
и для истории номеров, и для движения товаров на складе.
"""

from abc import abstractmethod
from datetime import date, time
from typing import Dict, Generic, Iterable, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny
from pydantic.alias_generators import to_camel

from .domain import EntityId, SystemClock
from .interfaces import IClock


class LedgerRecord(BaseModel):
    """
    Базовая запись журнала.

    Запись неизменяема после создания. Сущность, к которой она относится,
    хранится как снимок (идентификатор и название на момент события).
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: int = Field(0, ge=0)
    date: date
    time: time
    observations: str = ""
    actor: str = ""

    @property
    @abstractmethod
    def entity_id(self) -> EntityId: ...

    @property
    @abstractmethod
    def entity_name(self) -> str: ...

    @property
    @abstractmethod
    def kind(self) -> str:
        """Тип записи для группировки в статистике."""

    def searchable_fields(self) -> List[Optional[str]]:
        """Поля, по которым работает полнотекстовый поиск."""
        return [self.entity_name, self.observations, self.actor]

    def opens_state(self) -> bool:
        """Оставила ли запись сущность в "открытом" состоянии."""
        return False

    def sort_key(self):
        return (self.date, self.time, self.id)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


T_Record = TypeVar("T_Record", bound=LedgerRecord)


class LedgerStats(BaseModel):
    """Сводная статистика по журналу."""

    total: int
    counts_by_type: Dict[str, int]
    entities_with_open_state: int
    records_today: int
    most_recent: List[SerializeAsAny[LedgerRecord]]


class Ledger(Generic[T_Record]):
    """
    Упорядоченный журнал записей "только добавление".

    Публичный контракт не позволяет изменять или удалять записи.
    Идентификаторы выдаются как max(выданные) + 1 и никогда не повторяются.
    """

    def __init__(
        self,
        records: Optional[Iterable[T_Record]] = None,
        clock: Optional[IClock] = None,
        recent_limit: int = 10,
    ) -> None:
        self._records: List[T_Record] = []
        self._last_issued_id = 0
        self._clock = clock or SystemClock()
        self._recent_limit = recent_limit
        if records:
            self.restore(records)

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: T_Record) -> T_Record:
        """Добавляет запись и возвращает ее копию с присвоенным id."""
        next_id = self._last_issued_id + 1
        stored = record.model_copy(update={"id": next_id})
        self._records.append(stored)
        self._last_issued_id = next_id
        return stored

    def all(self) -> List[T_Record]:
        return list(self._records)

    def get(self, record_id: int) -> Optional[T_Record]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def by_entity(self, entity_id: EntityId) -> List[T_Record]:
        """Записи одной сущности, новые сначала."""
        found = [r for r in self._records if r.entity_id == entity_id]
        return sorted(found, key=lambda r: r.sort_key(), reverse=True)

    def by_type(self, kind: str) -> List[T_Record]:
        kind = getattr(kind, "value", kind)
        return [r for r in self._records if r.kind == kind]

    def by_date_exact(self, on: Union[date, str]) -> List[T_Record]:
        if isinstance(on, str):
            on = date.fromisoformat(on)
        return [r for r in self._records if r.date == on]

    def search(self, term: str) -> List[T_Record]:
        """Поиск подстроки без учета регистра по читаемым полям."""
        needle = term.lower()
        return [
            r
            for r in self._records
            if any(
                needle in value.lower() for value in r.searchable_fields() if value
            )
        ]

    def stats(self, recent: Optional[int] = None) -> LedgerStats:
        limit = self._recent_limit if recent is None else recent
        counts: Dict[str, int] = {}
        for record in self._records:
            counts[record.kind] = counts.get(record.kind, 0) + 1

        open_entities = {r.entity_id for r in self._records if r.opens_state()}
        today = self._clock.today()
        newest = sorted(self._records, key=lambda r: r.sort_key(), reverse=True)

        return LedgerStats(
            total=len(self._records),
            counts_by_type=counts,
            entities_with_open_state=len(open_entities),
            records_today=sum(1 for r in self._records if r.date == today),
            most_recent=newest[:limit],
        )

    def restore(self, records: Iterable[T_Record]) -> None:
        """
        Заменяет содержимое журнала (административная операция).

        Используется только пакетным импортом и явным сбросом данных.
        Счетчик идентификаторов не уменьшается.
        """
        self._records = list(records)
        highest = max((r.id for r in self._records), default=0)
        self._last_issued_id = max(self._last_issued_id, highest)

    def _checkpoint(self) -> int:
        return len(self._records)

    def _discard_after(self, checkpoint: int) -> None:
        # Откат единицы работы: записи после контрольной точки не были зафиксированы
        del self._records[checkpoint:]


class NullLedger(Ledger[T_Record]):
    """Журнал-заглушка: молча отбрасывает записи."""

    def append(self, record: T_Record) -> T_Record:
        return record

    def restore(self, records: Iterable[T_Record]) -> None:
        return None
