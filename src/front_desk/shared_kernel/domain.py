"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Идентификаторы номеров, товаров и записей журнала - целые числа
EntityId = int


class RecordModel(BaseModel):
    """Базовая модель с camelCase-представлением для внешних систем."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        """Возвращает простой JSON-совместимый словарь."""
        return self.model_dump(mode="json", by_alias=True)


class ValueObject(RecordModel):
    """Неизменяемый объект-значение."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=datetime.now)
    event_type: str


# Таксономия ошибок
class ErrorKind(str, Enum):
    """Виды ошибок, которые видит слой представления."""

    NOT_FOUND = "not_found"
    INVALID_TRANSITION = "invalid_transition"
    VALIDATION_ERROR = "validation_error"


class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR


class NotFoundException(DomainException):
    """Сущность с указанным идентификатором не существует."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} не найден(а)")


class InvalidTransitionException(DomainException):
    """Переход состояния запрещен бизнес-правилом."""

    kind = ErrorKind.INVALID_TRANSITION


class ValidationException(DomainException):
    """Некорректные входные данные."""

    kind = ErrorKind.VALIDATION_ERROR


class OperationResult(BaseModel):
    """
    Результат операции прикладного слоя.

    Ожидаемые ошибки (нет сущности, запрещенный переход, неверные данные)
    возвращаются здесь, а не выбрасываются.
    """

    success: bool
    applied: bool = False
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def failure(cls, exc: DomainException, **payload):
        return cls(success=False, applied=False, error=exc.kind, message=str(exc), **payload)

    @classmethod
    def done(cls, **payload):
        return cls(success=True, applied=True, **payload)

    @classmethod
    def unchanged(cls, message: Optional[str] = None, **payload):
        return cls(success=True, applied=False, message=message, **payload)


# Часы
class SystemClock:
    """Системные часы (локальное время без часового пояса)."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return self.now().date()


class FixedClock:
    """Управляемые часы для тестов и воспроизводимых сценариев."""

    def __init__(self, current: datetime):
        self._current = current

    def now(self) -> datetime:
        return self._current

    def today(self) -> date:
        return self._current.date()

    def set(self, current: datetime) -> None:
        self._current = current

    def advance(self, **delta) -> datetime:
        """Сдвигает время вперед: advance(hours=1, minutes=30)."""
        self._current = self._current + timedelta(**delta)
        return self._current


# Общие утилиты
def split_moment(moment: datetime) -> tuple[date, time]:
    """Разбивает момент на дату и время с точностью до минуты."""
    return moment.date(), moment.time().replace(second=0, microsecond=0)


def format_time(value: time) -> str:
    """Форматирует время как HH:MM."""
    return value.strftime("%H:%M")
