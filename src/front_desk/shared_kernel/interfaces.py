"""
Интерфейсы (порты) общего ядра.

Определяет контракты, которые должны быть реализованы внешними адаптерами.
"""
from abc import abstractmethod
from datetime import date, datetime
from typing import Callable, List, Optional, Protocol, TypeVar

from .domain import DomainEvent, EntityId

T = TypeVar("T")


class IClock(Protocol):
    """Источник текущих даты и времени."""

    @abstractmethod
    def now(self) -> datetime:
        """Возвращает текущий момент."""
        ...

    @abstractmethod
    def today(self) -> date:
        """Возвращает текущую дату."""
        ...


class IEntityStore(Protocol[T]):
    """Хранилище сущностей в памяти, ключ - идентификатор."""

    @abstractmethod
    def add(self, entity: T) -> T:
        """Добавляет новую сущность."""
        ...

    @abstractmethod
    def get(self, entity_id: EntityId) -> T:
        """Возвращает копию сущности или выбрасывает NotFoundException."""
        ...

    @abstractmethod
    def find(self, entity_id: EntityId) -> Optional[T]:
        """Возвращает копию сущности или None."""
        ...

    @abstractmethod
    def all(self) -> List[T]:
        """Возвращает копии всех сущностей."""
        ...

    @abstractmethod
    def update(self, entity_id: EntityId, mutator: Callable[[T], None]) -> T:
        """Единственный путь изменения сущности."""
        ...

    @abstractmethod
    def remove(self, entity_id: EntityId) -> T:
        """Удаляет сущность."""
        ...


class IEventPublisher(Protocol):
    """Абстракция для публикации доменных событий."""

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Публикует событие."""
        ...


class ILogger(Protocol):
    """Абстракция для логирования."""

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """Записывает информационное сообщение."""
        ...

    @abstractmethod
    def error(self, message: str, **kwargs) -> None:
        """Записывает сообщение об ошибке."""
        ...

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """Записывает предупреждение."""
        ...

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """Записывает отладочное сообщение."""
        ...


class IBlobStore(Protocol):
    """Хранилище "ключ - строка" (аналог localStorage)."""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Возвращает содержимое или None, если ключа нет."""
        ...

    @abstractmethod
    def write(self, key: str, blob: str) -> None:
        """Записывает содержимое под ключом."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Удаляет ключ, если он существует."""
        ...
