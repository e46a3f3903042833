"""
Инфраструктурный слой общего ядра.

Содержит реализации хранилищ, логгера, шины событий и единицы работы,
общие для всех контекстов.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from . import interfaces as ports
from .domain import DomainEvent, EntityId, NotFoundException, SystemClock
from .ledger import Ledger

T = TypeVar("T", bound=BaseModel)
T_Event = TypeVar("T_Event", bound=DomainEvent)


class InMemoryEntityStore(ports.IEntityStore[T]):
    """
    Хранилище сущностей в памяти.

    Наружу отдаются только копии. Изменение возможно лишь через update():
    мутатор получает копию, после чего копия подменяет оригинал.
    """

    def __init__(
        self,
        entity_name: str,
        entities: Optional[Sequence[T]] = None,
        clock: Optional[ports.IClock] = None,
    ) -> None:
        self._entity_name = entity_name
        self._clock = clock or SystemClock()
        self._entities: Dict[EntityId, T] = {}
        for entity in entities or []:
            self._entities[entity.id] = entity.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: EntityId) -> bool:
        return entity_id in self._entities

    def add(self, entity: T) -> T:
        if entity.id in self._entities:
            raise ValueError(f"{self._entity_name} with id {entity.id} already exists")
        self._entities[entity.id] = entity.model_copy(deep=True)
        return entity.model_copy(deep=True)

    def get(self, entity_id: EntityId) -> T:
        if entity_id not in self._entities:
            raise NotFoundException(self._entity_name, entity_id)
        return self._entities[entity_id].model_copy(deep=True)

    def find(self, entity_id: EntityId) -> Optional[T]:
        entity = self._entities.get(entity_id)
        return entity.model_copy(deep=True) if entity is not None else None

    def all(self) -> List[T]:
        return [entity.model_copy(deep=True) for entity in self._entities.values()]

    def update(self, entity_id: EntityId, mutator: Callable[[T], None]) -> T:
        candidate = self.get(entity_id)
        mutator(candidate)
        candidate.updated_at = self._clock.now()
        self._entities[entity_id] = candidate
        return candidate.model_copy(deep=True)

    def remove(self, entity_id: EntityId) -> T:
        if entity_id not in self._entities:
            raise NotFoundException(self._entity_name, entity_id)
        return self._entities.pop(entity_id)

    def next_id(self) -> EntityId:
        return max(self._entities, default=0) + 1

    def replace_all(self, entities: Sequence[T]) -> None:
        self._entities = {e.id: e.model_copy(deep=True) for e in entities}

    def _checkpoint(self) -> Dict[EntityId, T]:
        # Сущности не меняются на месте, поэтому достаточно поверхностной копии
        return dict(self._entities)

    def _restore(self, checkpoint: Dict[EntityId, T]) -> None:
        self._entities = checkpoint


class LoggingAdapter(ports.ILogger):
    """Логгер, передающий сообщения в стандартный модуль logging."""

    def __init__(self, name: str = "front_desk"):
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, message: str, context: dict) -> None:
        if context:
            message = f"{message} | {json.dumps(context, default=str, ensure_ascii=False)}"
        self._logger.log(level, message)

    def info(self, message: str, **kwargs) -> None:
        self._emit(logging.INFO, message, kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._emit(logging.ERROR, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._emit(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self._emit(logging.DEBUG, message, kwargs)


class InMemoryEventBus(ports.IEventPublisher):
    """
    Синхронная шина событий в памяти.

    Сервисы публикуют событие после выхода из единицы работы, поэтому
    подписчики видят уже зафиксированное состояние. Подписка на базовый
    тип события получает и все его подтипы (DomainEvent - все события).
    """

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._subscribers: Dict[Type[DomainEvent], List[Callable[[DomainEvent], None]]] = {}
        self._logger = logger or LoggingAdapter(__name__)

    def _handlers_for(self, event: DomainEvent) -> List[Callable[[DomainEvent], None]]:
        handlers = []
        for event_type in type(event).__mro__:
            handlers.extend(self._subscribers.get(event_type, []))
        return handlers

    def publish(self, event: DomainEvent) -> None:
        handlers = self._handlers_for(event)
        if not handlers:
            return

        self._logger.debug(
            f"Dispatching {event.event_type}",
            event_id=str(event.event_id),
            handlers=len(handlers),
        )
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Изменение уже зафиксировано: сбой подписчика только логируется
                self._logger.error(
                    f"Handler failed for {event.event_type}",
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                    event=event.model_dump(mode="json"),
                )

    def subscribe(
        self, event_type: Type[T_Event], handler: Callable[[T_Event], None]
    ) -> None:
        self._subscribers.setdefault(event_type, []).append(handler)


class InMemoryUnitOfWork(ABC):
    """
    Единица работы над хранилищами в памяти.

    Держит реентерабельную блокировку на время операции. При исключении
    внутри блока with хранилища и журналы возвращаются к состоянию на входе,
    поэтому изменение сущности и запись в журнал фиксируются только вместе.
    """

    def __init__(self, logger: Optional[ports.ILogger] = None):
        self._logger = logger or LoggingAdapter(__name__)
        self._lock = threading.RLock()
        self._checkpoints: List[tuple] = []

    @abstractmethod
    def _stores(self) -> List[InMemoryEntityStore]: ...

    @abstractmethod
    def _ledgers(self) -> List[Ledger]: ...

    def __enter__(self):
        self._lock.acquire()
        self._checkpoints.append(
            (
                [store._checkpoint() for store in self._stores()],
                [ledger._checkpoint() for ledger in self._ledgers()],
            )
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            stores_cp, ledgers_cp = self._checkpoints.pop()
            if exc_type is not None:
                self._rollback(stores_cp, ledgers_cp)
        finally:
            self._lock.release()
        return False  # Пробрасываем исключение дальше, если оно было

    def _rollback(self, stores_cp: list, ledgers_cp: list) -> None:
        for store, checkpoint in zip(self._stores(), stores_cp):
            store._restore(checkpoint)
        for ledger, checkpoint in zip(self._ledgers(), ledgers_cp):
            ledger._discard_after(checkpoint)
        self._logger.warning(f"{type(self).__name__} rolled back")
