"""
Общее ядро (Shared Kernel) для службы приема.

Содержит общие типы данных, журнал движений и инфраструктуру,
используемые в различных ограниченных контекстах.
"""

from .domain import (
    DomainEvent,
    # Исключения
    DomainException,
    # Базовые типы
    EntityId,
    ErrorKind,
    FixedClock,
    InvalidTransitionException,
    NotFoundException,
    OperationResult,
    RecordModel,
    # Часы
    SystemClock,
    ValidationException,
    ValueObject,
    # Утилиты
    format_time,
    split_moment,
)
from .ledger import Ledger, LedgerRecord, LedgerStats, NullLedger

__all__ = [
    # Базовые типы
    "EntityId",
    "RecordModel",
    "ValueObject",
    "DomainEvent",
    "OperationResult",
    # Журнал
    "Ledger",
    "LedgerRecord",
    "LedgerStats",
    "NullLedger",
    # Исключения
    "ErrorKind",
    "DomainException",
    "NotFoundException",
    "InvalidTransitionException",
    "ValidationException",
    # Часы
    "SystemClock",
    "FixedClock",
    # Утилиты
    "split_moment",
    "format_time",
]
