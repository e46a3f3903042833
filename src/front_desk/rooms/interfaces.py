"""
Интерфейсы (порты) контекста номеров.
"""
from __future__ import annotations

from abc import abstractmethod
from typing import Any, Protocol

from ..shared_kernel.interfaces import IEntityStore
from ..shared_kernel.ledger import Ledger
from .domain import MovementRecord, Room


class IRoomStore(IEntityStore[Room], Protocol):
    """Хранилище номеров."""


class IFrontDeskUnitOfWork(Protocol):
    """Единица работы над номерами и журналом движений."""

    @property
    @abstractmethod
    def rooms(self) -> IRoomStore: ...

    @property
    @abstractmethod
    def movements(self) -> Ledger[MovementRecord]: ...

    def __enter__(self) -> IFrontDeskUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
