"""
Конфигурация тестов для pytest.
Добавляет каталог src в PYTHONPATH и объявляет общие фикстуры.
"""
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Добавляем каталог с исходниками в PYTHONPATH
root_dir = str(Path(__file__).parent.parent / "src")
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from front_desk.rooms.application import (  # noqa: E402
    MovementHistoryService,
    RoomApplicationService,
    RoomLifecycleEngine,
)
from front_desk.rooms.infrastructure import (  # noqa: E402
    FrontDeskUnitOfWork,
    InMemoryRoomStore,
    MovementLedger,
)
from front_desk.shared_kernel import DomainEvent, FixedClock  # noqa: E402
from front_desk.shared_kernel.infrastructure import InMemoryEventBus  # noqa: E402
from front_desk.stock.application import StockApplicationService  # noqa: E402
from front_desk.stock.infrastructure import (  # noqa: E402
    InMemoryProductStore,
    StockMovementLedger,
    StockUnitOfWork,
)


@pytest.fixture
def clock():
    """Часы, остановленные на 2024-02-01 10:00."""
    return FixedClock(datetime(2024, 2, 1, 10, 0))


@pytest.fixture
def event_bus():
    return InMemoryEventBus()


@pytest.fixture
def published(event_bus):
    """Список событий, прошедших через шину."""
    events = []
    event_bus.subscribe(DomainEvent, events.append)
    return events


@pytest.fixture
def room_uow(clock):
    return FrontDeskUnitOfWork(
        rooms=InMemoryRoomStore(clock=clock),
        movements=MovementLedger(clock=clock),
    )


@pytest.fixture
def engine(room_uow, clock, event_bus):
    return RoomLifecycleEngine(room_uow, clock=clock, event_publisher=event_bus)


@pytest.fixture
def room_service(room_uow, clock, event_bus):
    return RoomApplicationService(room_uow, clock=clock, event_publisher=event_bus)


@pytest.fixture
def history(room_uow, event_bus):
    return MovementHistoryService(room_uow, event_publisher=event_bus)


@pytest.fixture
def r101(room_service):
    """Свободный номер R101."""
    return room_service.add_room("R101", price_per_night=150).room


@pytest.fixture
def stock_uow(clock):
    return StockUnitOfWork(
        products=InMemoryProductStore(clock=clock),
        movements=StockMovementLedger(clock=clock),
    )


@pytest.fixture
def stock_service(stock_uow, clock, event_bus):
    return StockApplicationService(stock_uow, clock=clock, event_publisher=event_bus)
