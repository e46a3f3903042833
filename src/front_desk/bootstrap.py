"""
Композиционный корень.

Создает все компоненты один раз и связывает их явно: сервисы получают
зависимости через конструктор, сохранение подписано на доменные события.
"""

from dataclasses import dataclass
from functools import partial
from typing import Optional

from .config import FrontDeskSettings, configure_logging, get_settings
from .event_handlers import on_collection_imported, on_state_changed
from .rooms.application import (
    MOVEMENT_REQUIRED_FIELDS,
    ROOM_REQUIRED_FIELDS,
    MovementHistoryService,
    RoomApplicationService,
    RoomLifecycleEngine,
)
from .rooms.domain import RoomCatalogChanged, RoomMovementRecorded, RoomMovementsImported
from .rooms.infrastructure import (
    FRONT_DESK_SNAPSHOT_KEYS,
    FrontDeskSnapshot,
    FrontDeskUnitOfWork,
    InMemoryRoomStore,
    MovementLedger,
    sample_rooms,
)
from .shared_kernel import SystemClock
from .shared_kernel import interfaces as ports
from .shared_kernel.infrastructure import InMemoryEventBus, LoggingAdapter
from .shared_kernel.persistence import (
    InMemoryBlobStore,
    JsonDirectoryBlobStore,
    SnapshotGateway,
)
from .stock.application import (
    MOVEMENT_REQUIRED_FIELDS as STOCK_MOVEMENT_REQUIRED_FIELDS,
    PRODUCT_REQUIRED_FIELDS,
    StockApplicationService,
)
from .stock.domain import ProductCatalogChanged, StockMovementRecorded
from .stock.infrastructure import (
    STOCK_SNAPSHOT_KEYS,
    InMemoryProductStore,
    StockMovementLedger,
    StockSnapshot,
    StockUnitOfWork,
)


@dataclass
class FrontDeskApp:
    """Собранное приложение: единственная точка доступа к сервисам."""

    settings: FrontDeskSettings
    clock: ports.IClock
    logger: ports.ILogger
    event_bus: InMemoryEventBus
    room_uow: FrontDeskUnitOfWork
    stock_uow: StockUnitOfWork
    engine: RoomLifecycleEngine
    rooms: RoomApplicationService
    history: MovementHistoryService
    stock: StockApplicationService
    room_gateway: SnapshotGateway[FrontDeskSnapshot]
    stock_gateway: SnapshotGateway[StockSnapshot]

    def front_desk_snapshot(self) -> FrontDeskSnapshot:
        return FrontDeskSnapshot(
            rooms=self.room_uow.rooms.all(), movements=self.room_uow.movements.all()
        )

    def stock_snapshot(self) -> StockSnapshot:
        return StockSnapshot(
            products=self.stock_uow.products.all(),
            movements=self.stock_uow.movements.all(),
        )

    def persist_front_desk(self) -> bool:
        return self.room_gateway.save(self.front_desk_snapshot())

    def persist_stock(self) -> bool:
        return self.stock_gateway.save(self.stock_snapshot())

    def reset_data(self) -> None:
        """Административный сброс: очищает номера, товары и оба журнала."""
        with self.room_uow as uow:
            uow.rooms.replace_all([])
            uow.movements.restore([])
        with self.stock_uow as uow:
            uow.products.replace_all([])
            uow.movements.restore([])
        self.room_gateway.clear()
        self.stock_gateway.clear()
        self.logger.warning("All front desk data has been reset")


def _create_blob_store(settings: FrontDeskSettings) -> ports.IBlobStore:
    if settings.storage_backend == "json":
        return JsonDirectoryBlobStore(settings.data_dir)
    return InMemoryBlobStore()


def bootstrap_app(
    settings: Optional[FrontDeskSettings] = None,
    clock: Optional[ports.IClock] = None,
    blob_store: Optional[ports.IBlobStore] = None,
    setup_logging: bool = False,
) -> FrontDeskApp:
    """Создает и настраивает все компоненты приложения."""
    settings = settings or get_settings()
    if setup_logging:
        configure_logging(settings)

    logger = LoggingAdapter("front_desk")
    clock = clock or SystemClock()
    event_bus = InMemoryEventBus(logger=LoggingAdapter("front_desk.events"))

    # 1. Загружаем сохраненное состояние
    blob_store = blob_store or _create_blob_store(settings)
    room_gateway = SnapshotGateway(
        blob_store,
        FrontDeskSnapshot,
        FRONT_DESK_SNAPSHOT_KEYS,
        logger,
        required_fields={
            "rooms": ROOM_REQUIRED_FIELDS,
            "movements": MOVEMENT_REQUIRED_FIELDS,
        },
    )
    stock_gateway = SnapshotGateway(
        blob_store,
        StockSnapshot,
        STOCK_SNAPSHOT_KEYS,
        logger,
        required_fields={
            "products": PRODUCT_REQUIRED_FIELDS,
            "movements": STOCK_MOVEMENT_REQUIRED_FIELDS,
        },
    )

    front_desk_state = room_gateway.load()
    seeded = False
    if front_desk_state is None:
        front_desk_state = FrontDeskSnapshot()
        if settings.seed_sample_data and not room_gateway.has_data():
            front_desk_state.rooms = sample_rooms(clock.now())
            seeded = True
    stock_state = stock_gateway.load() or StockSnapshot()

    # 2. Создаем хранилища и единицы работы
    room_uow = FrontDeskUnitOfWork(
        rooms=InMemoryRoomStore(front_desk_state.rooms, clock),
        movements=MovementLedger(
            front_desk_state.movements, clock, settings.recent_movements_limit
        ),
        logger=logger,
    )
    stock_uow = StockUnitOfWork(
        products=InMemoryProductStore(stock_state.products, clock),
        movements=StockMovementLedger(
            stock_state.movements, clock, settings.recent_movements_limit
        ),
        logger=logger,
    )

    # 3. Создаем сервисы, передавая им зависимости
    engine = RoomLifecycleEngine(
        room_uow,
        clock=clock,
        event_publisher=event_bus,
        logger=LoggingAdapter("front_desk.rooms"),
        proximity_window_hours=settings.proximity_window_hours,
        system_actor=settings.system_actor,
        front_desk_actor=settings.front_desk_actor,
    )
    rooms = RoomApplicationService(
        room_uow,
        clock=clock,
        event_publisher=event_bus,
        logger=LoggingAdapter("front_desk.rooms"),
        proximity_window_hours=settings.proximity_window_hours,
        upcoming_reservations_limit=settings.upcoming_reservations_limit,
    )
    history = MovementHistoryService(
        room_uow, event_publisher=event_bus, logger=LoggingAdapter("front_desk.history")
    )
    stock = StockApplicationService(
        stock_uow,
        clock=clock,
        event_publisher=event_bus,
        logger=LoggingAdapter("front_desk.stock"),
        default_actor=settings.front_desk_actor,
    )

    app = FrontDeskApp(
        settings=settings,
        clock=clock,
        logger=logger,
        event_bus=event_bus,
        room_uow=room_uow,
        stock_uow=stock_uow,
        engine=engine,
        rooms=rooms,
        history=history,
        stock=stock,
        room_gateway=room_gateway,
        stock_gateway=stock_gateway,
    )

    # 4. Подписываем сохранение на события.
    # Снятие защиты с импортированной коллекции идет раньше сохранения
    release_rooms = partial(on_collection_imported, release=room_gateway.release)
    event_bus.subscribe(RoomMovementsImported, partial(release_rooms, field="movements"))
    event_bus.subscribe(
        RoomCatalogChanged, partial(release_rooms, field="rooms", change="imported")
    )
    release_stock = partial(on_collection_imported, release=stock_gateway.release)
    event_bus.subscribe(
        ProductCatalogChanged, partial(release_stock, field="products", change="imported")
    )
    event_bus.subscribe(
        ProductCatalogChanged,
        partial(release_stock, field="movements", change="movements_imported"),
    )

    persist_rooms = partial(on_state_changed, persist=app.persist_front_desk, logger=logger)
    for event_type in (RoomMovementRecorded, RoomCatalogChanged, RoomMovementsImported):
        event_bus.subscribe(event_type, persist_rooms)

    persist_stock = partial(on_state_changed, persist=app.persist_stock, logger=logger)
    for event_type in (StockMovementRecorded, ProductCatalogChanged):
        event_bus.subscribe(event_type, persist_stock)

    if seeded:
        app.persist_front_desk()
    logger.info(
        "Front desk started",
        rooms=len(room_uow.rooms),
        movements=len(room_uow.movements),
        products=len(stock_uow.products),
        backend=settings.storage_backend,
    )
    return app
