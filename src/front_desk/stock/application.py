"""
Прикладной слой складского учета.

Журнал движения товаров построен на том же обобщенном Ledger,
что и журнал номеров.
"""

from datetime import date, time
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ValidationError

from ..shared_kernel import (
    DomainException,
    EntityId,
    LedgerStats,
    OperationResult,
    SystemClock,
    ValidationException,
    split_moment,
)
from ..shared_kernel import interfaces as kernel_ports
from ..shared_kernel.infrastructure import LoggingAdapter
from ..shared_kernel.transfer import select_valid_records
from .domain import (
    Product,
    ProductCatalogChanged,
    StockMovementRecord,
    StockMovementRecorded,
    StockMovementType,
    movement_observation,
)
from .infrastructure import StockUnitOfWork

PRODUCT_REQUIRED_FIELDS = ("id", "name")
MOVEMENT_REQUIRED_FIELDS = ("id", "product_id", "date")

# Поля товара, которые можно менять через update_product
EDITABLE_PRODUCT_FIELDS = {"name", "description", "sku", "category", "price", "min_stock"}


class StockOperationResult(OperationResult):
    """Результат операции над товаром."""

    product: Optional[Product] = None
    movement: Optional[StockMovementRecord] = None


class ProductStatistics(BaseModel):
    """Сводка по складу."""

    total: int
    active: int
    inactive: int
    low_stock: int
    inventory_value: float
    categories: Dict[str, int]


class StockApplicationService:
    """Сервис складского учета: каталог товаров и движение остатков."""

    def __init__(
        self,
        uow: StockUnitOfWork,
        clock: Optional[kernel_ports.IClock] = None,
        event_publisher: Optional[kernel_ports.IEventPublisher] = None,
        logger: Optional[kernel_ports.ILogger] = None,
        default_actor: str = "Receptionist",
    ):
        self._uow = uow
        self._clock = clock or SystemClock()
        self._event_publisher = event_publisher
        self._logger = logger or LoggingAdapter(__name__)
        self._default_actor = default_actor

    def _publish_catalog(self, change: str, product_id: Optional[EntityId] = None) -> None:
        if self._event_publisher is not None:
            self._event_publisher.publish(
                ProductCatalogChanged(product_id=product_id, change=change)
            )

    # Каталог товаров

    def add_product(
        self,
        name: str,
        sku: Optional[str] = None,
        category: Optional[str] = None,
        price: Optional[float] = None,
        stock: int = 0,
        min_stock: int = 0,
        description: Optional[str] = None,
    ) -> StockOperationResult:
        try:
            with self._uow as uow:
                now = self._clock.now()
                try:
                    product = Product(
                        id=uow.products.next_id(),
                        name=name,
                        description=description,
                        sku=sku,
                        category=category,
                        price=price,
                        stock=stock,
                        min_stock=min_stock,
                        created_at=now,
                        updated_at=now,
                    )
                except ValidationError as e:
                    raise ValidationException(str(e))
                product = uow.products.add(product)
        except DomainException as e:
            self._logger.warning("Product was not added", error=str(e))
            return StockOperationResult.failure(e)

        self._logger.info(f"Product {product.id} added", name=product.name)
        self._publish_catalog("added", product.id)
        return StockOperationResult.done(product=product)

    def update_product(self, product_id: EntityId, **changes: Any) -> StockOperationResult:
        """
        Меняет описательные поля товара.

        Остаток меняется только движениями (register_movement).
        """
        unknown = set(changes) - EDITABLE_PRODUCT_FIELDS
        if unknown:
            return StockOperationResult.failure(
                ValidationException(f"Нельзя изменить поля: {', '.join(sorted(unknown))}")
            )

        def mutator(product: Product) -> None:
            try:
                validated = Product.model_validate({**product.model_dump(), **changes})
            except ValidationError as e:
                raise ValidationException(str(e))
            for field in changes:
                setattr(product, field, getattr(validated, field))

        try:
            with self._uow as uow:
                product = uow.products.update(product_id, mutator)
        except DomainException as e:
            self._logger.warning("Product was not updated", product_id=product_id, error=str(e))
            return StockOperationResult.failure(e)

        self._publish_catalog("updated", product.id)
        return StockOperationResult.done(product=product)

    def deactivate_product(self, product_id: EntityId) -> StockOperationResult:
        """Мягкое удаление: товар помечается неактивным, история сохраняется."""

        def mutator(product: Product) -> None:
            product.active = False

        try:
            with self._uow as uow:
                product = uow.products.update(product_id, mutator)
        except DomainException as e:
            return StockOperationResult.failure(e)

        self._logger.info(f"Product {product_id} deactivated")
        self._publish_catalog("deactivated", product_id)
        return StockOperationResult.done(product=product)

    def get_product(self, product_id: EntityId) -> Optional[Product]:
        return self._uow.products.find(product_id)

    def list_products(self) -> List[Product]:
        """Только активные товары."""
        return sorted(
            (p for p in self._uow.products.all() if p.active), key=lambda p: p.id
        )

    def products_by_category(self, category: str) -> List[Product]:
        return [p for p in self.list_products() if p.category == category]

    def low_stock_products(self) -> List[Product]:
        return [p for p in self.list_products() if p.is_low_stock]

    def search_products(self, term: str) -> List[Product]:
        needle = term.lower()
        return [
            p
            for p in self.list_products()
            if any(
                needle in value.lower()
                for value in (p.name, p.description, p.sku, p.category)
                if value
            )
        ]

    def statistics(self) -> ProductStatistics:
        products = self._uow.products.all()
        active = [p for p in products if p.active]
        categories: Dict[str, int] = {}
        for product in active:
            key = product.category or "uncategorized"
            categories[key] = categories.get(key, 0) + 1

        return ProductStatistics(
            total=len(products),
            active=len(active),
            inactive=len(products) - len(active),
            low_stock=sum(1 for p in active if p.is_low_stock),
            inventory_value=sum((p.price or 0) * p.stock for p in active),
            categories=categories,
        )

    # Движение товаров

    def register_movement(
        self,
        product_id: EntityId,
        movement_type: Union[StockMovementType, str],
        quantity: int,
        reason: str = "",
        date: Optional[Union[date, str]] = None,
        time: Optional[Union[time, str]] = None,
        actor: Optional[str] = None,
        observations: Optional[str] = None,
    ) -> StockOperationResult:
        """
        Регистрирует приход или расход товара.

        Остаток товара и запись в журнале меняются в одной единице работы.
        Расход, после которого остаток стал бы отрицательным, отклоняется.
        """
        try:
            kind = StockMovementType(movement_type)
        except ValueError:
            return StockOperationResult.failure(
                ValidationException(f"Неизвестный тип движения: {movement_type}")
            )

        now_date, now_time = split_moment(self._clock.now())
        try:
            with self._uow as uow:
                current = uow.products.get(product_id)
                if not current.active:
                    raise ValidationException(f"Товар {product_id} неактивен")

                product = uow.products.update(
                    product_id, lambda p: p.apply_movement(kind, quantity)
                )
                try:
                    record = StockMovementRecord(
                        product_id=product.id,
                        product_name=product.name,
                        movement_type=kind,
                        quantity=quantity,
                        stock_before=current.stock,
                        stock_after=product.stock,
                        reason=reason,
                        date=date or now_date,
                        time=time or now_time,
                        observations=observations
                        or movement_observation(kind, quantity, reason),
                        actor=actor or self._default_actor,
                    )
                except ValidationError as e:
                    raise ValidationException(str(e))
                movement = uow.movements.append(record)
        except DomainException as e:
            self._logger.warning(
                "Stock movement rejected", product_id=product_id, error=str(e)
            )
            return StockOperationResult.failure(e)

        self._logger.info(
            f"Product {product.id} stock {movement.stock_before} -> {movement.stock_after}",
            movement_type=kind.value,
            movement_id=movement.id,
        )
        if self._event_publisher is not None:
            self._event_publisher.publish(
                StockMovementRecorded(
                    product_id=product.id,
                    movement_id=movement.id,
                    movement_type=kind,
                    stock_before=movement.stock_before,
                    stock_after=movement.stock_after,
                )
            )
        return StockOperationResult.done(product=product, movement=movement)

    def movements_for_product(self, product_id: EntityId) -> List[StockMovementRecord]:
        return self._uow.movements.by_entity(product_id)

    def movements_by_type(
        self, movement_type: Union[StockMovementType, str]
    ) -> List[StockMovementRecord]:
        try:
            kind = StockMovementType(movement_type)
        except ValueError:
            self._logger.warning(
                "Unknown stock movement type in query", movement_type=str(movement_type)
            )
            return []
        return self._uow.movements.by_type(kind)

    def movements_on(self, on: Union[date, str]) -> List[StockMovementRecord]:
        try:
            return self._uow.movements.by_date_exact(on)
        except ValueError:
            self._logger.warning("Invalid date in stock movement query", on=str(on))
            return []

    def search_movements(self, term: str) -> List[StockMovementRecord]:
        return self._uow.movements.search(term)

    def movement_stats(self, recent: Optional[int] = None) -> LedgerStats:
        return self._uow.movements.stats(recent)

    # Экспорт и импорт

    def export_products(self) -> List[dict]:
        return [p.to_record() for p in sorted(self._uow.products.all(), key=lambda p: p.id)]

    def import_products(self, records: Iterable[Any]) -> bool:
        """Заменяет каталог товарами с id, названием и числовым остатком."""
        numeric_stock = [
            r
            for r in records
            if isinstance(r, dict)
            and isinstance(r.get("stock"), (int, float))
            and not isinstance(r.get("stock"), bool)
        ]
        valid = select_valid_records(
            numeric_stock, Product, PRODUCT_REQUIRED_FIELDS, self._logger
        )
        if not valid:
            self._logger.warning("Product import rejected: no valid records")
            return False

        with self._uow as uow:
            uow.products.replace_all(valid)

        self._logger.info("Products imported", count=len(valid))
        self._publish_catalog("imported")
        return True

    def export_movements(self) -> List[dict]:
        return [record.to_record() for record in self._uow.movements.all()]

    def import_movements(self, records: Iterable[Any]) -> bool:
        valid = select_valid_records(
            records, StockMovementRecord, MOVEMENT_REQUIRED_FIELDS, self._logger
        )
        if not valid:
            self._logger.warning("Stock movement import rejected: no valid records")
            return False

        with self._uow as uow:
            uow.movements.restore(valid)

        self._logger.info("Stock movements imported", count=len(valid))
        self._publish_catalog("movements_imported")
        return True
