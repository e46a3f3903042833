"""
Доменная модель складского учета.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from ..shared_kernel import (
    DomainEvent,
    EntityId,
    LedgerRecord,
    RecordModel,
    ValidationException,
)


class StockMovementType(str, Enum):
    """Типы движения товара."""

    IN = "in"  # Приход
    OUT = "out"  # Расход


class Product(RecordModel):
    """Товар на складе. Удаление товара - мягкое (active = False)."""

    id: EntityId = Field(..., gt=0)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)
    active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_low_stock(self) -> bool:
        return self.active and self.stock <= self.min_stock

    def apply_movement(self, movement_type: StockMovementType, quantity: int) -> int:
        """Меняет остаток и возвращает новое значение."""
        if quantity <= 0:
            raise ValidationException("Количество должно быть больше нуля")
        if movement_type == StockMovementType.IN:
            new_stock = self.stock + quantity
        else:
            new_stock = self.stock - quantity
        if new_stock < 0:
            raise ValidationException(
                f"Недостаточно товара {self.name}: остаток {self.stock}, запрошено {quantity}"
            )
        self.stock = new_stock
        return new_stock


class StockMovementRecord(LedgerRecord):
    """Запись журнала движения товара."""

    product_id: EntityId
    product_name: str
    movement_type: StockMovementType
    quantity: int = Field(..., gt=0)
    stock_before: int = Field(..., ge=0)
    stock_after: int = Field(..., ge=0)
    reason: str = ""

    @model_validator(mode="after")
    def _snapshots_match_quantity(self) -> "StockMovementRecord":
        sign = 1 if self.movement_type == StockMovementType.IN else -1
        if self.stock_after != self.stock_before + sign * self.quantity:
            raise ValueError("stock_after must equal stock_before plus or minus quantity")
        return self

    @property
    def entity_id(self) -> EntityId:
        return self.product_id

    @property
    def entity_name(self) -> str:
        return self.product_name

    @property
    def kind(self) -> str:
        return self.movement_type.value

    def searchable_fields(self) -> List[Optional[str]]:
        return super().searchable_fields() + [self.reason]

    def opens_state(self) -> bool:
        # Товар "открыт", если движение оставило его без остатка
        return self.stock_after == 0


def movement_observation(movement_type: StockMovementType, quantity: int, reason: str) -> str:
    verb = "Stock in" if movement_type == StockMovementType.IN else "Stock out"
    text = f"{verb}: {quantity} unit(s)"
    return f"{text} ({reason})" if reason else text


# События
class StockMovementRecorded(DomainEvent):
    """Событие: остаток товара изменен движением."""

    event_type: str = "stock_movement_recorded"
    product_id: EntityId
    movement_id: int
    movement_type: StockMovementType
    stock_before: int
    stock_after: int


class ProductCatalogChanged(DomainEvent):
    """Событие: товар добавлен, изменен, деактивирован или каталог импортирован."""

    event_type: str = "product_catalog_changed"
    product_id: Optional[EntityId] = None
    change: str
