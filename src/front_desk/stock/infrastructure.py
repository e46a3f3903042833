"""
Инфраструктурный слой складского учета.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ..shared_kernel import Ledger, NullLedger
from ..shared_kernel import interfaces as kernel_ports
from ..shared_kernel.infrastructure import InMemoryEntityStore, InMemoryUnitOfWork
from .domain import Product, StockMovementRecord


class InMemoryProductStore(InMemoryEntityStore[Product]):
    """Хранилище товаров в памяти."""

    def __init__(self, products=None, clock: Optional[kernel_ports.IClock] = None):
        super().__init__("Product", products, clock)


class StockMovementLedger(Ledger[StockMovementRecord]):
    """Журнал движения товаров."""


class StockUnitOfWork(InMemoryUnitOfWork):
    """Единица работы для товаров и журнала их движения."""

    def __init__(
        self,
        products: Optional[InMemoryProductStore] = None,
        movements: Optional[Ledger[StockMovementRecord]] = None,
        logger: Optional[kernel_ports.ILogger] = None,
    ):
        super().__init__(logger)
        self._products = products if products is not None else InMemoryProductStore()
        self._movements = movements if movements is not None else NullLedger()

    @property
    def products(self) -> InMemoryProductStore:
        return self._products

    @property
    def movements(self) -> Ledger[StockMovementRecord]:
        return self._movements

    def _stores(self):
        return [self._products]

    def _ledgers(self):
        return [self._movements]


class StockSnapshot(BaseModel):
    """Снимок товаров и журнала их движения."""

    products: List[Product] = Field(default_factory=list)
    movements: List[StockMovementRecord] = Field(default_factory=list)


STOCK_SNAPSHOT_KEYS = {
    "products": "products_data",
    "movements": "stock_movements_data",
}
