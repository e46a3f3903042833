"""
Тесты складского учета: каталог товаров и журнал движения.
"""

from datetime import date, time

import pytest
from front_desk.shared_kernel import ErrorKind
from front_desk.stock.domain import (
    ProductCatalogChanged,
    StockMovementRecord,
    StockMovementRecorded,
    StockMovementType,
)
from pydantic import ValidationError


@pytest.fixture
def towels(stock_service):
    return stock_service.add_product(
        "Towel", sku="TW-01", category="linen", price=12.5, stock=10, min_stock=3
    ).product


@pytest.fixture
def soap(stock_service):
    return stock_service.add_product(
        "Soap", sku="SP-01", category="toiletries", price=2, stock=2, min_stock=5
    ).product


class TestProductCatalog:
    """Тесты каталога товаров."""

    def test_add_product(self, published, stock_service, towels):
        assert towels.id == 1
        assert towels.active is True
        assert isinstance(published[-1], ProductCatalogChanged)

    def test_add_product_rejects_negative_stock(self, stock_service):
        result = stock_service.add_product("Broken", stock=-1)

        assert result.error == ErrorKind.VALIDATION_ERROR

    def test_update_product(self, stock_service, towels):
        result = stock_service.update_product(towels.id, price=15, category="bath")

        assert result.product.price == 15
        assert result.product.category == "bath"
        assert result.product.stock == 10

    def test_update_product_cannot_touch_stock(self, stock_service, towels):
        result = stock_service.update_product(towels.id, stock=100)

        assert result.error == ErrorKind.VALIDATION_ERROR
        assert stock_service.get_product(towels.id).stock == 10

    def test_update_product_validates_values(self, stock_service, towels):
        assert stock_service.update_product(towels.id, price=-1).error == (
            ErrorKind.VALIDATION_ERROR
        )

    def test_deactivate_is_soft_delete(self, stock_service, towels, soap):
        stock_service.deactivate_product(towels.id)

        assert [p.name for p in stock_service.list_products()] == ["Soap"]
        assert stock_service.get_product(towels.id).active is False

    def test_queries(self, stock_service, towels, soap):
        assert [p.name for p in stock_service.products_by_category("linen")] == ["Towel"]
        assert [p.name for p in stock_service.low_stock_products()] == ["Soap"]
        assert [p.name for p in stock_service.search_products("sp-")] == ["Soap"]
        assert [p.name for p in stock_service.search_products("toilet")] == ["Soap"]

    def test_statistics(self, stock_service, towels, soap):
        stock_service.deactivate_product(soap.id)

        stats = stock_service.statistics()

        assert (stats.total, stats.active, stats.inactive) == (2, 1, 1)
        assert stats.low_stock == 0
        assert stats.inventory_value == 125
        assert stats.categories == {"linen": 1}


class TestStockMovements:
    """Тесты движения остатков."""

    def test_inbound_movement(self, stock_service, towels, published):
        published.clear()

        result = stock_service.register_movement(towels.id, "in", 5, reason="Supplier delivery")

        assert result.success
        assert result.product.stock == 15
        record = result.movement
        assert (record.stock_before, record.stock_after) == (10, 15)
        assert record.observations == "Stock in: 5 unit(s) (Supplier delivery)"
        assert record.actor == "Receptionist"
        assert (record.date, record.time) == (date(2024, 2, 1), time(10, 0))
        assert isinstance(published[0], StockMovementRecorded)

    def test_outbound_movement(self, stock_service, towels):
        result = stock_service.register_movement(
            towels.id, StockMovementType.OUT, 10, date="2024-02-02", time="08:30", actor="Housekeeping"
        )

        assert result.product.stock == 0
        assert result.movement.date == date(2024, 2, 2)
        assert result.movement.actor == "Housekeeping"

    def test_negative_stock_is_rejected(self, stock_service, stock_uow, towels):
        result = stock_service.register_movement(towels.id, "out", 11)

        assert result.error == ErrorKind.VALIDATION_ERROR
        assert stock_service.get_product(towels.id).stock == 10
        assert len(stock_uow.movements) == 0

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_quantity_must_be_positive(self, stock_service, towels, quantity):
        assert stock_service.register_movement(towels.id, "in", quantity).error == (
            ErrorKind.VALIDATION_ERROR
        )

    def test_inactive_product_is_rejected(self, stock_service, towels):
        stock_service.deactivate_product(towels.id)

        assert stock_service.register_movement(towels.id, "in", 1).error == (
            ErrorKind.VALIDATION_ERROR
        )

    def test_unknown_product_and_type(self, stock_service, towels):
        assert stock_service.register_movement(99, "in", 1).error == ErrorKind.NOT_FOUND
        assert stock_service.register_movement(towels.id, "lost", 1).error == (
            ErrorKind.VALIDATION_ERROR
        )

    def test_ledger_queries_and_stats(self, stock_service, towels, soap):
        stock_service.register_movement(towels.id, "in", 5, reason="Delivery")
        stock_service.register_movement(soap.id, "out", 2, reason="Room 101")
        stock_service.register_movement(towels.id, "out", 1, date="2024-01-30")

        assert [m.id for m in stock_service.movements_for_product(towels.id)] == [1, 3]
        assert len(stock_service.movements_by_type("out")) == 2
        assert len(stock_service.movements_on("2024-01-30")) == 1
        assert [m.product_name for m in stock_service.search_movements("room 101")] == ["Soap"]

        stats = stock_service.movement_stats()
        assert stats.total == 3
        assert stats.counts_by_type == {"in": 1, "out": 2}
        # Soap остался без остатка
        assert stats.entities_with_open_state == 1
        assert stats.records_today == 2

    def test_bad_ledger_query_input_gives_empty_list(self, stock_service, towels):
        stock_service.register_movement(towels.id, "in", 5)

        assert stock_service.movements_by_type("lost") == []
        assert stock_service.movements_on("2024-02-30") == []

    def test_record_rejects_inconsistent_snapshots(self):
        with pytest.raises(ValidationError):
            StockMovementRecord(
                product_id=1,
                product_name="Towel",
                movement_type="out",
                quantity=3,
                stock_before=10,
                stock_after=8,
                date="2024-02-01",
                time="10:00",
            )


class TestStockTransfer:
    """Тесты экспорта и импорта склада."""

    def test_products_round_trip(self, stock_service, towels, soap):
        exported = stock_service.export_products()

        assert stock_service.import_products(exported) is True

        assert stock_service.export_products() == exported
        assert exported[0]["minStock"] == 3

    def test_products_require_numeric_stock(self, stock_service, towels):
        accepted = stock_service.import_products(
            [
                {"id": 7, "name": "Pillow", "stock": 4},
                {"id": 8, "name": "Blanket", "stock": "4"},
                {"id": 9, "name": "Sheet"},
            ]
        )

        assert accepted is True
        assert [p.id for p in stock_service.list_products()] == [7]
        assert stock_service.import_products([{"id": 1, "name": "x"}]) is False

    def test_movements_round_trip(self, stock_service, towels):
        stock_service.register_movement(towels.id, "in", 5)
        exported = stock_service.export_movements()

        assert stock_service.import_movements(exported) is True
        assert stock_service.export_movements() == exported
        assert exported[0]["stockBefore"] == 10
        assert stock_service.import_movements([{"productId": 1}]) is False
