from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from inventario.schemas.inventory import (
    CreateTransferIn,
    MinimumStockIn,
    PurchaseLineIn,
    RegisterPurchaseIn,
    RegisterSupplierIn,
    ReservationOut,
    ReserveStockIn,
    StockAdjustmentIn,
    StockMovementIn,
)
from inventario.services.errors import InsufficientStock, ReservationNotActive
from inventario.services.inventory_facade import InventoryFacade
from inventario.services.notification import NullNotificationSink


@pytest.fixture
def facade(session_maker, _seed):
    return InventoryFacade(session_maker, notifier=NullNotificationSink(), basic_warehouse_id=1)


@pytest.mark.asyncio
async def test_purchase_reserve_confirm_flow(facade):
    await facade.register_purchase(
        RegisterPurchaseIn(
            supplier_id=1,
            lines=[PurchaseLineIn(product_id=1, quantity=Decimal("20"), unit_price=Decimal("3"))],
        )
    )

    res = await facade.reserve_stock(
        ReserveStockIn(product_id=1, warehouse_id=1, quantity=Decimal("5"), linked_transaction_id=77)
    )
    assert isinstance(res, ReservationOut)
    assert res.model_dump(mode="json")["quantity"] == "5"

    stock = (await facade.get_stock(1))["stock"]
    assert (stock["available"], stock["committed"]) == ("15", "5")

    confirmed = await facade.confirm_reservation(res.id, actor_user_id=9)
    assert confirmed.state == "CONFIRMED"

    out = await facade.get_stock(1)
    assert (out["stock"]["available"], out["stock"]["committed"]) == ("15", "0")
    assert [m["kind"] for m in out["movements"]] == ["SALIDA", "INGRESO"]

    with pytest.raises(ReservationNotActive):
        await facade.cancel_reservation(res.id, "tarde")


@pytest.mark.asyncio
async def test_release_returns_stock(facade):
    await facade.register_adjustment(1, "10", "inventario inicial", True)
    res = await facade.reserve_stock(ReserveStockIn(product_id=1, warehouse_id=1, quantity=Decimal("4")))

    released = await facade.release_reservation(res.id, "pedido anulado")

    assert released.state == "RELEASED"
    assert (await facade.get_stock(1))["stock"]["available"] == "10"


@pytest.mark.asyncio
async def test_transfer_round_trip(facade):
    await facade.register_adjustment(1, "10", "inventario inicial", True)

    t = await facade.create_transfer(
        CreateTransferIn(product_id=1, origin_warehouse_id=1, destination_warehouse_id=2, quantity=Decimal("6"))
    )
    assert t.state == "PENDING"
    assert (await facade.get_stock(1, warehouse_id=2))["stock"]["available"] == "0"

    done = await facade.confirm_transfer(t.id)
    assert done.state == "CONFIRMED"
    assert (await facade.get_stock(1, warehouse_id=2))["stock"]["available"] == "6"
    assert (await facade.get_stock(1))["stock"]["available"] == "4"

    t2 = await facade.create_transfer(
        CreateTransferIn(product_id=1, origin_warehouse_id=1, destination_warehouse_id=2, quantity=Decimal("4"))
    )
    cancelled = await facade.cancel_transfer(t2.id)
    assert cancelled.state == "CANCELLED"
    assert (await facade.get_stock(1))["stock"]["available"] == "4"


@pytest.mark.asyncio
async def test_outflow_errors_propagate(facade):
    with pytest.raises(InsufficientStock) as ei:
        await facade.register_outflow(2, 1, "venta mostrador")
    assert ei.value.to_problem()["error_code"] == "STOCK_INSUFICIENTE"


@pytest.mark.asyncio
async def test_register_supplier(facade):
    out = await facade.register_supplier(RegisterSupplierIn(name="Nueva SAC", tax_id="20111111111"))
    assert out["name"] == "Nueva SAC"
    assert out["supplier_id"] > 2


@pytest.mark.asyncio
async def test_sweeps_and_summary(facade, monkeypatch):
    await facade.register_adjustment(1, "3", "inventario inicial", True)
    await facade.reserve_stock(
        ReserveStockIn(
            product_id=1,
            warehouse_id=1,
            quantity=Decimal("2"),
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )
    )

    swept = await facade.sweep_expired_reservations()
    assert swept["released_count"] == 1

    summary = await facade.inventory_summary()
    assert summary["total_available"] == "3"
    assert summary["total_committed"] == "0"

    low = await facade.sweep_low_stock()
    assert low["notification"]["reason"] == "NO_RECIPIENTS"


@pytest.mark.asyncio
async def test_lookups_with_log_only_audit(session_maker, _seed):
    from sqlalchemy import func, select

    from inventario.models import AuditEvent
    from inventario.services.audit_writer import LogAuditSink
    from inventario.services.errors import ReservationNotFound, TransferNotFound

    facade = InventoryFacade(session_maker, audit=LogAuditSink())
    await facade.register_adjustment(1, "5", "inventario inicial", True)
    res = await facade.reserve_stock(ReserveStockIn(product_id=1, warehouse_id=1, quantity=Decimal("1")))
    t = await facade.create_transfer(
        CreateTransferIn(product_id=1, origin_warehouse_id=1, destination_warehouse_id=2, quantity=Decimal("1"))
    )

    assert (await facade.get_reservation(res.id)).state == "ACTIVE"
    assert (await facade.get_transfer(t.id)).dispatch_movement_id == t.dispatch_movement_id
    with pytest.raises(ReservationNotFound):
        await facade.get_reservation(999)
    with pytest.raises(TransferNotFound):
        await facade.get_transfer(999)

    async with session_maker() as s:
        count = (await s.execute(select(func.count()).select_from(AuditEvent))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_location_movements_and_minimum_stock(facade):
    inbound = await facade.register_inbound(
        StockMovementIn(product_id=2, warehouse_id=1, location_id=10, quantity=Decimal("8"), unit_cost=Decimal("2.5"))
    )
    assert inbound["stock"]["average_cost"] == "2.5"

    out = await facade.register_outbound(
        StockMovementIn(product_id=2, warehouse_id=1, location_id=10, quantity=Decimal("3"))
    )
    assert out["stock"]["available"] == "5"

    adj = await facade.adjust_stock(
        StockAdjustmentIn(
            product_id=2, warehouse_id=1, location_id=10, quantity=Decimal("1"), is_increment=False, reason="rotura"
        )
    )
    assert adj["movement_id"] > out["movement_id"]
    assert adj["stock"]["available"] == "4"

    line = await facade.set_minimum_stock(
        MinimumStockIn(product_id=2, warehouse_id=1, location_id=10, minimum_stock=Decimal("4"))
    )
    assert line["minimum_stock"] == "4"

    low = await facade.sweep_low_stock()
    assert [(i["product_id"], i["location_id"]) for i in low["items"]] == [(2, 10)]
