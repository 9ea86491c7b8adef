from __future__ import annotations

import pytest

from inventario.services.basic_movement_service import BasicMovementService
from inventario.services.errors import InvalidProductId, ProductNotFound
from inventario.services.stock_query_service import StockQueryService
from tests.services._helpers import seed_line


@pytest.mark.asyncio
async def test_product_without_stock_returns_zeros(session):
    out = await StockQueryService().get_stock(session, 2)

    assert out["movements"] == []
    stock = out["stock"]
    assert stock["available"] == "0"
    assert stock["committed"] == "0"
    assert stock["average_cost"] == "0"
    assert stock["product_id"] == 2
    assert stock["warehouse_id"] == 1
    assert stock["updated_at"] == "1970-01-01T00:00:00+00:00"


@pytest.mark.asyncio
async def test_stock_with_recent_movements_newest_first(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=10, average_cost="2.5")
    svc = BasicMovementService()
    first = await svc.register_outflow(session, product_id=1, quantity=1, reference="a")
    second = await svc.register_outflow(session, product_id=1, quantity="2.5", reference="b")

    out = await StockQueryService().get_stock(session, 1)

    assert out["stock"]["available"] == "6.5"
    assert out["stock"]["average_cost"] == "2.5"
    assert [m["id"] for m in out["movements"]] == [second["movement_id"], first["movement_id"]]
    assert out["movements"][0]["quantity"] == "2.5"
    assert out["movements"][0]["kind"] == "SALIDA"


@pytest.mark.asyncio
async def test_movement_limit(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=100)
    svc = BasicMovementService()
    for _ in range(4):
        await svc.register_outflow(session, product_id=1, quantity=1)

    out = await StockQueryService().get_stock(session, 1, limit=3)
    assert len(out["movements"]) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("bad", [0, -1, "1", None, True, 1.0])
async def test_invalid_product_id(session, bad):
    with pytest.raises(InvalidProductId):
        await StockQueryService().get_stock(session, bad)


@pytest.mark.asyncio
async def test_unknown_product(session):
    with pytest.raises(ProductNotFound):
        await StockQueryService().get_stock(session, 999)
