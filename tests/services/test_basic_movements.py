from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from inventario.models import AuditEvent
from inventario.services.basic_movement_service import BasicMovementService
from inventario.services.errors import (
    InsufficientStock,
    InvalidQuantity,
    MissingAdjustmentReason,
    ProductNotFound,
)
from tests.services._helpers import count_movements, line_state, movement_rows, seed_line


@pytest.mark.asyncio
async def test_outflow(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=10, average_cost=6)

    res = await BasicMovementService().register_outflow(
        session, product_id=1, quantity="4", reference="  guía 001-123  ", actor_user_id=2
    )

    assert res["stock"]["available"] == "6"
    assert res["stock"]["average_cost"] == "6"
    rows = await movement_rows(session, 1)
    assert [(r[0], r[2], Decimal(r[3]), r[4]) for r in rows] == [
        ("SALIDA", False, Decimal("6"), "guía 001-123")
    ]
    actions = (await session.execute(select(AuditEvent.action))).scalars().all()
    assert actions == ["INVENTARIO_SALIDA"]


@pytest.mark.asyncio
async def test_outflow_beyond_stock(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=2)

    with pytest.raises(InsufficientStock):
        await BasicMovementService().register_outflow(session, product_id=1, quantity=3)

    assert await line_state(session, 1, 1) == (Decimal("2"), Decimal("0"), Decimal("0"))
    assert await count_movements(session) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("is_increment, expected", [(True, "12"), (False, "8")])
async def test_adjustment_both_directions(session, is_increment, expected):
    await seed_line(session, product_id=1, warehouse_id=1, available=10, average_cost=1)

    res = await BasicMovementService().register_adjustment(
        session, product_id=1, quantity=2, reason=" conteo físico ", is_increment=is_increment
    )

    assert res["stock"]["available"] == expected
    assert res["stock"]["average_cost"] == "1"
    rows = await movement_rows(session, 1)
    assert [(r[0], r[2], r[4]) for r in rows] == [("AJUSTE", is_increment, "conteo físico")]


@pytest.mark.asyncio
async def test_adjustment_reason_is_truncated(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=1)
    await BasicMovementService().register_adjustment(
        session, product_id=1, quantity=1, reason="r" * 200, is_increment=True
    )
    rows = await movement_rows(session, 1)
    assert len(rows[0][4]) == 120


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", [None, "", "  ", "ab"])
async def test_adjustment_requires_reason(session, reason):
    with pytest.raises(MissingAdjustmentReason):
        await BasicMovementService().register_adjustment(
            session, product_id=1, quantity=1, reason=reason, is_increment=True
        )
    assert await count_movements(session) == 0


@pytest.mark.asyncio
async def test_negative_adjustment_cannot_go_below_zero(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=1)
    with pytest.raises(InsufficientStock):
        await BasicMovementService().register_adjustment(
            session, product_id=1, quantity=2, reason="merma", is_increment=False
        )


@pytest.mark.asyncio
async def test_unknown_product_and_bad_quantity(session):
    svc = BasicMovementService()
    with pytest.raises(ProductNotFound):
        await svc.register_outflow(session, product_id=404, quantity=1)
    with pytest.raises(InvalidQuantity):
        await svc.register_outflow(session, product_id=1, quantity="abc")
