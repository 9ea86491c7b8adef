from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from inventario.models import AuditEvent, Reservation
from inventario.schemas.inventory import ReserveStockIn
from inventario.services.errors import (
    InactiveLocation,
    InsufficientStock,
    InvalidLocation,
    InvalidQuantity,
    ProductInactive,
    ReservationNotActive,
    ReservationNotFound,
)
from inventario.services.reservation_service import ReservationService
from tests.services._helpers import count_movements, line_state, movement_rows, seed_line


def _dto(**kw) -> ReserveStockIn:
    base = dict(product_id=1, warehouse_id=1, quantity=Decimal("5"), actor_user_id=7)
    base.update(kw)
    return ReserveStockIn(**base)


async def _reservation_count(session) -> int:
    return len((await session.execute(select(Reservation.id))).all())


@pytest.mark.asyncio
async def test_reserve_moves_available_to_committed_without_ledger(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=20, average_cost=3)
    svc = ReservationService()

    res = await svc.reserve(session, _dto(linked_transaction_id=99))

    assert res.state == "ACTIVE"
    assert res.linked_transaction_id == 99
    assert await line_state(session, 1, 1) == (Decimal("15"), Decimal("5"), Decimal("3"))
    assert await count_movements(session) == 0


@pytest.mark.asyncio
async def test_confirm_consumes_committed_and_writes_one_outflow(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=20, average_cost=3)
    svc = ReservationService()
    res = await svc.reserve(session, _dto())
    rid = res.id

    confirmed = await svc.confirm(session, rid, actor_user_id=8, reason="venta 123")

    assert confirmed.state == "CONFIRMED"
    assert confirmed.movement_id is not None
    assert await line_state(session, 1, 1) == (Decimal("15"), Decimal("0"), Decimal("3"))

    rows = await movement_rows(session, 1)
    assert len(rows) == 1
    kind, qty, is_inc, cost, ref = rows[0]
    assert (kind, Decimal(qty), is_inc, Decimal(cost), ref) == (
        "SALIDA",
        Decimal("5"),
        False,
        Decimal("3"),
        f"reserva:{rid}",
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["release", "cancel"])
async def test_release_and_cancel_restore_available(session, action):
    await seed_line(session, product_id=1, warehouse_id=1, available=20)
    svc = ReservationService()
    rid = (await svc.reserve(session, _dto())).id

    res = await getattr(svc, action)(session, rid, reason="cliente desistió")

    assert res.state == {"release": "RELEASED", "cancel": "CANCELLED"}[action]
    assert res.reason == "cliente desistió"
    assert await line_state(session, 1, 1) == (Decimal("20"), Decimal("0"), Decimal("0"))
    assert await count_movements(session) == 0


@pytest.mark.asyncio
async def test_second_transition_is_rejected_and_stock_untouched(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=20)
    svc = ReservationService()
    rid = (await svc.reserve(session, _dto())).id
    await svc.confirm(session, rid)

    for call in (svc.confirm, svc.release, svc.cancel):
        with pytest.raises(ReservationNotActive) as ei:
            await call(session, rid)
        assert ei.value.context["state"] == "CONFIRMED"

    assert await line_state(session, 1, 1) == (Decimal("15"), Decimal("0"), Decimal("0"))
    assert await count_movements(session) == 1


@pytest.mark.asyncio
async def test_reserving_more_than_available_has_no_side_effects(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=3)
    svc = ReservationService()

    with pytest.raises(InsufficientStock):
        await svc.reserve(session, _dto(quantity=Decimal("4")))

    assert await line_state(session, 1, 1) == (Decimal("3"), Decimal("0"), Decimal("0"))
    assert await _reservation_count(session) == 0
    audit = (await session.execute(select(AuditEvent.id))).all()
    assert audit == []


@pytest.mark.asyncio
async def test_reserving_with_no_stock_line_fails(session):
    with pytest.raises(InsufficientStock):
        await ReservationService().reserve(session, _dto(quantity=Decimal("1")))
    assert await _reservation_count(session) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, exc",
    [
        ({"quantity": Decimal("0")}, InvalidQuantity),
        ({"quantity": Decimal("-2")}, InvalidQuantity),
        ({"quantity": Decimal("0.00001")}, InvalidQuantity),
        ({"product_id": 3}, ProductInactive),
        ({"location_id": 20}, InvalidLocation),  # 库位属于仓 2
        ({"location_id": 11}, InactiveLocation),
        ({"warehouse_id": 3}, InactiveLocation),
    ],
)
async def test_reserve_validation(session, overrides, exc):
    await seed_line(session, product_id=1, warehouse_id=1, available=20)

    with pytest.raises(exc):
        await ReservationService().reserve(session, _dto(**overrides))

    assert await _reservation_count(session) == 0


@pytest.mark.asyncio
async def test_reserve_on_location_line(session):
    await seed_line(session, product_id=1, warehouse_id=1, location_id=10, available=8)
    res = await ReservationService().reserve(session, _dto(location_id=10, quantity=Decimal("8")))

    assert res.location_id == 10
    assert await line_state(session, 1, 1, 10) == (Decimal("0"), Decimal("8"), Decimal("0"))


@pytest.mark.asyncio
async def test_unknown_reservation(session):
    with pytest.raises(ReservationNotFound):
        await ReservationService().confirm(session, 12345)


@pytest.mark.asyncio
async def test_every_transition_is_audited(session):
    await seed_line(session, product_id=1, warehouse_id=1, available=20)
    svc = ReservationService()
    rid = (await svc.reserve(session, _dto())).id
    await svc.release(session, rid, actor_user_id=7)

    actions = (
        await session.execute(select(AuditEvent.action).order_by(AuditEvent.id))
    ).scalars().all()
    assert actions == ["RESERVA_CREADA", "RESERVA_LIBERADA"]


@pytest.mark.asyncio
async def test_sub_precision_quantity_is_rejected_before_touching_stock(session):
    """库存列只有 4 位小数；多出来的位数不能被静默截掉。"""
    await seed_line(session, product_id=1, warehouse_id=1, available=20)
    svc = ReservationService()

    with pytest.raises(InvalidQuantity):
        await svc.reserve(session, _dto(quantity=Decimal("0.00001")))

    assert await line_state(session, 1, 1) == (Decimal("20"), Decimal("0"), Decimal("0"))
    assert await _reservation_count(session) == 0

    # 尾零不算多余精度
    res = await svc.reserve(session, _dto(quantity=Decimal("1.50000")))
    await svc.confirm(session, res.id)
    assert await line_state(session, 1, 1) == (Decimal("18.5"), Decimal("0"), Decimal("0"))
