from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from inventario.core.tx import tx_scope
from inventario.models import MovementEntry
from inventario.models.enums import MovementKind
from inventario.services import ledger_writer
from inventario.services.errors import ImmutableLedgerEntry
from tests.services._helpers import count_movements, seed_line


async def _one_entry(session, line_id: int, **kw) -> int:
    async with tx_scope(session):
        entry = await ledger_writer.append(
            session,
            product_id=1,
            stock_line_id=line_id,
            **kw,
        )
    return entry.id


@pytest.mark.asyncio
async def test_direction_is_derived_from_kind(session):
    line_id = await seed_line(session, product_id=1, warehouse_id=1, available=10)

    await _one_entry(session, line_id, kind=MovementKind.SALIDA, quantity=1, is_increment=True)
    await _one_entry(session, line_id, kind=MovementKind.INGRESO, quantity=1, is_increment=False)
    await _one_entry(session, line_id, kind="AJUSTE", quantity=1, is_increment=False)

    rows = (
        await session.execute(
            select(MovementEntry.kind, MovementEntry.is_increment).order_by(MovementEntry.id)
        )
    ).all()
    assert [tuple(r) for r in rows] == [("SALIDA", False), ("INGRESO", True), ("AJUSTE", False)]


@pytest.mark.asyncio
async def test_reference_is_truncated(session):
    line_id = await seed_line(session, product_id=1, warehouse_id=1)
    await _one_entry(session, line_id, kind=MovementKind.INGRESO, quantity=1, reference="x" * 300)

    ref = (await session.execute(select(MovementEntry.reference))).scalar_one()
    assert len(ref) == 120


@pytest.mark.asyncio
@pytest.mark.parametrize("qty", [0, -1, "0.0000"])
async def test_non_positive_quantity_is_rejected(session, qty):
    line_id = await seed_line(session, product_id=1, warehouse_id=1)
    with pytest.raises(ValueError):
        await _one_entry(session, line_id, kind=MovementKind.INGRESO, quantity=qty)
    assert await count_movements(session) == 0


@pytest.mark.asyncio
async def test_update_is_forbidden(session):
    line_id = await seed_line(session, product_id=1, warehouse_id=1)
    mid = await _one_entry(session, line_id, kind=MovementKind.INGRESO, quantity=2)

    with pytest.raises(ImmutableLedgerEntry):
        async with tx_scope(session):
            entry = await session.get(MovementEntry, mid)
            entry.quantity = Decimal("3")
            await session.flush()

    qty = (await session.execute(select(MovementEntry.quantity))).scalar_one()
    assert Decimal(qty) == Decimal("2")


@pytest.mark.asyncio
async def test_delete_is_forbidden(session):
    line_id = await seed_line(session, product_id=1, warehouse_id=1)
    mid = await _one_entry(session, line_id, kind=MovementKind.INGRESO, quantity=2)

    with pytest.raises(ImmutableLedgerEntry):
        async with tx_scope(session):
            entry = await session.get(MovementEntry, mid)
            await session.delete(entry)
            await session.flush()

    assert await count_movements(session) == 1


@pytest.mark.asyncio
async def test_list_recent_is_newest_first(session):
    line_id = await seed_line(session, product_id=1, warehouse_id=1)
    ids = [
        await _one_entry(session, line_id, kind=MovementKind.INGRESO, quantity=i + 1)
        for i in range(3)
    ]

    recent = await ledger_writer.list_recent(session, product_id=1, limit=2)
    assert [m.id for m in recent] == [ids[2], ids[1]]
