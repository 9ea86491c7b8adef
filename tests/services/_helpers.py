from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.models import MovementEntry, StockLine


async def seed_line(
    session: AsyncSession,
    *,
    product_id: int,
    warehouse_id: int,
    available: str | int = 0,
    average_cost: str | int = 0,
    minimum_stock: str | int = 0,
    location_id: Optional[int] = None,
) -> int:
    """直接落一行库存（不走台账），用于构造初始状态。"""
    line = StockLine(
        product_id=product_id,
        warehouse_id=warehouse_id,
        location_id=location_id,
        location_key=location_id or 0,
        available=Decimal(str(available)),
        committed=Decimal("0"),
        average_cost=Decimal(str(average_cost)),
        minimum_stock=Decimal(str(minimum_stock)),
    )
    session.add(line)
    await session.commit()
    return line.id


async def line_state(
    session: AsyncSession,
    product_id: int,
    warehouse_id: int,
    location_id: Optional[int] = None,
) -> Optional[Tuple[Decimal, Decimal, Decimal]]:
    """(available, committed, average_cost)；行不存在返回 None。"""
    row = (
        await session.execute(
            select(StockLine.available, StockLine.committed, StockLine.average_cost).where(
                StockLine.product_id == product_id,
                StockLine.warehouse_id == warehouse_id,
                StockLine.location_key == (location_id or 0),
            )
        )
    ).first()
    if row is None:
        return None
    return Decimal(row[0]), Decimal(row[1]), Decimal(row[2])


async def count_movements(session: AsyncSession, **filters) -> int:
    stmt = select(func.count()).select_from(MovementEntry)
    for key, value in filters.items():
        stmt = stmt.where(getattr(MovementEntry, key) == value)
    return int((await session.execute(stmt)).scalar_one())


async def movement_rows(session: AsyncSession, product_id: int) -> List[tuple]:
    """(kind, quantity, is_increment, unit_cost, reference)，按 id 升序。"""
    rows = await session.execute(
        select(
            MovementEntry.kind,
            MovementEntry.quantity,
            MovementEntry.is_increment,
            MovementEntry.unit_cost,
            MovementEntry.reference,
        )
        .where(MovementEntry.product_id == product_id)
        .order_by(MovementEntry.id)
    )
    return [tuple(r) for r in rows.all()]
