# inventario/services/ledger_writer.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.models.enums import MovementKind
from inventario.models.movement import MovementEntry
from inventario.models.stock_line import StockLine
from inventario.obs.metrics import movements_total
from inventario.utils.decimals import to_decimal

REFERENCE_MAX = 120


async def append(
    session: AsyncSession,
    *,
    kind: MovementKind | str,
    product_id: int,
    stock_line_id: int,
    quantity: Decimal | int | str,
    unit_cost: Decimal | int | str | None = None,
    reference: Optional[str] = None,
    notes: Optional[str] = None,
    actor_user_id: Optional[int] = None,
    is_increment: bool = True,
) -> MovementEntry:
    """
    追加一条台账流水（纯插入）。

    业务校验由调用方在此之前完成；这里只检查必填字段，
    保证“聚合已校验 → 台账必写成功”的顺序。
    """
    kind = MovementKind(kind)
    qty = to_decimal(quantity, field="quantity")
    if qty <= 0:
        raise ValueError(f"movement quantity must be positive, got {qty}")
    if not product_id or not stock_line_id:
        raise ValueError("movement requires product_id and stock_line_id")

    if kind is MovementKind.SALIDA or kind is MovementKind.TRANSFER_DISPATCH:
        is_increment = False
    elif kind is not MovementKind.AJUSTE:
        is_increment = True

    entry = MovementEntry(
        kind=kind.value,
        product_id=product_id,
        stock_line_id=stock_line_id,
        quantity=qty,
        is_increment=is_increment,
        unit_cost=to_decimal(unit_cost, field="unit_cost") if unit_cost is not None else None,
        reference=reference[:REFERENCE_MAX] if reference else None,
        notes=notes,
        actor_user_id=actor_user_id,
    )
    session.add(entry)
    await session.flush()

    movements_total.labels(kind.value).inc()
    return entry


async def list_recent(
    session: AsyncSession,
    *,
    product_id: int,
    limit: int = 15,
    warehouse_id: Optional[int] = None,
) -> List[MovementEntry]:
    """某商品最近的流水，新 → 旧。"""
    stmt = select(MovementEntry).where(MovementEntry.product_id == product_id)
    if warehouse_id is not None:
        stmt = stmt.join(StockLine, StockLine.id == MovementEntry.stock_line_id).where(
            StockLine.warehouse_id == warehouse_id
        )
    stmt = stmt.order_by(MovementEntry.created_at.desc(), MovementEntry.id.desc()).limit(limit)
    return list((await session.execute(stmt)).scalars().all())


async def list_by_reference(session: AsyncSession, reference: str) -> List[MovementEntry]:
    stmt = (
        select(MovementEntry)
        .where(MovementEntry.reference == reference)
        .order_by(MovementEntry.id.asc())
    )
    return list((await session.execute(stmt)).scalars().all())
