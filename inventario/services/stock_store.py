# inventario/services/stock_store.py
"""
库存聚合（StockLine）的唯一写入口。

所有数量变更都在调用方事务内完成：
  1) 行不存在则以 0 基线插入（ON CONFLICT DO NOTHING）
  2) SELECT ... FOR UPDATE 锁行，同一行的并发写者在这里串行
  3) 校验非负 → 应用增量 → 可选地重算加权平均成本
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.models._types import utcnow
from inventario.models.stock_line import StockLine
from inventario.services.costing import weighted_average
from inventario.services.errors import InsufficientStock, InvalidCommittedStock
from inventario.utils.decimals import ZERO, decimal_to_str, to_decimal

log = logging.getLogger("inventario.stock")


def _location_key(location_id: Optional[int]) -> int:
    return int(location_id) if location_id else 0


def _line_filter(product_id: int, warehouse_id: int, location_id: Optional[int]):
    return (
        StockLine.product_id == product_id,
        StockLine.warehouse_id == warehouse_id,
        StockLine.location_key == _location_key(location_id),
    )


async def ensure_line(
    session: AsyncSession,
    *,
    product_id: int,
    warehouse_id: int,
    location_id: Optional[int] = None,
) -> None:
    """库存行不存在时以 0 基线插入；已存在则什么都不做。"""
    values = dict(
        product_id=product_id,
        warehouse_id=warehouse_id,
        location_id=location_id or None,
        location_key=_location_key(location_id),
        available=ZERO,
        committed=ZERO,
        average_cost=ZERO,
        minimum_stock=ZERO,
        updated_at=utcnow(),
    )
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(StockLine).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite_insert(StockLine).values(**values)
    else:
        raise RuntimeError(f"unsupported dialect for stock upsert: {dialect}")
    stmt = stmt.on_conflict_do_nothing(
        index_elements=["product_id", "warehouse_id", "location_key"]
    )
    await session.execute(stmt)


async def lock_line(
    session: AsyncSession,
    *,
    product_id: int,
    warehouse_id: int,
    location_id: Optional[int] = None,
) -> StockLine:
    """确保存在并加行锁，返回最新值（populate_existing 覆盖 identity map 里的旧值）。"""
    await ensure_line(
        session, product_id=product_id, warehouse_id=warehouse_id, location_id=location_id
    )
    stmt = lock_statement(product_id, warehouse_id, location_id)
    return (await session.execute(stmt)).scalar_one()


def lock_statement(product_id: int, warehouse_id: int, location_id: Optional[int] = None):
    """SELECT ... FOR UPDATE；SQLite 编译时会丢掉 FOR UPDATE，靠 BEGIN 串行化。"""
    return (
        select(StockLine)
        .where(*_line_filter(product_id, warehouse_id, location_id))
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def get_line(
    session: AsyncSession,
    *,
    product_id: int,
    warehouse_id: int,
    location_id: Optional[int] = None,
) -> Optional[StockLine]:
    """只读查询，不加锁、不建行。"""
    stmt = (
        select(StockLine)
        .where(*_line_filter(product_id, warehouse_id, location_id))
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def apply_delta(
    session: AsyncSession,
    *,
    product_id: int,
    warehouse_id: int,
    location_id: Optional[int] = None,
    available_delta: Decimal | int | str = 0,
    committed_delta: Decimal | int | str = 0,
    new_cost: Decimal | int | str | None = None,
) -> StockLine:
    """
    在调用方事务内对一行库存应用增量，返回变更后的行。

    - available 变负 → InsufficientStock
    - committed 变负 → InvalidCommittedStock
    - new_cost 只在 available 增加时参与加权平均；出库/减量从不改成本
    """
    a_delta = to_decimal(available_delta, field="available_delta")
    c_delta = to_decimal(committed_delta, field="committed_delta")

    line = await lock_line(
        session, product_id=product_id, warehouse_id=warehouse_id, location_id=location_id
    )

    new_available = line.available + a_delta
    new_committed = line.committed + c_delta

    if new_available < 0:
        raise InsufficientStock(
            "insufficient stock",
            context={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "location_id": location_id,
                "available": decimal_to_str(line.available),
                "requested": decimal_to_str(-a_delta),
            },
        )
    if new_committed < 0:
        raise InvalidCommittedStock(
            "committed stock would become negative",
            context={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "location_id": location_id,
                "committed": decimal_to_str(line.committed),
                "delta": decimal_to_str(c_delta),
            },
        )

    if new_cost is not None and a_delta > 0:
        line.average_cost = weighted_average(
            line.available,
            line.average_cost,
            a_delta,
            to_decimal(new_cost, field="new_cost"),
        )

    line.available = new_available
    line.committed = new_committed
    line.updated_at = utcnow()
    await session.flush()

    log.debug(
        "stock line %s: available%+s committed%+s -> %s/%s",
        line.id,
        a_delta,
        c_delta,
        line.available,
        line.committed,
    )
    return line


def snapshot(line: Optional[StockLine]) -> Dict[str, Any]:
    """库存行 → 边界字典（十进制字符串）。"""
    if line is None:
        return {
            "available": "0",
            "committed": "0",
            "average_cost": "0",
            "minimum_stock": "0",
        }
    return {
        "id": line.id,
        "product_id": line.product_id,
        "warehouse_id": line.warehouse_id,
        "location_id": line.location_id,
        "available": decimal_to_str(line.available),
        "committed": decimal_to_str(line.committed),
        "average_cost": decimal_to_str(line.average_cost),
        "minimum_stock": decimal_to_str(line.minimum_stock),
        "updated_at": line.updated_at.isoformat() if line.updated_at else None,
    }
