# inventario/services/report_service.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.models.product import Product
from inventario.models.stock_line import StockLine
from inventario.models.warehouse import Warehouse
from inventario.services.low_stock_service import find_critical_items
from inventario.utils.decimals import ZERO, decimal_to_str, quantize_money

TOP_CRITICAL = 10


class InventoryReportService:
    """库存汇总：总量 / 估值（available * average_cost）/ 分仓 / 关键项 Top10。"""

    async def summary(self, session: AsyncSession) -> Dict[str, Any]:
        stmt = (
            select(
                StockLine.warehouse_id,
                Warehouse.name,
                StockLine.available,
                StockLine.committed,
                StockLine.average_cost,
            )
            .join(Product, Product.id == StockLine.product_id)
            .join(Warehouse, Warehouse.id == StockLine.warehouse_id)
            .where(Product.active.is_(True))
        )

        per_wh: Dict[int, Dict[str, Any]] = {}
        total_available = total_committed = total_value = ZERO
        for wh_id, wh_name, available, committed, avg in (await session.execute(stmt)).all():
            value: Decimal = available * avg
            total_available += available
            total_committed += committed
            total_value += value

            bucket = per_wh.setdefault(
                wh_id,
                {"warehouse_id": wh_id, "warehouse_name": wh_name, "lines": 0, "available": ZERO, "value": ZERO},
            )
            bucket["lines"] += 1
            bucket["available"] += available
            bucket["value"] += value

        warehouses = sorted(per_wh.values(), key=lambda b: (-b["value"], b["warehouse_id"]))
        critical = await find_critical_items(session)

        return {
            "total_available": decimal_to_str(total_available),
            "total_committed": decimal_to_str(total_committed),
            "total_value": decimal_to_str(quantize_money(total_value)),
            "warehouses": [
                {
                    **b,
                    "available": decimal_to_str(b["available"]),
                    "value": decimal_to_str(quantize_money(b["value"])),
                }
                for b in warehouses
            ],
            "critical_count": len(critical),
            "critical_items": critical[:TOP_CRITICAL],
        }
