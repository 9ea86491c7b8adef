# inventario/services/stock_threshold_service.py
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.tx import tx_scope
from inventario.models._types import utcnow
from inventario.ports import AuditSink
from inventario.schemas.inventory import MinimumStockIn
from inventario.services import stock_store
from inventario.services.audit_writer import DbAuditSink
from inventario.services.catalog import require_location, require_product
from inventario.services.errors import InvalidQuantity
from inventario.utils.decimals import QTY_PLACES, decimal_places, decimal_to_str, to_decimal


class StockThresholdService:
    """库存行的最低库存（低库存巡检的阈值）；0 表示不参与告警。"""

    def __init__(self, audit: Optional[AuditSink] = None) -> None:
        self._audit = audit or DbAuditSink()

    @staticmethod
    def _minimum(value: Any):
        try:
            minimum = to_decimal(value, field="minimum_stock")
        except ValueError as e:
            raise InvalidQuantity(str(e), context={"minimum_stock": str(value)}) from e
        if minimum < 0 or decimal_places(minimum) > QTY_PLACES:
            raise InvalidQuantity(
                f"minimum_stock must be >= 0 with at most {QTY_PLACES} decimal places",
                context={"minimum_stock": str(value)},
            )
        return minimum

    async def set_minimum_stock(self, session: AsyncSession, dto: MinimumStockIn) -> Dict[str, Any]:
        minimum = self._minimum(dto.minimum_stock)

        async with tx_scope(session):
            await require_product(session, dto.product_id)
            await require_location(session, dto.warehouse_id, dto.location_id)

            # 行不存在时以 0 基线建出来，只改阈值，不动数量 / 成本，不写台账
            line = await stock_store.lock_line(
                session,
                product_id=dto.product_id,
                warehouse_id=dto.warehouse_id,
                location_id=dto.location_id,
            )
            previous = line.minimum_stock
            line.minimum_stock = minimum
            line.updated_at = utcnow()
            await session.flush()

            await self._audit.record(
                session,
                actor_id=dto.actor_user_id,
                action="INVENTARIO_STOCK_MINIMO",
                description=(
                    f"Stock mínimo del producto {dto.product_id} en almacén {dto.warehouse_id}: "
                    f"{decimal_to_str(previous)} -> {decimal_to_str(minimum)}"
                ),
                table="inventario",
                ref=f"inventario:{line.id}",
                meta={"location_id": dto.location_id, "minimum_stock": decimal_to_str(minimum)},
            )

        return stock_store.snapshot(line)
