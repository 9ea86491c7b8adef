# inventario/services/stock_query_service.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.config import get_settings
from inventario.schemas.inventory import MovementOut
from inventario.services import ledger_writer, stock_store
from inventario.services.catalog import require_product
from inventario.services.errors import InvalidProductId

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class StockQueryService:
    """库存查询：库存行 + 最近流水；库存行不存在时返回全 0（不会返回 None）。"""

    async def get_stock(
        self,
        session: AsyncSession,
        product_id: Any,
        *,
        warehouse_id: Optional[int] = None,
        location_id: Optional[int] = None,
        limit: int = 15,
    ) -> Dict[str, Any]:
        if isinstance(product_id, bool) or not isinstance(product_id, int) or product_id <= 0:
            raise InvalidProductId(
                "product id must be a positive integer", context={"product_id": product_id}
            )
        wh = warehouse_id or get_settings().BASIC_WAREHOUSE_ID

        await require_product(session, product_id)
        line = await stock_store.get_line(
            session, product_id=product_id, warehouse_id=wh, location_id=location_id
        )
        movements = await ledger_writer.list_recent(
            session, product_id=product_id, limit=limit, warehouse_id=wh
        )

        stock = stock_store.snapshot(line)
        stock.update(product_id=product_id, warehouse_id=wh, location_id=location_id)
        if line is None:
            stock["updated_at"] = EPOCH.isoformat()

        return {
            "stock": stock,
            "movements": [MovementOut.model_validate(m).model_dump(mode="json") for m in movements],
        }
