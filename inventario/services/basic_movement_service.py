# inventario/services/basic_movement_service.py
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.config import get_settings
from inventario.core.tx import tx_scope
from inventario.models.enums import MovementKind
from inventario.ports import AuditSink
from inventario.services import ledger_writer, stock_store
from inventario.services.audit_writer import DbAuditSink
from inventario.services.catalog import positive_quantity, require_product, require_warehouse
from inventario.services.errors import MissingAdjustmentReason
from inventario.utils.decimals import decimal_to_str

TEXT_MAX = 120
REASON_MIN = 3


class BasicMovementService:
    """基础模块 · 手工出库 / 手工调整（只作用于基础仓、无库位的库存行）。"""

    def __init__(self, audit: Optional[AuditSink] = None, warehouse_id: Optional[int] = None) -> None:
        self._audit = audit or DbAuditSink()
        self._warehouse_id = warehouse_id

    @property
    def warehouse_id(self) -> int:
        return self._warehouse_id or get_settings().BASIC_WAREHOUSE_ID

    # ---------- 出库 ----------
    async def register_outflow(
        self,
        session: AsyncSession,
        *,
        product_id: int,
        quantity: Any,
        reference: Optional[str] = None,
        actor_user_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        qty = positive_quantity(quantity)
        ref = (reference or "").strip()[:TEXT_MAX] or None
        wh = self.warehouse_id

        async with tx_scope(session):
            await require_product(session, product_id)
            await require_warehouse(session, wh)

            line = await stock_store.apply_delta(
                session, product_id=product_id, warehouse_id=wh, available_delta=-qty
            )
            movement = await ledger_writer.append(
                session,
                kind=MovementKind.SALIDA,
                product_id=product_id,
                stock_line_id=line.id,
                quantity=qty,
                unit_cost=line.average_cost,
                reference=ref,
                actor_user_id=actor_user_id,
            )
            await self._audit.record(
                session,
                actor_id=actor_user_id,
                action="INVENTARIO_SALIDA",
                description=(
                    f"Salida de {decimal_to_str(qty)} unidad(es) del producto {product_id}"
                    + (f" ({ref})" if ref else "")
                ),
                table="inventario",
                ref=ref,
                meta={"movement_id": movement.id, "warehouse_id": wh},
            )

        return {"movement_id": movement.id, "stock": stock_store.snapshot(line)}

    # ---------- 调整 ----------
    async def register_adjustment(
        self,
        session: AsyncSession,
        *,
        product_id: int,
        quantity: Any,
        reason: Optional[str],
        is_increment: bool,
        actor_user_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        qty = positive_quantity(quantity)
        motive = (reason or "").strip()
        if len(motive) < REASON_MIN:
            raise MissingAdjustmentReason(
                f"adjustment reason must have at least {REASON_MIN} characters",
                context={"reason": reason},
            )
        motive = motive[:TEXT_MAX]
        wh = self.warehouse_id
        delta = qty if is_increment else -qty

        async with tx_scope(session):
            await require_product(session, product_id)
            await require_warehouse(session, wh)

            line = await stock_store.apply_delta(
                session, product_id=product_id, warehouse_id=wh, available_delta=delta
            )
            movement = await ledger_writer.append(
                session,
                kind=MovementKind.AJUSTE,
                product_id=product_id,
                stock_line_id=line.id,
                quantity=qty,
                unit_cost=line.average_cost,
                reference=motive,
                notes=motive,
                actor_user_id=actor_user_id,
                is_increment=is_increment,
            )
            await self._audit.record(
                session,
                actor_id=actor_user_id,
                action="INVENTARIO_AJUSTE",
                description=(
                    f"Ajuste {'+' if is_increment else '-'}{decimal_to_str(qty)} "
                    f"del producto {product_id}: {motive}"
                ),
                table="inventario",
                ref=f"ajuste:{movement.id}",
                meta={"movement_id": movement.id, "warehouse_id": wh},
            )

        return {"movement_id": movement.id, "stock": stock_store.snapshot(line)}
