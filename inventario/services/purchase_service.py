# inventario/services/purchase_service.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.config import get_settings
from inventario.core.tx import tx_scope
from inventario.models._types import utcnow
from inventario.models.enums import MovementKind
from inventario.models.purchase import Purchase, PurchaseLine
from inventario.ports import AuditSink
from inventario.schemas.inventory import RegisterPurchaseIn
from inventario.services import ledger_writer, stock_store
from inventario.services.audit_writer import DbAuditSink
from inventario.services.catalog import (
    positive_quantity,
    require_product,
    require_supplier,
    require_warehouse,
    unit_cost_value,
)
from inventario.services.errors import DuplicateProductInPurchase, EmptyPurchase
from inventario.utils.decimals import ZERO, decimal_to_str, quantize_money

log = logging.getLogger("inventario.purchase")


class PurchaseService:
    """
    基础模块 · 采购入库

    一张采购单 → 每行一条 INGRESO + 库存行加权平均重算，整单一条审计。
    所有入参校验（空单 / 数量 / 单价 / 重复商品）都在开事务之前完成。
    """

    def __init__(self, audit: Optional[AuditSink] = None, warehouse_id: Optional[int] = None) -> None:
        self._audit = audit or DbAuditSink()
        self._warehouse_id = warehouse_id

    @property
    def warehouse_id(self) -> int:
        return self._warehouse_id or get_settings().BASIC_WAREHOUSE_ID

    @staticmethod
    def _validate_lines(dto: RegisterPurchaseIn) -> List[Tuple[int, Decimal, Decimal]]:
        if not dto.lines:
            raise EmptyPurchase("purchase must contain at least one line")

        seen: set[int] = set()
        out: List[Tuple[int, Decimal, Decimal]] = []
        for idx, line in enumerate(dto.lines):
            qty = positive_quantity(line.quantity, field=f"lines[{idx}].quantity")
            price = unit_cost_value(line.unit_price, field=f"lines[{idx}].unit_price")
            if line.product_id in seen:
                raise DuplicateProductInPurchase(
                    "product appears more than once in the purchase",
                    context={"product_id": line.product_id},
                )
            seen.add(line.product_id)
            out.append((line.product_id, qty, price))
        return out

    async def register_purchase(self, session: AsyncSession, dto: RegisterPurchaseIn) -> Dict[str, Any]:
        lines = self._validate_lines(dto)
        total = quantize_money(sum((qty * price for _, qty, price in lines), ZERO))
        wh = self.warehouse_id

        async with tx_scope(session):
            supplier = await require_supplier(session, dto.supplier_id)
            await require_warehouse(session, wh)
            for product_id, _, _ in lines:
                await require_product(session, product_id)

            purchase = Purchase(
                supplier_id=supplier.id,
                purchased_at=dto.purchased_at or utcnow(),
                total=total,
                created_by=dto.actor_user_id,
            )
            session.add(purchase)
            await session.flush()

            ref = f"compra:{purchase.id}"
            for product_id, qty, price in lines:
                line = await stock_store.apply_delta(
                    session,
                    product_id=product_id,
                    warehouse_id=wh,
                    available_delta=qty,
                    new_cost=price,
                )
                movement = await ledger_writer.append(
                    session,
                    kind=MovementKind.INGRESO,
                    product_id=product_id,
                    stock_line_id=line.id,
                    quantity=qty,
                    unit_cost=price,
                    reference=ref,
                    actor_user_id=dto.actor_user_id,
                )
                session.add(
                    PurchaseLine(
                        purchase_id=purchase.id,
                        product_id=product_id,
                        quantity=qty,
                        unit_price=price,
                        subtotal=quantize_money(qty * price),
                        movement_id=movement.id,
                    )
                )
            await session.flush()

            await self._audit.record(
                session,
                actor_id=dto.actor_user_id,
                action="INVENTARIO_COMPRA",
                description=(
                    f"Compra {purchase.id} al proveedor {supplier.name} "
                    f"({len(lines)} línea(s), total {decimal_to_str(total)})"
                ),
                table="inventario",
                ref=ref,
                meta={"supplier_id": supplier.id, "warehouse_id": wh},
            )

        log.info("purchase %s registered: %d line(s) total=%s", purchase.id, len(lines), total)
        return {
            "purchase_id": purchase.id,
            "total": decimal_to_str(total),
            "line_count": len(lines),
        }
