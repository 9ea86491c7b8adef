# inventario/services/movement_service.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.tx import tx_scope
from inventario.models.enums import MovementKind
from inventario.models.movement import MovementEntry
from inventario.models.stock_line import StockLine
from inventario.ports import AuditSink
from inventario.schemas.inventory import StockAdjustmentIn, StockMovementIn
from inventario.services import ledger_writer, stock_store
from inventario.services.audit_writer import DbAuditSink
from inventario.services.catalog import (
    positive_quantity,
    require_location,
    require_product,
    unit_cost_value,
)
from inventario.services.errors import MissingAdjustmentReason
from inventario.utils.decimals import decimal_to_str

log = logging.getLogger("inventario.movement")

REASON_MIN = 3
TEXT_MAX = 120


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value[:TEXT_MAX] or None


class MovementService:
    """
    任意仓库 / 库位上的手工库存移动：

      inbound  ：available += q，按入库单位成本重算加权平均，写 INGRESO
      outbound ：available -= q，成本不变，写 SALIDA（记当时平均成本）
      adjust   ：按 is_increment 增减 available，必须给出原因，写 AJUSTE

    校验顺序与其它服务一致：入参 → 主数据 → 锁行改库存 → 台账 → 审计。
    """

    def __init__(self, audit: Optional[AuditSink] = None) -> None:
        self._audit = audit or DbAuditSink()

    async def register_inbound(self, session: AsyncSession, dto: StockMovementIn) -> Dict[str, Any]:
        qty = positive_quantity(dto.quantity)
        cost = unit_cost_value(dto.unit_cost)
        ref = _clean(dto.reference)

        async with tx_scope(session):
            await require_product(session, dto.product_id)
            await require_location(session, dto.warehouse_id, dto.location_id)

            line = await stock_store.apply_delta(
                session,
                product_id=dto.product_id,
                warehouse_id=dto.warehouse_id,
                location_id=dto.location_id,
                available_delta=qty,
                new_cost=cost,
            )
            movement = await ledger_writer.append(
                session,
                kind=MovementKind.INGRESO,
                product_id=dto.product_id,
                stock_line_id=line.id,
                quantity=qty,
                unit_cost=cost,
                reference=ref,
                notes=dto.notes,
                actor_user_id=dto.actor_user_id,
            )
            await self._record(
                session,
                dto.actor_user_id,
                "INVENTARIO_INGRESO",
                f"Ingreso de {decimal_to_str(qty)} unidad(es) a {decimal_to_str(cost)}",
                line,
                movement,
            )

        return {"movement_id": movement.id, "stock": stock_store.snapshot(line)}

    async def register_outbound(self, session: AsyncSession, dto: StockMovementIn) -> Dict[str, Any]:
        qty = positive_quantity(dto.quantity)
        ref = _clean(dto.reference)

        async with tx_scope(session):
            await require_product(session, dto.product_id)
            await require_location(session, dto.warehouse_id, dto.location_id)

            line = await stock_store.apply_delta(
                session,
                product_id=dto.product_id,
                warehouse_id=dto.warehouse_id,
                location_id=dto.location_id,
                available_delta=-qty,
            )
            movement = await ledger_writer.append(
                session,
                kind=MovementKind.SALIDA,
                product_id=dto.product_id,
                stock_line_id=line.id,
                quantity=qty,
                unit_cost=line.average_cost,
                reference=ref,
                notes=dto.notes,
                actor_user_id=dto.actor_user_id,
            )
            await self._record(
                session,
                dto.actor_user_id,
                "INVENTARIO_SALIDA",
                f"Salida de {decimal_to_str(qty)} unidad(es)",
                line,
                movement,
            )

        return {"movement_id": movement.id, "stock": stock_store.snapshot(line)}

    async def register_adjustment(self, session: AsyncSession, dto: StockAdjustmentIn) -> Dict[str, Any]:
        qty = positive_quantity(dto.quantity)
        reason = (dto.reason or "").strip()
        if len(reason) < REASON_MIN:
            raise MissingAdjustmentReason(
                f"adjustment reason must have at least {REASON_MIN} characters",
                context={"reason": dto.reason},
            )
        reason = reason[:TEXT_MAX]
        notes = " - ".join(p for p in (_clean(dto.notes), reason) if p)
        delta = qty if dto.is_increment else -qty

        async with tx_scope(session):
            await require_product(session, dto.product_id)
            await require_location(session, dto.warehouse_id, dto.location_id)

            line = await stock_store.apply_delta(
                session,
                product_id=dto.product_id,
                warehouse_id=dto.warehouse_id,
                location_id=dto.location_id,
                available_delta=delta,
            )
            movement = await ledger_writer.append(
                session,
                kind=MovementKind.AJUSTE,
                product_id=dto.product_id,
                stock_line_id=line.id,
                quantity=qty,
                unit_cost=line.average_cost,
                reference=_clean(dto.reference) or reason,
                notes=notes,
                actor_user_id=dto.actor_user_id,
                is_increment=dto.is_increment,
            )
            await self._record(
                session,
                dto.actor_user_id,
                "INVENTARIO_AJUSTE",
                f"Ajuste {'positivo' if dto.is_increment else 'negativo'} de inventario: {reason}",
                line,
                movement,
            )

        return {"movement_id": movement.id, "stock": stock_store.snapshot(line)}

    async def _record(
        self,
        session: AsyncSession,
        actor_user_id: Optional[int],
        action: str,
        description: str,
        line: StockLine,
        movement: MovementEntry,
    ) -> None:
        await self._audit.record(
            session,
            actor_id=actor_user_id,
            action=action,
            description=f"{description} del producto {line.product_id} en almacén {line.warehouse_id}",
            table="inventario",
            ref=movement.reference or f"movimiento:{movement.id}",
            meta={
                "movement_id": movement.id,
                "warehouse_id": line.warehouse_id,
                "location_id": line.location_id,
                "quantity": decimal_to_str(movement.quantity),
            },
        )
        log.info("%s movement %s on stock line %s", action, movement.id, line.id)
