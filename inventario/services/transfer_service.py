# inventario/services/transfer_service.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.tx import tx_scope
from inventario.models.enums import MovementKind, TransferState
from inventario.models.movement import MovementEntry
from inventario.models.transfer import Transfer
from inventario.obs.metrics import transfer_transitions_total
from inventario.ports import AuditSink
from inventario.schemas.inventory import CancelTransferIn, ConfirmTransferIn, CreateTransferIn
from inventario.services import ledger_writer, stock_store
from inventario.services.audit_writer import DbAuditSink
from inventario.services.catalog import positive_quantity, require_location, require_product
from inventario.services.errors import (
    InvalidTransferDestination,
    TransferNotFound,
    TransferNotPending,
)
from inventario.utils.decimals import ZERO, decimal_to_str

log = logging.getLogger("inventario.transfer")


def _ref(transfer_id: int) -> str:
    return f"transferencia:{transfer_id}"


class TransferService:
    """
    仓间调拨，两阶段：

      create  ：只锁源仓行，available -= q，写 TRANSFER_DISPATCH（记源仓平均成本）
      confirm ：只锁目的仓行，available += q，按发出成本做加权平均，写 TRANSFER_RECEIPT
      cancel  ：只锁源仓行，available += q，写一条 AJUSTE 增量作为补偿

    任何时刻都不同时持有两边的行锁；PENDING 期间货在途，目的仓不可见。
    """

    def __init__(self, audit: Optional[AuditSink] = None) -> None:
        self._audit = audit or DbAuditSink()

    async def get(self, session: AsyncSession, transfer_id: int) -> Transfer:
        t = await session.get(Transfer, transfer_id, populate_existing=True)
        if t is None:
            raise TransferNotFound("transfer not found", context={"transfer_id": transfer_id})
        return t

    async def _lock(self, session: AsyncSession, transfer_id: int) -> Transfer:
        stmt = (
            select(Transfer)
            .where(Transfer.id == transfer_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        t = (await session.execute(stmt)).scalar_one_or_none()
        if t is None:
            raise TransferNotFound("transfer not found", context={"transfer_id": transfer_id})
        return t

    @staticmethod
    def _require_pending(t: Transfer, action: str) -> None:
        if t.state != TransferState.PENDING.value:
            raise TransferNotPending(
                f"cannot {action} transfer in state {t.state}",
                context={"transfer_id": t.id, "state": t.state},
            )

    async def _dispatch_cost(self, session: AsyncSession, t: Transfer) -> Decimal:
        dispatch = await session.get(MovementEntry, t.dispatch_movement_id)
        if dispatch is None or dispatch.unit_cost is None:
            return ZERO
        return dispatch.unit_cost

    # ------------------------------------------------------------------
    # 1. 发出
    # ------------------------------------------------------------------
    async def create(self, session: AsyncSession, dto: CreateTransferIn) -> Transfer:
        qty = positive_quantity(dto.quantity)
        # 按 (仓, 库位) 比较，同仓不同库位可以调拨
        origin_key = (dto.origin_warehouse_id, dto.origin_location_id or None)
        destination_key = (dto.destination_warehouse_id, dto.destination_location_id or None)
        if origin_key == destination_key:
            raise InvalidTransferDestination(
                "destination must differ from origin",
                context={
                    "warehouse_id": dto.origin_warehouse_id,
                    "location_id": dto.origin_location_id,
                },
            )

        async with tx_scope(session):
            await require_product(session, dto.product_id)
            await require_location(session, dto.origin_warehouse_id, dto.origin_location_id)
            await require_location(
                session, dto.destination_warehouse_id, dto.destination_location_id
            )

            origin = await stock_store.apply_delta(
                session,
                product_id=dto.product_id,
                warehouse_id=dto.origin_warehouse_id,
                location_id=dto.origin_location_id,
                available_delta=-qty,
            )

            t = Transfer(
                product_id=dto.product_id,
                origin_warehouse_id=dto.origin_warehouse_id,
                origin_location_id=dto.origin_location_id or None,
                destination_warehouse_id=dto.destination_warehouse_id,
                destination_location_id=dto.destination_location_id or None,
                quantity=qty,
                state=TransferState.PENDING.value,
                reference=dto.reference,
                notes=dto.notes,
                created_by=dto.actor_user_id,
            )
            session.add(t)
            await session.flush()

            dispatch = await ledger_writer.append(
                session,
                kind=MovementKind.TRANSFER_DISPATCH,
                product_id=dto.product_id,
                stock_line_id=origin.id,
                quantity=qty,
                unit_cost=origin.average_cost,
                reference=_ref(t.id),
                notes=dto.notes or dto.reference,
                actor_user_id=dto.actor_user_id,
            )
            t.dispatch_movement_id = dispatch.id
            await session.flush()

            await self._audit.record(
                session,
                actor_id=dto.actor_user_id,
                action="TRANSFERENCIA_CREADA",
                description=(
                    f"Transferencia {t.id}: {decimal_to_str(qty)} unidad(es) del producto "
                    f"{dto.product_id} de almacén {dto.origin_warehouse_id} "
                    f"a {dto.destination_warehouse_id}"
                ),
                table="transfers",
                ref=_ref(t.id),
                meta={"movement_id": dispatch.id, "quantity": decimal_to_str(qty)},
            )

        transfer_transitions_total.labels(TransferState.PENDING.value).inc()
        return t

    # ------------------------------------------------------------------
    # 2. 接收
    # ------------------------------------------------------------------
    async def confirm(
        self,
        session: AsyncSession,
        transfer_id: int,
        dto: Optional[ConfirmTransferIn] = None,
    ) -> Transfer:
        dto = dto or ConfirmTransferIn()

        async with tx_scope(session):
            t = await self._lock(session, transfer_id)
            self._require_pending(t, "confirm")

            cost = await self._dispatch_cost(session, t)
            destination = await stock_store.apply_delta(
                session,
                product_id=t.product_id,
                warehouse_id=t.destination_warehouse_id,
                location_id=t.destination_location_id,
                available_delta=t.quantity,
                new_cost=cost,
            )
            receipt = await ledger_writer.append(
                session,
                kind=MovementKind.TRANSFER_RECEIPT,
                product_id=t.product_id,
                stock_line_id=destination.id,
                quantity=t.quantity,
                unit_cost=cost,
                reference=_ref(t.id),
                notes=dto.notes,
                actor_user_id=dto.actor_user_id,
            )

            t.state = TransferState.CONFIRMED.value
            t.receipt_movement_id = receipt.id
            t.closed_by = dto.actor_user_id
            await session.flush()

            await self._audit.record(
                session,
                actor_id=dto.actor_user_id,
                action="TRANSFERENCIA_CONFIRMADA",
                description=f"Transferencia {t.id} recibida en almacén {t.destination_warehouse_id}",
                table="transfers",
                ref=_ref(t.id),
                meta={"movement_id": receipt.id, "unit_cost": decimal_to_str(cost)},
            )

        transfer_transitions_total.labels(TransferState.CONFIRMED.value).inc()
        return t

    # ------------------------------------------------------------------
    # 3. 取消
    # ------------------------------------------------------------------
    async def cancel(
        self,
        session: AsyncSession,
        transfer_id: int,
        dto: Optional[CancelTransferIn] = None,
    ) -> Transfer:
        dto = dto or CancelTransferIn()

        async with tx_scope(session):
            t = await self._lock(session, transfer_id)
            self._require_pending(t, "cancel")

            cost = await self._dispatch_cost(session, t)
            origin = await stock_store.apply_delta(
                session,
                product_id=t.product_id,
                warehouse_id=t.origin_warehouse_id,
                location_id=t.origin_location_id,
                available_delta=t.quantity,
                new_cost=cost,
            )
            await ledger_writer.append(
                session,
                kind=MovementKind.AJUSTE,
                product_id=t.product_id,
                stock_line_id=origin.id,
                quantity=t.quantity,
                unit_cost=cost,
                reference=_ref(t.id),
                notes=dto.reason or "Transferencia cancelada",
                actor_user_id=dto.actor_user_id,
                is_increment=True,
            )

            t.state = TransferState.CANCELLED.value
            t.closed_by = dto.actor_user_id
            await session.flush()

            await self._audit.record(
                session,
                actor_id=dto.actor_user_id,
                action="TRANSFERENCIA_CANCELADA",
                description=f"Transferencia {t.id} cancelada" + (f": {dto.reason}" if dto.reason else ""),
                table="transfers",
                ref=_ref(t.id),
                meta={"quantity": decimal_to_str(t.quantity)},
            )

        transfer_transitions_total.labels(TransferState.CANCELLED.value).inc()
        return t
