# inventario/services/reservation_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.tx import tx_scope
from inventario.models.enums import MovementKind, ReservationState
from inventario.models.reservation import Reservation
from inventario.obs.metrics import reservation_transitions_total
from inventario.ports import AuditSink
from inventario.schemas.inventory import ReserveStockIn
from inventario.services import ledger_writer, stock_store
from inventario.services.audit_writer import DbAuditSink
from inventario.services.catalog import positive_quantity, require_location, require_product
from inventario.services.errors import ReservationNotActive, ReservationNotFound
from inventario.utils.decimals import decimal_to_str

log = logging.getLogger("inventario.reservation")

_AUDIT_ACTION = {
    ReservationState.CONFIRMED: "RESERVA_CONFIRMADA",
    ReservationState.RELEASED: "RESERVA_LIBERADA",
    ReservationState.CANCELLED: "RESERVA_CANCELADA",
    ReservationState.EXPIRED: "RESERVA_EXPIRADA",
}


class ReservationService:
    """
    预留状态机：

        ACTIVE ──confirm──▶ CONFIRMED   committed -= q，写 SALIDA
               ──release──▶ RELEASED    available += q，committed -= q，不写台账
               ──cancel───▶ CANCELLED   同 release
               ──expire───▶ EXPIRED     同 release，系统触发（TTL 回收）

    每次迁移都在事务内 FOR UPDATE 重读预留行，非 ACTIVE 一律 ReservationNotActive，
    重复调用不会二次改库存。
    """

    def __init__(self, audit: Optional[AuditSink] = None) -> None:
        self._audit = audit or DbAuditSink()

    # ------------------------------------------------------------------
    # 读取
    # ------------------------------------------------------------------
    async def get(self, session: AsyncSession, reservation_id: int) -> Reservation:
        res = await session.get(Reservation, reservation_id, populate_existing=True)
        if res is None:
            raise ReservationNotFound(
                "reservation not found", context={"reservation_id": reservation_id}
            )
        return res

    async def _lock(self, session: AsyncSession, reservation_id: int) -> Reservation:
        stmt = (
            select(Reservation)
            .where(Reservation.id == reservation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        res = (await session.execute(stmt)).scalar_one_or_none()
        if res is None:
            raise ReservationNotFound(
                "reservation not found", context={"reservation_id": reservation_id}
            )
        return res

    @staticmethod
    def _require_active(res: Reservation, action: str) -> None:
        if res.state != ReservationState.ACTIVE.value:
            raise ReservationNotActive(
                f"cannot {action} reservation in state {res.state}",
                context={"reservation_id": res.id, "state": res.state},
            )

    # ------------------------------------------------------------------
    # 建单
    # ------------------------------------------------------------------
    async def reserve(self, session: AsyncSession, dto: ReserveStockIn) -> Reservation:
        qty = positive_quantity(dto.quantity)

        async with tx_scope(session):
            await require_product(session, dto.product_id)
            await require_location(session, dto.warehouse_id, dto.location_id)

            # available → committed（不是实物移动，不写台账）
            line = await stock_store.apply_delta(
                session,
                product_id=dto.product_id,
                warehouse_id=dto.warehouse_id,
                location_id=dto.location_id,
                available_delta=-qty,
                committed_delta=qty,
            )

            res = Reservation(
                product_id=dto.product_id,
                warehouse_id=dto.warehouse_id,
                location_id=dto.location_id or None,
                stock_line_id=line.id,
                quantity=qty,
                state=ReservationState.ACTIVE.value,
                linked_transaction_id=dto.linked_transaction_id,
                linked_detail_id=dto.linked_detail_id,
                expires_at=dto.expires_at,
                reason=dto.reason,
                created_by=dto.actor_user_id,
            )
            session.add(res)
            await session.flush()

            await self._audit.record(
                session,
                actor_id=dto.actor_user_id,
                action="RESERVA_CREADA",
                description=(
                    f"Reserva {res.id}: {decimal_to_str(qty)} unidad(es) del producto "
                    f"{dto.product_id} en almacén {dto.warehouse_id}"
                ),
                table="reservations",
                ref=f"reserva:{res.id}",
                meta={
                    "product_id": dto.product_id,
                    "warehouse_id": dto.warehouse_id,
                    "location_id": dto.location_id,
                    "quantity": decimal_to_str(qty),
                    "linked_transaction_id": dto.linked_transaction_id,
                },
            )

        reservation_transitions_total.labels(ReservationState.ACTIVE.value).inc()
        return res

    # ------------------------------------------------------------------
    # 确认：承诺 → 实际出库
    # ------------------------------------------------------------------
    async def confirm(
        self,
        session: AsyncSession,
        reservation_id: int,
        *,
        actor_user_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Reservation:
        async with tx_scope(session):
            res = await self._lock(session, reservation_id)
            self._require_active(res, "confirm")

            line = await stock_store.apply_delta(
                session,
                product_id=res.product_id,
                warehouse_id=res.warehouse_id,
                location_id=res.location_id,
                committed_delta=-res.quantity,
            )
            movement = await ledger_writer.append(
                session,
                kind=MovementKind.SALIDA,
                product_id=res.product_id,
                stock_line_id=line.id,
                quantity=res.quantity,
                unit_cost=line.average_cost,
                reference=f"reserva:{res.id}",
                notes=reason,
                actor_user_id=actor_user_id,
            )

            res.state = ReservationState.CONFIRMED.value
            res.movement_id = movement.id
            if reason:
                res.reason = reason
            await session.flush()

            await self._record_transition(session, res, ReservationState.CONFIRMED, actor_user_id)

        reservation_transitions_total.labels(ReservationState.CONFIRMED.value).inc()
        return res

    # ------------------------------------------------------------------
    # 释放 / 取消 / 过期：恢复 available
    # ------------------------------------------------------------------
    async def release(
        self,
        session: AsyncSession,
        reservation_id: int,
        *,
        reason: Optional[str] = None,
        actor_user_id: Optional[int] = None,
    ) -> Reservation:
        return await self._restore(
            session,
            reservation_id,
            target=ReservationState.RELEASED,
            reason=reason,
            actor_user_id=actor_user_id,
        )

    async def cancel(
        self,
        session: AsyncSession,
        reservation_id: int,
        *,
        reason: Optional[str] = None,
        actor_user_id: Optional[int] = None,
    ) -> Reservation:
        return await self._restore(
            session,
            reservation_id,
            target=ReservationState.CANCELLED,
            reason=reason,
            actor_user_id=actor_user_id,
        )

    async def expire(
        self,
        session: AsyncSession,
        reservation_id: int,
        *,
        reason: str,
        triggered_by: Optional[int] = None,
    ) -> Reservation:
        """仅由 TTL 回收任务调用。"""
        return await self._restore(
            session,
            reservation_id,
            target=ReservationState.EXPIRED,
            reason=reason,
            actor_user_id=triggered_by,
            triggered_by=triggered_by,
        )

    async def _restore(
        self,
        session: AsyncSession,
        reservation_id: int,
        *,
        target: ReservationState,
        reason: Optional[str],
        actor_user_id: Optional[int],
        triggered_by: Optional[int] = None,
    ) -> Reservation:
        async with tx_scope(session):
            res = await self._lock(session, reservation_id)
            self._require_active(res, target.value.lower())

            qty: Decimal = res.quantity
            await stock_store.apply_delta(
                session,
                product_id=res.product_id,
                warehouse_id=res.warehouse_id,
                location_id=res.location_id,
                available_delta=qty,
                committed_delta=-qty,
            )

            res.state = target.value
            if reason:
                res.reason = reason
            if triggered_by is not None or target is ReservationState.EXPIRED:
                res.triggered_by = triggered_by
            await session.flush()

            await self._record_transition(session, res, target, actor_user_id)

        reservation_transitions_total.labels(target.value).inc()
        return res

    async def _record_transition(
        self,
        session: AsyncSession,
        res: Reservation,
        target: ReservationState,
        actor_user_id: Optional[int],
    ) -> None:
        await self._audit.record(
            session,
            actor_id=actor_user_id,
            action=_AUDIT_ACTION[target],
            description=f"Reserva {res.id} -> {target.value}" + (f": {res.reason}" if res.reason else ""),
            table="reservations",
            ref=f"reserva:{res.id}",
            meta={
                "product_id": res.product_id,
                "warehouse_id": res.warehouse_id,
                "quantity": decimal_to_str(res.quantity),
                "state": target.value,
                "movement_id": res.movement_id,
            },
        )

    # ------------------------------------------------------------------
    # TTL 候选
    # ------------------------------------------------------------------
    async def find_expired(
        self,
        session: AsyncSession,
        *,
        now: datetime,
        ttl_hours: Optional[int] = None,
        limit: int = 100,
    ) -> List[int]:
        """
        返回需要过期回收的 ACTIVE 预留 id（只读，不加锁）：

          - expires_at < now
          - 或者没有 expires_at，且 created_at 早于 now - ttl_hours
        """
        conds = [and_(Reservation.expires_at.is_not(None), Reservation.expires_at < now)]
        if ttl_hours and ttl_hours > 0:
            cutoff = now - timedelta(hours=ttl_hours)
            conds.append(and_(Reservation.expires_at.is_(None), Reservation.created_at < cutoff))

        stmt = (
            select(Reservation.id)
            .where(Reservation.state == ReservationState.ACTIVE.value, or_(*conds))
            .order_by(func.coalesce(Reservation.expires_at, Reservation.created_at), Reservation.id)
            .limit(limit)
        )
        return [int(r) for r in (await session.execute(stmt)).scalars().all()]
