# inventario/services/inventory_facade.py
from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inventario.db.session import get_session_maker
from inventario.ports import AuditSink, NotificationSink
from inventario.schemas.inventory import (
    CancelTransferIn,
    ConfirmTransferIn,
    CreateTransferIn,
    MinimumStockIn,
    RegisterPurchaseIn,
    RegisterSupplierIn,
    ReservationOut,
    ReserveStockIn,
    StockAdjustmentIn,
    StockMovementIn,
    TransferOut,
)
from inventario.services.audit_writer import DbAuditSink
from inventario.services.basic_movement_service import BasicMovementService
from inventario.services.low_stock_service import sweep_low_stock
from inventario.services.movement_service import MovementService
from inventario.services.purchase_service import PurchaseService
from inventario.services.report_service import InventoryReportService
from inventario.services.reservation_service import ReservationService
from inventario.services.reservation_ttl import SweepResult, sweep_expired_reservations
from inventario.services.stock_query_service import StockQueryService
from inventario.services.stock_threshold_service import StockThresholdService
from inventario.services.supplier_service import SupplierService
from inventario.services.transfer_service import TransferService


class InventoryFacade:
    """
    库存核心对外入口（订单 / 采购 / 调度器调用）。

    持有注入的 async_sessionmaker（缺省用进程内的懒加载引擎），每次调用开一个会话、一个事务；
    返回值是边界模型 / 字典，十进制一律字符串。
    """

    def __init__(
        self,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        *,
        audit: Optional[AuditSink] = None,
        notifier: Optional[NotificationSink] = None,
        basic_warehouse_id: Optional[int] = None,
    ) -> None:
        self._maker = session_maker or get_session_maker()
        self._notifier = notifier
        audit = audit or DbAuditSink()
        self.reservations = ReservationService(audit)
        self.transfers = TransferService(audit)
        self.purchases = PurchaseService(audit, warehouse_id=basic_warehouse_id)
        self.movements = BasicMovementService(audit, warehouse_id=basic_warehouse_id)
        self.stock_movements = MovementService(audit)
        self.thresholds = StockThresholdService(audit)
        self.suppliers = SupplierService(audit)
        self.stock = StockQueryService()
        self.reports = InventoryReportService()
        self._basic_warehouse_id = basic_warehouse_id

    # ---------- 预留 ----------
    async def get_reservation(self, reservation_id: int) -> ReservationOut:
        async with self._maker() as session:
            return ReservationOut.model_validate(await self.reservations.get(session, reservation_id))

    async def reserve_stock(self, dto: ReserveStockIn) -> ReservationOut:
        async with self._maker() as session:
            res = await self.reservations.reserve(session, dto)
            return ReservationOut.model_validate(res)

    async def confirm_reservation(self, reservation_id: int, *, actor_user_id: Optional[int] = None) -> ReservationOut:
        async with self._maker() as session:
            res = await self.reservations.confirm(session, reservation_id, actor_user_id=actor_user_id)
            return ReservationOut.model_validate(res)

    async def release_reservation(
        self, reservation_id: int, reason: Optional[str] = None, *, actor_user_id: Optional[int] = None
    ) -> ReservationOut:
        async with self._maker() as session:
            res = await self.reservations.release(
                session, reservation_id, reason=reason, actor_user_id=actor_user_id
            )
            return ReservationOut.model_validate(res)

    async def cancel_reservation(
        self, reservation_id: int, reason: Optional[str] = None, *, actor_user_id: Optional[int] = None
    ) -> ReservationOut:
        async with self._maker() as session:
            res = await self.reservations.cancel(
                session, reservation_id, reason=reason, actor_user_id=actor_user_id
            )
            return ReservationOut.model_validate(res)

    # ---------- 调拨 ----------
    async def get_transfer(self, transfer_id: int) -> TransferOut:
        async with self._maker() as session:
            return TransferOut.model_validate(await self.transfers.get(session, transfer_id))

    async def create_transfer(self, dto: CreateTransferIn) -> TransferOut:
        async with self._maker() as session:
            return TransferOut.model_validate(await self.transfers.create(session, dto))

    async def confirm_transfer(self, transfer_id: int, dto: Optional[ConfirmTransferIn] = None) -> TransferOut:
        async with self._maker() as session:
            return TransferOut.model_validate(await self.transfers.confirm(session, transfer_id, dto))

    async def cancel_transfer(self, transfer_id: int, dto: Optional[CancelTransferIn] = None) -> TransferOut:
        async with self._maker() as session:
            return TransferOut.model_validate(await self.transfers.cancel(session, transfer_id, dto))

    # ---------- 基础模块 ----------
    async def register_purchase(self, dto: RegisterPurchaseIn) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.purchases.register_purchase(session, dto)

    async def register_outflow(
        self,
        product_id: int,
        quantity: Any,
        reference: Optional[str] = None,
        *,
        actor_user_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.movements.register_outflow(
                session,
                product_id=product_id,
                quantity=quantity,
                reference=reference,
                actor_user_id=actor_user_id,
            )

    async def register_adjustment(
        self,
        product_id: int,
        quantity: Any,
        reason: Optional[str],
        is_increment: bool,
        *,
        actor_user_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.movements.register_adjustment(
                session,
                product_id=product_id,
                quantity=quantity,
                reason=reason,
                is_increment=is_increment,
                actor_user_id=actor_user_id,
            )

    # ---------- 仓库 / 库位级移动 ----------
    async def register_inbound(self, dto: StockMovementIn) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.stock_movements.register_inbound(session, dto)

    async def register_outbound(self, dto: StockMovementIn) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.stock_movements.register_outbound(session, dto)

    async def adjust_stock(self, dto: StockAdjustmentIn) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.stock_movements.register_adjustment(session, dto)

    async def set_minimum_stock(self, dto: MinimumStockIn) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.thresholds.set_minimum_stock(session, dto)

    async def register_supplier(self, dto: RegisterSupplierIn) -> Dict[str, Any]:
        async with self._maker() as session:
            supplier = await self.suppliers.register_supplier(session, dto)
            return {"supplier_id": supplier.id, "name": supplier.name, "tax_id": supplier.tax_id}

    async def get_stock(self, product_id: Any, *, warehouse_id: Optional[int] = None) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.stock.get_stock(
                session, product_id, warehouse_id=warehouse_id or self._basic_warehouse_id
            )

    async def inventory_summary(self) -> Dict[str, Any]:
        async with self._maker() as session:
            return await self.reports.summary(session)

    # ---------- 巡检 ----------
    async def sweep_expired_reservations(
        self,
        batch_limit: Optional[int] = None,
        ttl_hours: Optional[int] = None,
        dry_run: bool = False,
    ) -> SweepResult:
        async with self._maker() as session:
            return await sweep_expired_reservations(
                session,
                batch_limit=batch_limit,
                ttl_hours=ttl_hours,
                dry_run=dry_run,
                service=self.reservations,
            )

    async def sweep_low_stock(self, *, force: Optional[bool] = None) -> Dict[str, Any]:
        async with self._maker() as session:
            return await sweep_low_stock(session, self._notifier, force=force)
