# inventario/schemas/inventory.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_serializer

from inventario.utils.decimals import decimal_to_str


# -------------------------------
# 预留
# -------------------------------
class ReserveStockIn(BaseModel):
    product_id: int
    warehouse_id: int
    location_id: Optional[int] = None
    quantity: Decimal
    linked_transaction_id: Optional[int] = None
    linked_detail_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None
    actor_user_id: Optional[int] = None


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    warehouse_id: int
    location_id: Optional[int] = None
    quantity: Decimal
    state: str
    linked_transaction_id: Optional[int] = None
    linked_detail_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None
    movement_id: Optional[int] = None

    @field_serializer("quantity")
    def _ser_qty(self, v: Decimal) -> str:
        return decimal_to_str(v)


# -------------------------------
# 调拨
# -------------------------------
class CreateTransferIn(BaseModel):
    product_id: int
    origin_warehouse_id: int
    origin_location_id: Optional[int] = None
    destination_warehouse_id: int
    destination_location_id: Optional[int] = None
    quantity: Decimal
    reference: Optional[str] = None
    notes: Optional[str] = None
    actor_user_id: Optional[int] = None


class ConfirmTransferIn(BaseModel):
    actor_user_id: Optional[int] = None
    notes: Optional[str] = None


class CancelTransferIn(BaseModel):
    actor_user_id: Optional[int] = None
    reason: Optional[str] = None


class TransferOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    origin_warehouse_id: int
    origin_location_id: Optional[int] = None
    destination_warehouse_id: int
    destination_location_id: Optional[int] = None
    quantity: Decimal
    state: str
    dispatch_movement_id: Optional[int] = None
    receipt_movement_id: Optional[int] = None
    reference: Optional[str] = None

    @field_serializer("quantity")
    def _ser_qty(self, v: Decimal) -> str:
        return decimal_to_str(v)


# -------------------------------
# 仓库 / 库位级手工移动
# -------------------------------
class StockMovementIn(BaseModel):
    product_id: int
    warehouse_id: int
    location_id: Optional[int] = None
    quantity: Decimal
    unit_cost: Optional[Decimal] = None  # 仅入库使用，必填
    reference: Optional[str] = None
    notes: Optional[str] = None
    actor_user_id: Optional[int] = None


class StockAdjustmentIn(BaseModel):
    product_id: int
    warehouse_id: int
    location_id: Optional[int] = None
    quantity: Decimal
    is_increment: bool
    reason: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    actor_user_id: Optional[int] = None


class MinimumStockIn(BaseModel):
    product_id: int
    warehouse_id: int
    location_id: Optional[int] = None
    minimum_stock: Decimal
    actor_user_id: Optional[int] = None


# -------------------------------
# 台账
# -------------------------------
class MovementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    product_id: int
    stock_line_id: int
    quantity: Decimal
    is_increment: bool
    unit_cost: Optional[Decimal] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    actor_user_id: Optional[int] = None
    created_at: datetime

    @field_serializer("quantity")
    def _ser_qty(self, v: Decimal) -> str:
        return decimal_to_str(v)

    @field_serializer("unit_cost")
    def _ser_cost(self, v: Optional[Decimal]) -> Optional[str]:
        return None if v is None else decimal_to_str(v)


# -------------------------------
# 基础模块：采购 / 供应商
# -------------------------------
class PurchaseLineIn(BaseModel):
    product_id: int
    quantity: Decimal
    unit_price: Decimal


class RegisterPurchaseIn(BaseModel):
    supplier_id: int
    lines: List[PurchaseLineIn]
    purchased_at: Optional[datetime] = None
    actor_user_id: Optional[int] = None


class RegisterSupplierIn(BaseModel):
    name: str
    tax_id: str
    trade_name: Optional[str] = None
    contact: Optional[str] = None
    contact_phone: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    actor_user_id: Optional[int] = None
