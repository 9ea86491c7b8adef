# inventario/models/__init__.py
"""
统一导出 ORM 模型。
"""

from inventario.models.audit_event import AuditEvent
from inventario.models.enums import MovementKind, ReservationState, TransferState
from inventario.models.movement import MovementEntry
from inventario.models.product import Product
from inventario.models.purchase import Purchase, PurchaseLine
from inventario.models.reservation import Reservation
from inventario.models.stock_line import StockLine
from inventario.models.supplier import Supplier
from inventario.models.transfer import Transfer
from inventario.models.warehouse import Warehouse, WarehouseLocation

__all__ = [
    "AuditEvent",
    "MovementEntry",
    "MovementKind",
    "Product",
    "Purchase",
    "PurchaseLine",
    "Reservation",
    "ReservationState",
    "StockLine",
    "Supplier",
    "Transfer",
    "TransferState",
    "Warehouse",
    "WarehouseLocation",
]
