# inventario/models/enums.py
from __future__ import annotations

from enum import StrEnum


class MovementKind(StrEnum):
    """
    台账流水类型（数量一律无符号，方向由类型决定）：

    - INGRESO           入库（采购），带单位成本
    - SALIDA            出库（预留确认 / 手工出库）
    - AJUSTE            调整，方向看 is_increment
    - TRANSFER_DISPATCH 调拨发出（源仓扣减）
    - TRANSFER_RECEIPT  调拨接收（目的仓增加），带单位成本
    """

    INGRESO = "INGRESO"
    SALIDA = "SALIDA"
    AJUSTE = "AJUSTE"
    TRANSFER_DISPATCH = "TRANSFER_DISPATCH"
    TRANSFER_RECEIPT = "TRANSFER_RECEIPT"


class ReservationState(StrEnum):
    ACTIVE = "ACTIVE"
    CONFIRMED = "CONFIRMED"
    RELEASED = "RELEASED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class TransferState(StrEnum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class PurchaseStatus(StrEnum):
    RECEIVED = "RECEIVED"


__all__ = ["MovementKind", "ReservationState", "TransferState", "PurchaseStatus"]
