# inventario/services/errors.py
"""
库存核心的业务异常。

所有异常都是“调用方可处理”的预期情况：带稳定的 code（机器可读）和 status
（对应 4xx），上层直接 to_problem() 映射成 Problem 响应。
TransientStorageError 单独一类（503），表示数据库不可用/超时，可重试。
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from inventario.api.problem import make_problem


class InventoryError(Exception):
    code = "INVENTARIO_ERROR"
    status = 400

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status: int | None = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        if code:
            self.code = code
        if status:
            self.status = status
        self.message = message
        self.context = dict(context or {})

    def to_problem(self, trace_id: Optional[str] = None) -> Dict[str, Any]:
        return make_problem(
            status_code=self.status,
            error_code=self.code,
            message=self.message,
            context=self.context or None,
            trace_id=trace_id,
        )


# ---------- 商品 / 库位 ----------


class ProductNotFound(InventoryError):
    code = "PRODUCTO_NO_ENCONTRADO"
    status = 404


class ProductInactive(ProductNotFound):
    code = "PRODUCTO_INACTIVO"
    status = 409


class InvalidProductId(InventoryError):
    code = "PRODUCTO_ID_INVALIDO"
    status = 422


class InvalidLocation(InventoryError):
    code = "UBICACION_INVALIDA"
    status = 400


class InactiveLocation(InvalidLocation):
    code = "UBICACION_INACTIVA"
    status = 409


# ---------- 供应商 / 采购 ----------


class SupplierNotFound(InventoryError):
    code = "PROVEEDOR_NO_ENCONTRADO"
    status = 404


class SupplierInactive(SupplierNotFound):
    code = "PROVEEDOR_INACTIVO"
    status = 409


class DuplicateSupplier(InventoryError):
    code = "PROVEEDOR_DUPLICADO"
    status = 409


class InvalidSupplierData(InventoryError):
    code = "PROVEEDOR_DATOS_INVALIDOS"
    status = 400


class EmptyPurchase(InventoryError):
    code = "LINEAS_VACIAS"
    status = 422


class DuplicateProductInPurchase(InventoryError):
    code = "PRODUCTO_DUPLICADO"
    status = 422


# ---------- 数量 / 成本 / 原因 ----------


class InvalidQuantity(InventoryError):
    code = "CANTIDAD_INVALIDA"
    status = 422


class InvalidCost(InventoryError):
    code = "COSTO_INVALIDO"
    status = 422


class MissingAdjustmentReason(InventoryError):
    code = "MOTIVO_INVALIDO"
    status = 422


# ---------- 库存 ----------


class InsufficientStock(InventoryError):
    code = "STOCK_INSUFICIENTE"
    status = 409


class InvalidCommittedStock(InventoryError):
    code = "STOCK_COMPROMETIDO_INVALIDO"
    status = 409


class ImmutableLedgerEntry(InventoryError):
    code = "MOVIMIENTO_INMUTABLE"
    status = 409


# ---------- 预留 ----------


class ReservationNotFound(InventoryError):
    code = "RESERVA_NO_ENCONTRADA"
    status = 404


class ReservationNotActive(InventoryError):
    code = "RESERVA_NO_PENDIENTE"
    status = 409


# ---------- 调拨 ----------


class TransferNotFound(InventoryError):
    code = "TRANSFERENCIA_NO_ENCONTRADA"
    status = 404


class TransferNotPending(InventoryError):
    code = "TRANSFERENCIA_NO_PENDIENTE"
    status = 409


class InvalidTransferDestination(InventoryError):
    code = "TRANSFERENCIA_DESTINO_INVALIDO"
    status = 422


# ---------- 基础设施 ----------


class TransientStorageError(InventoryError):
    code = "ALMACENAMIENTO_NO_DISPONIBLE"
    status = 503
