# inventario/services/catalog.py
"""
主数据校验：商品 / 仓库 / 库位 / 供应商 / 数量。

所有 require_* 都在业务事务里、任何写入之前调用，失败直接抛业务异常。
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inventario.models.product import Product
from inventario.models.supplier import Supplier
from inventario.models.warehouse import Warehouse, WarehouseLocation
from inventario.services.errors import (
    InactiveLocation,
    InvalidCost,
    InvalidLocation,
    InvalidQuantity,
    ProductInactive,
    ProductNotFound,
    SupplierInactive,
    SupplierNotFound,
)
from inventario.utils.decimals import COST_PLACES, QTY_PLACES, decimal_places, to_decimal


def positive_quantity(value: Any, *, field: str = "quantity") -> Decimal:
    try:
        qty = to_decimal(value, field=field)
    except ValueError as e:
        raise InvalidQuantity(str(e), context={field: str(value)}) from e
    if qty <= 0:
        raise InvalidQuantity(f"{field} must be greater than 0", context={field: str(value)})
    if decimal_places(qty) > QTY_PLACES:
        raise InvalidQuantity(
            f"{field} allows at most {QTY_PLACES} decimal places",
            context={field: str(value)},
        )
    return qty


def unit_cost_value(value: Any, *, field: str = "unit_cost") -> Decimal:
    """单位成本：>= 0，最多 6 位小数。"""
    try:
        cost = to_decimal(value, field=field)
    except ValueError as e:
        raise InvalidCost(str(e), context={field: str(value)}) from e
    if cost < 0:
        raise InvalidCost(f"{field} must be >= 0", context={field: str(value)})
    if decimal_places(cost) > COST_PLACES:
        raise InvalidCost(
            f"{field} allows at most {COST_PLACES} decimal places",
            context={field: str(value)},
        )
    return cost


async def require_product(session: AsyncSession, product_id: int) -> Product:
    product = await session.get(Product, product_id)
    if product is None:
        raise ProductNotFound("product not found", context={"product_id": product_id})
    if not product.active:
        raise ProductInactive("product is inactive", context={"product_id": product_id})
    return product


async def require_warehouse(session: AsyncSession, warehouse_id: int) -> Warehouse:
    wh = await session.get(Warehouse, warehouse_id)
    if wh is None:
        raise InvalidLocation(
            "warehouse not found",
            code="ALMACEN_NO_ENCONTRADO",
            status=404,
            context={"warehouse_id": warehouse_id},
        )
    if not wh.active:
        raise InactiveLocation(
            "warehouse is inactive",
            code="ALMACEN_INACTIVO",
            context={"warehouse_id": warehouse_id},
        )
    return wh


async def require_location(
    session: AsyncSession,
    warehouse_id: int,
    location_id: Optional[int],
) -> Optional[WarehouseLocation]:
    """库位可选；给了就必须属于该仓且启用。"""
    await require_warehouse(session, warehouse_id)
    if not location_id:
        return None
    loc = await session.get(WarehouseLocation, location_id)
    if loc is None or loc.warehouse_id != warehouse_id:
        raise InvalidLocation(
            "location does not belong to warehouse",
            context={"warehouse_id": warehouse_id, "location_id": location_id},
        )
    if not loc.active:
        raise InactiveLocation(
            "location is inactive",
            context={"warehouse_id": warehouse_id, "location_id": location_id},
        )
    return loc


async def require_supplier(session: AsyncSession, supplier_id: int) -> Supplier:
    supplier = await session.get(Supplier, supplier_id)
    if supplier is None:
        raise SupplierNotFound("supplier not found", context={"supplier_id": supplier_id})
    if not supplier.active:
        raise SupplierInactive("supplier is inactive", context={"supplier_id": supplier_id})
    return supplier
