# inventario/models/warehouse.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventario.db.base import Base


class Warehouse(Base):
    __tablename__ = "warehouses"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Warehouse id={self.id} name={self.name!r}>"


class WarehouseLocation(Base):
    """仓内库位；库存行可以细化到库位，也可以只到仓。"""

    __tablename__ = "warehouse_locations"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    warehouse_id: Mapped[int] = mapped_column(
        sa.Integer,
        sa.ForeignKey("warehouses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.String(255), nullable=True)
    active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("warehouse_id", "code", name="uq_warehouse_locations_wh_code"),
    )

    def __repr__(self) -> str:
        return f"<WarehouseLocation id={self.id} wh={self.warehouse_id} code={self.code!r}>"
