# inventario/models/purchase.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventario.db.base import Base
from inventario.models._types import Money, Qty, UnitCost, utcnow
from inventario.models.enums import PurchaseStatus


class Purchase(Base):
    """采购单（基础模块）：一单多行，每行一条 INGRESO。"""

    __tablename__ = "purchases"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    supplier_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    purchased_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )
    total: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(
        sa.String(16), nullable=False, default=PurchaseStatus.RECEIVED.value
    )
    created_by: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)

    lines: Mapped[List["PurchaseLine"]] = relationship(
        "PurchaseLine",
        back_populates="purchase",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Purchase id={self.id} supplier={self.supplier_id} total={self.total}>"


class PurchaseLine(Base):
    __tablename__ = "purchase_lines"
    __table_args__ = (
        UniqueConstraint("purchase_id", "product_id", name="uq_purchase_lines_purchase_product"),
    )

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    purchase_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(
        sa.Integer, sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(Qty, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(UnitCost, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    movement_id: Mapped[Optional[int]] = mapped_column(
        sa.Integer, sa.ForeignKey("movement_entries.id", ondelete="RESTRICT"), nullable=True
    )

    purchase: Mapped[Purchase] = relationship("Purchase", back_populates="lines")
