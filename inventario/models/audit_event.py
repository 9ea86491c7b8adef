from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from inventario.db.base import Base
from inventario.models._types import utcnow


class AuditEvent(Base):
    """
    审计（bitácora）audit_events

      - actor_id:    操作人（系统任务为 SYSTEM_USER_ID，可空）
      - action:      INVENTARIO_COMPRA / RESERVA_CONFIRMADA / ...
      - description: 人类可读说明
      - table_name:  受影响的业务表
      - ref:         业务引用（compra:12 / reserva:5 / transferencia:3）
      - meta:        JSON 附加字段
    """

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    table_name: Mapped[str] = mapped_column(String(64), nullable=False)
    ref: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    meta: Mapped[Dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_audit_events_action", "action"),
        Index("ix_audit_events_ref_time", "ref", "created_at"),
    )
