# inventario/services/audit_writer.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from inventario.models.audit_event import AuditEvent

logger = logging.getLogger("inventario.audit")


class DbAuditSink:
    """
    bitácora 默认实现：在业务事务内往 audit_events 写一行。

    与业务写入同一事务，业务回滚时审计一并回滚，不会留下“做了但没发生”的记录。
    """

    async def record(
        self,
        session: AsyncSession,
        *,
        actor_id: Optional[int],
        action: str,
        description: str,
        table: str,
        ref: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        session.add(
            AuditEvent(
                actor_id=actor_id,
                action=action,
                description=description,
                table_name=table,
                ref=ref,
                meta=dict(meta or {}),
            )
        )
        await session.flush()
        logger.info("[audit] %s %s actor=%s %s", action, ref or "-", actor_id, description)


class LogAuditSink:
    """只打日志的实现（无 audit_events 表的部署 / 脚本场景）。"""

    async def record(
        self,
        session: AsyncSession,  # noqa: ARG002
        *,
        actor_id: Optional[int],
        action: str,
        description: str,
        table: str,
        ref: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        logger.info(
            "[audit] %s %s table=%s actor=%s %s meta=%s",
            action,
            ref or "-",
            table,
            actor_id,
            description,
            meta or {},
        )
