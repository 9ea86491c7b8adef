from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, TypedDict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.config import get_settings
from inventario.obs.metrics import sweep_errors_total, sweep_released_total
from inventario.services.errors import InventoryError, ReservationNotActive
from inventario.services.reservation_service import ReservationService

log = logging.getLogger("inventario.jobs.reservation_ttl")


class SweepResult(TypedDict):
    found: int
    released_count: int
    errors: List[Dict[str, Any]]
    dry_run: bool


async def sweep_expired_reservations(
    session: AsyncSession,
    *,
    batch_limit: Optional[int] = None,
    ttl_hours: Optional[int] = None,
    dry_run: bool = False,
    now: Optional[datetime] = None,
    triggered_by: Optional[int] = None,
    reason: Optional[str] = None,
    service: Optional[ReservationService] = None,
) -> SweepResult:
    """
    回收过期预留（单批）。

    语义：
      - 候选：state='ACTIVE' 且 expires_at < now；
        没有 expires_at 的按 created_at + ttl_hours 兜底
      - 每个候选单独一个事务调用 ReservationService.expire，事务内重新确认仍是 ACTIVE；
        期间已被用户确认/释放的直接跳过（不算错误）
      - 单条失败记日志 + 记入 errors，不影响其它候选
      - dry_run：只统计候选数量，不做任何修改

    参数缺省时取配置 RESERVATION_SWEEP_LIMIT / RESERVATION_TTL_HOURS /
    RESERVATION_RELEASE_REASON / SYSTEM_USER_ID。
    """
    settings = get_settings()
    batch_limit = batch_limit or settings.RESERVATION_SWEEP_LIMIT
    ttl_hours = settings.RESERVATION_TTL_HOURS if ttl_hours is None else ttl_hours
    reason = reason or settings.RESERVATION_RELEASE_REASON
    triggered_by = settings.SYSTEM_USER_ID if triggered_by is None else triggered_by
    now = now or datetime.now(timezone.utc)
    svc = service or ReservationService()

    own_read_tx = not session.in_transaction()
    ids = await svc.find_expired(session, now=now, ttl_hours=ttl_hours, limit=batch_limit)
    if own_read_tx and session.in_transaction():
        # 结束扫描用的只读事务，让每条过期处理各自 begin/commit
        await session.commit()

    result: SweepResult = {
        "found": len(ids),
        "released_count": 0,
        "errors": [],
        "dry_run": dry_run,
    }
    if dry_run or not ids:
        log.info("reservation TTL sweep: found=%d dry_run=%s", len(ids), dry_run)
        return result

    for rid in ids:
        try:
            await svc.expire(session, rid, reason=reason, triggered_by=triggered_by)
            result["released_count"] += 1
        except ReservationNotActive:
            log.info("reservation %s no longer active, skipped", rid)
        except (InventoryError, SQLAlchemyError) as e:
            sweep_errors_total.labels("reservation_ttl").inc()
            code = getattr(e, "code", type(e).__name__)
            log.warning("failed to expire reservation %s: %s", rid, e)
            result["errors"].append({"reservation_id": rid, "code": str(code), "message": str(e)})

    if result["released_count"]:
        sweep_released_total.inc(result["released_count"])
    log.info(
        "reservation TTL sweep: found=%d released=%d errors=%d",
        result["found"],
        result["released_count"],
        len(result["errors"]),
    )
    return result
