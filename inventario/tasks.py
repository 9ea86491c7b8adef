# inventario/tasks.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from inventario.worker import celery

log = logging.getLogger("inventario.tasks")


@celery.task(name="inventario.release_expired_reservations")
def release_expired_reservations(
    batch_limit: Optional[int] = None,
    ttl_hours: Optional[int] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Beat 周期任务：回收过期预留。"""
    from inventario.jobs.reserve_ttl import run

    return dict(asyncio.run(run(batch_limit=batch_limit, ttl_hours=ttl_hours, dry_run=dry_run)))


@celery.task(name="inventario.low_stock_alerts")
def low_stock_alerts(force: Optional[bool] = None) -> Dict[str, Any]:
    """Beat 周期任务：低库存巡检 + 告警入队。"""
    from inventario.jobs.low_stock_alert import run

    return asyncio.run(run(force=force))


@celery.task(name="inventario.low_stock_alert_email")
def low_stock_alert_email(recipients: List[str], payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    告警投递任务：邮件发送由部署侧的邮件通道完成，这里只负责组织内容并记录。
    """
    subject = payload.get("subject") or "[Inventario] stock crítico"
    body = payload.get("body") or ""
    for to in recipients:
        log.info("low stock alert -> %s | %s", to, subject)
    log.debug("low stock alert body:\n%s", body)
    return {"delivered": len(recipients), "subject": subject}
