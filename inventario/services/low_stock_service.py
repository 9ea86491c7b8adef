# inventario/services/low_stock_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.core.config import get_settings
from inventario.models.product import Product
from inventario.models.stock_line import StockLine
from inventario.models.warehouse import Warehouse
from inventario.obs.metrics import alerts_enqueued_total, low_stock_items
from inventario.ports import EnqueueResult, NotificationSink
from inventario.services.notification import parse_recipients
from inventario.utils.decimals import decimal_to_str

log = logging.getLogger("inventario.jobs.low_stock")

MAX_ITEMS_IN_MESSAGE = 10


async def find_critical_items(session: AsyncSession) -> List[Dict[str, Any]]:
    """
    低库存：minimum_stock > 0 且 available <= minimum_stock（仅启用商品）。
    按 available 升序。
    """
    stmt = (
        select(StockLine, Product.code, Product.name, Warehouse.name)
        .join(Product, Product.id == StockLine.product_id)
        .join(Warehouse, Warehouse.id == StockLine.warehouse_id)
        .where(
            Product.active.is_(True),
            StockLine.minimum_stock > 0,
            StockLine.available <= StockLine.minimum_stock,
        )
        .order_by(StockLine.available.asc(), StockLine.id.asc())
    )
    items: List[Dict[str, Any]] = []
    for line, code, name, wh_name in (await session.execute(stmt)).all():
        items.append(
            {
                "stock_line_id": line.id,
                "product_id": line.product_id,
                "product_code": code,
                "product_name": name,
                "warehouse_id": line.warehouse_id,
                "warehouse_name": wh_name,
                "location_id": line.location_id,
                "available": decimal_to_str(line.available),
                "minimum_stock": decimal_to_str(line.minimum_stock),
                "shortfall": decimal_to_str(line.minimum_stock - line.available),
            }
        )
    return items


def build_alert_message(items: List[Dict[str, Any]], *, max_items: int = MAX_ITEMS_IN_MESSAGE) -> Dict[str, str]:
    """告警邮件的标题 / 正文（最多列 max_items 条）。"""
    subject = f"[Inventario] {len(items)} producto(s) en stock crítico"
    if not items:
        return {"subject": subject, "body": "No hay productos en stock crítico."}

    lines = ["Productos con stock disponible menor o igual al mínimo:", ""]
    for it in items[:max_items]:
        lines.append(
            f"- {it['product_code']} {it['product_name']} @ {it['warehouse_name']}: "
            f"disponible {it['available']} / mínimo {it['minimum_stock']}"
        )
    if len(items) > max_items:
        lines.append(f"... y {len(items) - max_items} más")
    return {"subject": subject, "body": "\n".join(lines)}


async def sweep_low_stock(
    session: AsyncSession,
    notifier: Optional[NotificationSink] = None,
    *,
    recipients: Optional[Iterable[str] | str] = None,
    force: Optional[bool] = None,
    triggered_by: Optional[int] = None,
) -> Dict[str, Any]:
    """
    低库存巡检：生成关键项报告，并通过 NotificationSink 投递告警（只入队，不等结果）。

    不入队的情况（notification.reason）：
      - NO_RECIPIENTS：没有任何收件人
      - NO_ALERTS    ：没有关键项且未 force
      - DISABLED     ：没有注入 notifier
      - ENQUEUE_FAILED：入队失败（已记日志）
    """
    settings = get_settings()
    force = settings.ALERT_FORCE if force is None else force
    triggered_by = settings.SYSTEM_USER_ID if triggered_by is None else triggered_by

    items = await find_critical_items(session)
    low_stock_items.set(len(items))
    to = parse_recipients(recipients, settings.ALERT_RECIPIENTS)

    notification: EnqueueResult
    if not to:
        notification = {"queued": False, "recipients": [], "reason": "NO_RECIPIENTS"}
    elif not items and not force:
        notification = {"queued": False, "recipients": to, "reason": "NO_ALERTS"}
    elif notifier is None:
        notification = {"queued": False, "recipients": to, "reason": "DISABLED"}
    else:
        payload = {
            "critical_count": len(items),
            "items": items[:MAX_ITEMS_IN_MESSAGE],
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "triggered_by": triggered_by,
            **build_alert_message(items),
        }
        try:
            notification = notifier.enqueue(recipients=to, payload=payload)
        except Exception as e:
            log.exception("low stock alert enqueue failed: %s", e)
            notification = {"queued": False, "recipients": to, "reason": "ENQUEUE_FAILED"}

    alerts_enqueued_total.labels(notification.get("reason") or "QUEUED").inc()
    log.info(
        "low stock sweep: critical=%d queued=%s reason=%s",
        len(items),
        notification.get("queued"),
        notification.get("reason"),
    )
    return {"critical_count": len(items), "items": items, "notification": notification}
