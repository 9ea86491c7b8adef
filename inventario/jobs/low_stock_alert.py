# inventario/jobs/low_stock_alert.py
"""
低库存巡检入口：扫描关键库存行并把告警交给 Celery 投递。

用法：
    python -m inventario.jobs.low_stock_alert [--force]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any, Dict, Optional

from sqlalchemy.pool import NullPool

from inventario.core.config import get_settings
from inventario.core.logging import setup_logging
from inventario.db.engine import create_async_engine_safe
from inventario.db.session import make_session_maker
from inventario.ports import NotificationSink
from inventario.services.low_stock_service import sweep_low_stock
from inventario.services.notification import CeleryNotificationSink

log = logging.getLogger("inventario.jobs.low_stock_alert")


async def run(
    *,
    force: Optional[bool] = None,
    notifier: Optional[NotificationSink] = None,
) -> Dict[str, Any]:
    settings = get_settings()
    engine = create_async_engine_safe(settings.DATABASE_URL, poolclass=NullPool)
    maker = make_session_maker(engine)
    if notifier is None:
        notifier = CeleryNotificationSink(queue=settings.INVENTARIO_QUEUE_NAME)
    try:
        async with maker() as session:
            return await sweep_low_stock(session, notifier, force=force)
    finally:
        await engine.dispose()


async def main(argv: Optional[list[str]] = None) -> Dict[str, Any]:
    parser = argparse.ArgumentParser(description="Scan low stock lines and enqueue alerts")
    parser.add_argument("--force", action="store_true", default=None)
    args = parser.parse_args(argv if argv is not None else [])

    result = await run(force=args.force)
    log.info(
        "[LowStock] critical=%d queued=%s",
        result["critical_count"],
        result["notification"].get("queued"),
    )
    return result


if __name__ == "__main__":
    import sys

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
    asyncio.run(main(sys.argv[1:]))
