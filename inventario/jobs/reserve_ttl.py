# inventario/jobs/reserve_ttl.py
"""
过期预留回收（统一入口）

  - 处理 reservations(state='ACTIVE', expires_at < now)，无 expires_at 的按 TTL 兜底
  - 逐条事务 + 重新校验状态，由 sweep_expired_reservations 保证
  - 批量 / TTL / 原因 / 系统操作人 全部来自配置

用法：
    python -m inventario.jobs.reserve_ttl [--dry-run]
也可由 APScheduler / Celery beat 定期调用 run()。
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from sqlalchemy.pool import NullPool

from inventario.core.config import get_settings
from inventario.core.logging import setup_logging
from inventario.db.engine import create_async_engine_safe
from inventario.db.session import make_session_maker
from inventario.services.reservation_ttl import SweepResult, sweep_expired_reservations

log = logging.getLogger("inventario.jobs.reserve_ttl")


async def run(
    *,
    batch_limit: Optional[int] = None,
    ttl_hours: Optional[int] = None,
    dry_run: bool = False,
) -> SweepResult:
    """独立引擎（NullPool）跑一批，结束即释放连接。"""
    settings = get_settings()
    engine = create_async_engine_safe(settings.DATABASE_URL, poolclass=NullPool)
    maker = make_session_maker(engine)
    try:
        async with maker() as session:
            result = await sweep_expired_reservations(
                session,
                batch_limit=batch_limit,
                ttl_hours=ttl_hours,
                dry_run=dry_run,
            )
            if session.in_transaction():
                await session.commit()
            return result
    finally:
        await engine.dispose()


async def main(argv: Optional[list[str]] = None) -> SweepResult:
    parser = argparse.ArgumentParser(description="Release expired stock reservations")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--limit", type=int, default=None)
    parser.add_argument("--ttl-hours", type=int, default=None)
    args = parser.parse_args(argv if argv is not None else [])

    result = await run(batch_limit=args.limit, ttl_hours=args.ttl_hours, dry_run=args.dry_run)
    log.info(
        "[ReserveTTL] found=%d released=%d errors=%d dry_run=%s",
        result["found"],
        result["released_count"],
        len(result["errors"]),
        result["dry_run"],
    )
    return result


if __name__ == "__main__":
    import sys

    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
    asyncio.run(main(sys.argv[1:]))
