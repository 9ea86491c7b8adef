from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from inventario.core.config import get_settings

log = logging.getLogger("inventario.scheduler")

_scheduler: Optional["APSchedulerJobScheduler"] = None


class APSchedulerJobScheduler:
    """JobScheduler 的 APScheduler 实现：every(name, hours, fn) → interval 触发。"""

    def __init__(self, scheduler: AsyncIOScheduler | None = None) -> None:
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")

    def every(self, name: str, hours: float, fn: Callable[[], Awaitable[Any]]) -> None:
        if hours <= 0:
            raise ValueError(f"interval for job {name!r} must be positive, got {hours}")
        self._scheduler.add_job(
            fn,
            "interval",
            hours=hours,
            id=name,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        log.info("scheduled job %s every %sh", name, hours)

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def start(self) -> None:
        self._scheduler.start()

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)


async def _job_release_expired() -> None:
    from inventario.jobs.reserve_ttl import main as run_reserve_ttl

    await run_reserve_ttl()


async def _job_low_stock() -> None:
    from inventario.jobs.low_stock_alert import main as run_low_stock

    await run_low_stock()


def register_jobs(scheduler: APSchedulerJobScheduler) -> None:
    settings = get_settings()
    scheduler.every(
        "inventario.release_expired_reservations",
        settings.RESERVATION_SWEEP_EVERY_HOURS,
        _job_release_expired,
    )
    scheduler.every(
        "inventario.low_stock_alerts",
        settings.LOW_STOCK_SWEEP_EVERY_HOURS,
        _job_low_stock,
    )


def init_scheduler() -> Optional[APSchedulerJobScheduler]:
    global _scheduler
    if not get_settings().ENABLE_SCHEDULER:
        return None
    if _scheduler is None:
        _scheduler = APSchedulerJobScheduler()
        register_jobs(_scheduler)
        _scheduler.start()
    return _scheduler
