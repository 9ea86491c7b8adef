# inventario/worker.py
# Celery Worker（Prometheus 指标 + Beat 调度 + 测试态 send_task 同步执行）
from __future__ import annotations

import os
from typing import Any, Dict

from celery import Celery
from celery.result import EagerResult
from celery.signals import task_postrun, task_prerun

from inventario.core.config import get_settings
from inventario.obs.metrics import celery_active_tasks

_settings = get_settings()

celery = Celery(
    "inventario",
    broker=_settings.REDIS_URL,
    backend=_settings.CELERY_RESULT_BACKEND,
    include=["inventario.tasks"],
)

# 基本配置
celery.conf.task_default_queue = _settings.INVENTARIO_QUEUE_NAME
celery.conf.task_acks_late = True
celery.conf.worker_prefetch_multiplier = 1
celery.conf.broker_transport_options = {"visibility_timeout": 3600}

# === Beat 调度：节奏来自配置（小时），不写 cron 字符串 ===
celery.conf.beat_schedule = {
    "inventario-release-expired-reservations": {
        "task": "inventario.release_expired_reservations",
        "schedule": float(_settings.RESERVATION_SWEEP_EVERY_HOURS) * 3600.0,
    },
    "inventario-low-stock-alerts": {
        "task": "inventario.low_stock_alerts",
        "schedule": float(_settings.LOW_STOCK_SWEEP_EVERY_HOURS) * 3600.0,
    },
}

# === 测试/CI：任务在本进程直接执行 ===
_TESTING = bool(os.getenv("PYTEST_CURRENT_TEST")) or os.getenv("CELERY_ALWAYS_EAGER") == "1"
if _TESTING:
    celery.conf.task_always_eager = True
    celery.conf.task_eager_propagates = True

    # send_task 不受 always_eager 影响，本 app 注册过的任务改为同步执行
    _orig_send_task = celery.send_task

    def _sync_send_task(name: str, args: Any | None = None, kwargs: Dict[str, Any] | None = None, **opts):
        task = celery.tasks.get(name)
        if task is None:
            return _orig_send_task(name, args=args, kwargs=kwargs, **opts)
        res = task.apply(args=args or (), kwargs=kwargs or {}, throw=True)
        if isinstance(res, EagerResult):
            return res
        return EagerResult(id=res.id, ret_value=res.result, state=res.state)

    celery.send_task = _sync_send_task


@task_prerun.connect
def _on_task_start(**_):
    celery_active_tasks.inc()


@task_postrun.connect
def _on_task_end(**_):
    celery_active_tasks.dec()


# import 以注册所有任务
import inventario.tasks  # noqa: E402,F401
