# inventario/services/notification.py
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from inventario.ports import EnqueueResult

log = logging.getLogger("inventario.notify")

ALERT_EMAIL_TASK = "inventario.low_stock_alert_email"


def parse_recipients(*sources: Optional[Iterable[str] | str]) -> List[str]:
    """
    合并多个来源的收件人：逗号分隔字符串或列表均可；去空白、去重、保持首次出现顺序。
    """
    out: List[str] = []
    seen: set[str] = set()
    for src in sources:
        if not src:
            continue
        parts = src.split(",") if isinstance(src, str) else list(src)
        for raw in parts:
            email = str(raw).strip()
            key = email.lower()
            if email and key not in seen:
                seen.add(key)
                out.append(email)
    return out


class NullNotificationSink:
    """不投递，只记录调用（测试 / 未配置队列时）。"""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    def enqueue(self, *, recipients: List[str], payload: Dict[str, Any]) -> EnqueueResult:
        self.sent.append({"recipients": list(recipients), "payload": payload})
        log.debug("null notification sink: %d recipient(s)", len(recipients))
        return {"queued": True, "recipients": list(recipients)}


class CeleryNotificationSink:
    """
    通过 Celery send_task 投递告警邮件任务（fire-and-forget，不等结果）。
    """

    def __init__(self, celery_app=None, *, task_name: str = ALERT_EMAIL_TASK, queue: Optional[str] = None):
        if celery_app is None:
            from inventario.worker import celery as celery_app
        self._celery = celery_app
        self._task_name = task_name
        self._queue = queue

    def enqueue(self, *, recipients: List[str], payload: Dict[str, Any]) -> EnqueueResult:
        opts: Dict[str, Any] = {}
        if self._queue:
            opts["queue"] = self._queue
        res = self._celery.send_task(
            self._task_name,
            kwargs={"recipients": list(recipients), "payload": payload},
            **opts,
        )
        log.info("alert enqueued task=%s id=%s recipients=%d", self._task_name, res.id, len(recipients))
        return {"queued": True, "recipients": list(recipients), "task_id": str(res.id)}
