# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, TypedDict

from sqlalchemy.ext.asyncio import AsyncSession


class EnqueueResult(TypedDict, total=False):
    queued: bool
    recipients: List[str]
    reason: str  # NO_RECIPIENTS / NO_ALERTS / DISABLED / ENQUEUE_FAILED
    task_id: str


class AuditSink(Protocol):
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
    ) -> None: ...


class NotificationSink(Protocol):
    def enqueue(self, *, recipients: List[str], payload: Dict[str, Any]) -> EnqueueResult: ...


class JobScheduler(Protocol):
    def every(self, name: str, hours: float, fn: Callable[[], Awaitable[Any]]) -> None: ...
