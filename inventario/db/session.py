# inventario/db/session.py
# 异步会话工厂：进程内懒加载一个引擎，任务/脚本也可以自己建引擎后调用 make_session_maker
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from inventario.core.config import get_settings
from inventario.db.engine import create_async_engine_safe

_engine: Optional[AsyncEngine] = None
_maker: Optional[async_sessionmaker[AsyncSession]] = None


def make_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine_safe(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _maker
    if _maker is None:
        _maker = make_session_maker(get_engine())
    return _maker


async def dispose_engine() -> None:
    global _engine, _maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _maker = None
