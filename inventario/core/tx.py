# inventario/core/tx.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from inventario.services.errors import TransientStorageError

log = logging.getLogger("inventario.tx")


_TRANSIENT = (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.TimeoutError)


@asynccontextmanager
async def tx_scope(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    单个业务操作的事务边界：

    - 会话内没有事务：begin/commit
    - 调用方已经开着事务：SAVEPOINT，失败只回滚本操作，提交交给调用方
    - 连接/超时类错误统一转成 TransientStorageError（可重试）
    """
    ctx = session.begin_nested() if session.in_transaction() else session.begin()
    try:
        async with ctx:
            yield session
    except _TRANSIENT as e:
        log.warning("transient storage failure: %s", e)
        raise TransientStorageError(str(e)) from e
