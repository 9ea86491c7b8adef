# tests/conftest.py
from __future__ import annotations

import os
from typing import AsyncGenerator

# 测试态：Celery send_task 本进程同步执行，不连 Redis
os.environ.setdefault("CELERY_ALWAYS_EAGER", "1")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from inventario.core.config import get_settings  # noqa: E402
from inventario.db.base import Base, init_models  # noqa: E402
from inventario.db.engine import create_async_engine_safe  # noqa: E402
from inventario.db.session import make_session_maker  # noqa: E402
from inventario.models import Product, Supplier, Warehouse, WarehouseLocation  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """每个用例都从干净的配置开始（不读本机 .env 里的告警收件人等）。"""
    monkeypatch.setenv("ALERT_RECIPIENTS", "")
    monkeypatch.setenv("ALERT_FORCE", "false")
    monkeypatch.setenv("BASIC_WAREHOUSE_ID", "1")
    monkeypatch.delenv("SYSTEM_USER_ID", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =========================================
# 每用例独立的 SQLite 文件库（NullPool，避免跨 loop）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    init_models()
    engine = create_async_engine_safe(
        f"sqlite+aiosqlite:///{tmp_path / 'inventario-test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_maker(async_engine)


@pytest_asyncio.fixture(scope="function")
async def session(session_maker, _seed) -> AsyncGenerator[AsyncSession, None]:
    """
    标准 Session（用例结束 commit / 异常 rollback）
    """
    async with session_maker() as sess:
        try:
            yield sess
            if sess.in_transaction():
                await sess.commit()
        except Exception:
            if sess.in_transaction():
                await sess.rollback()
            raise


# =========================================
# 最小基线数据
#   仓库：1 Central / 2 Norte / 3 Cerrado(停用)
#   库位：10 -> 仓1 A-01，11 -> 仓1 A-99(停用)，20 -> 仓2 B-01
#   商品：1 / 2 启用，3 停用
#   供应商：1 启用，2 停用
# =========================================
@pytest_asyncio.fixture(scope="function")
async def _seed(session_maker) -> None:
    async with session_maker() as sess:
        async with sess.begin():
            sess.add_all(
                [
                    Warehouse(id=1, name="Central", active=True),
                    Warehouse(id=2, name="Norte", active=True),
                    Warehouse(id=3, name="Cerrado", active=False),
                ]
            )
            await sess.flush()
            sess.add_all(
                [
                    WarehouseLocation(id=10, warehouse_id=1, code="A-01", active=True),
                    WarehouseLocation(id=11, warehouse_id=1, code="A-99", active=False),
                    WarehouseLocation(id=20, warehouse_id=2, code="B-01", active=True),
                    Product(id=1, code="P-001", name="Tornillo 1/4", active=True),
                    Product(id=2, code="P-002", name="Tuerca 1/4", active=True),
                    Product(id=3, code="P-003", name="Arandela vieja", active=False),
                    Supplier(id=1, name="Ferretería Lima SAC", tax_id="20123456789", active=True),
                    Supplier(id=2, name="Proveedor Cerrado", tax_id="20999999999", active=False),
                ]
            )
