# inventario/db/engine.py
# 统一引擎工厂：PG 下注入 server_settings；SQLite 打开外键并让 SAVEPOINT 可用
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

__all__ = ["create_async_engine_safe"]


def _connect_args_for(url_str: str) -> dict[str, Any]:
    """
    返回后端专属 connect_args：
    - PostgreSQL(psycopg): application_name
    - SQLite: 仅 check_same_thread
    """
    backend = make_url(url_str).get_backend_name()

    if backend.startswith("postgresql"):
        return {"application_name": "inventario-core"}

    if backend.startswith("sqlite"):
        return {"check_same_thread": False}

    return {}


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """
    pysqlite/aiosqlite 默认自己发 BEGIN，导致 begin_nested()/SAVEPOINT 不可靠。
    这里关掉驱动的隐式事务，由 SQLAlchemy 在 begin 事件里显式发 BEGIN。
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_async_engine_safe(url_str: str, *, echo: bool = False, **extra: Any) -> AsyncEngine:
    """Async 引擎（'postgresql+psycopg' 或 'sqlite+aiosqlite'）。"""
    connect_args: dict[str, Any] = _connect_args_for(url_str)
    backend = make_url(url_str).get_backend_name()

    kwargs: dict[str, Any] = {"echo": echo}
    if backend.startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
    if connect_args:
        kwargs["connect_args"] = connect_args
    kwargs.update(extra)

    engine = create_async_engine(url_str, **kwargs)
    if backend.startswith("sqlite"):
        _install_sqlite_hooks(engine)
    return engine
