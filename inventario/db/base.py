# inventario/db/base.py
from __future__ import annotations

import importlib
import logging

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("inventario.models")


class Base(DeclarativeBase):
    """全局唯一 ORM Base"""

    pass


_INITIALIZED: bool = False  # 防重复初始化

MODEL_MODULES = (
    "inventario.models.product",
    "inventario.models.warehouse",
    "inventario.models.stock_line",
    "inventario.models.movement",
    "inventario.models.reservation",
    "inventario.models.transfer",
    "inventario.models.supplier",
    "inventario.models.purchase",
    "inventario.models.audit_event",
)


def init_models(*, force: bool = False) -> None:
    """
    集中导入模型 + 固化关系映射（Alembic / 建表前调用）。
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        return

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized (%d modules)", len(MODEL_MODULES))
