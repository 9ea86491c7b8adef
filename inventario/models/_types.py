# inventario/models/_types.py
from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa

# 数量 / 金额 与 单位成本 的精度
Qty = sa.Numeric(18, 4)
Money = sa.Numeric(18, 4)
UnitCost = sa.Numeric(18, 6)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
