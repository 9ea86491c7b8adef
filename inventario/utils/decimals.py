# inventario/utils/decimals.py
"""
Decimal 工具：库存数量 / 金额 / 成本一律 Decimal，出边界一律十进制字符串。
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")
COST_QUANT = Decimal("0.000001")
MONEY_QUANT = Decimal("0.0001")

# 与列精度一致：数量 Numeric(18, 4)，单位成本 Numeric(18, 6)
QTY_PLACES = 4
COST_PLACES = 6


def to_decimal(value: Any, *, field: str = "value") -> Decimal:
    """int / str / Decimal → Decimal；float 先转 str，避免二进制误差带进来。"""
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, bool):
        raise ValueError(f"{field} must be numeric, got bool")
    elif isinstance(value, (int, str)):
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"{field} is not a valid decimal: {value!r}") from e
    elif isinstance(value, float):
        d = Decimal(repr(value))
    else:
        raise ValueError(f"{field} must be numeric, got {type(value).__name__}")
    if not d.is_finite():
        raise ValueError(f"{field} must be finite, got {value!r}")
    return d


def decimal_places(value: Decimal) -> int:
    """有效小数位数（忽略尾零）：1.50 → 1，1E+2 → 0。"""
    exponent = value.normalize().as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def quantize_cost(value: Decimal) -> Decimal:
    return value.quantize(COST_QUANT, rounding=ROUND_HALF_UP)


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def decimal_to_str(value: Optional[Decimal]) -> str:
    """Decimal → 不带指数、不带多余尾零的字符串；None / 0 → "0"。"""
    if value is None:
        return "0"
    d = Decimal(value)
    if d == 0:
        return "0"
    return format(d.normalize(), "f")
