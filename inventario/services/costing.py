# inventario/services/costing.py
from __future__ import annotations

from decimal import Decimal

from inventario.utils.decimals import ZERO, quantize_cost


def weighted_average(
    old_qty: Decimal,
    old_avg: Decimal,
    incoming_qty: Decimal,
    incoming_cost: Decimal,
) -> Decimal:
    """
    加权平均单位成本：

        new_avg = (old_qty * old_avg + incoming_qty * incoming_cost) / (old_qty + incoming_qty)

    全程 Decimal，结果保留 6 位小数（ROUND_HALF_UP）；合计数量为 0 时返回 0。
    """
    total_qty = old_qty + incoming_qty
    if total_qty <= 0:
        return quantize_cost(ZERO)
    total_value = old_qty * old_avg + incoming_qty * incoming_cost
    return quantize_cost(total_value / total_qty)
