from __future__ import annotations

from inventario.services.low_stock_service import build_alert_message
from inventario.services.notification import NullNotificationSink, parse_recipients


def test_parse_recipients_merges_and_dedupes():
    out = parse_recipients("a@x.com, b@x.com ,,", ["B@x.com", "c@x.com"], None, "")
    assert out == ["a@x.com", "b@x.com", "c@x.com"]


def test_parse_recipients_empty():
    assert parse_recipients(None, "", []) == []


def _item(i: int) -> dict:
    return {
        "product_code": f"P-{i:03d}",
        "product_name": f"Producto {i}",
        "warehouse_name": "Central",
        "available": str(i),
        "minimum_stock": "20",
    }


def test_alert_message_lists_at_most_ten_items():
    items = [_item(i) for i in range(12)]
    msg = build_alert_message(items)

    assert msg["subject"] == "[Inventario] 12 producto(s) en stock crítico"
    assert "P-009" in msg["body"]
    assert "P-010" not in msg["body"]
    assert "... y 2 más" in msg["body"]


def test_alert_message_without_items():
    msg = build_alert_message([])
    assert msg["subject"].startswith("[Inventario] 0 producto(s)")


def test_null_sink_records_calls():
    sink = NullNotificationSink()
    res = sink.enqueue(recipients=["ops@x.com"], payload={"critical_count": 1})

    assert res["queued"] is True
    assert sink.sent == [{"recipients": ["ops@x.com"], "payload": {"critical_count": 1}}]
