from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from inventario.core.config import get_settings
from inventario.jobs import low_stock_alert, reserve_ttl
from inventario.schemas.inventory import ReserveStockIn
from inventario.services.notification import NullNotificationSink
from inventario.services.reservation_service import ReservationService
from tests.services._helpers import line_state, seed_line


@pytest.fixture
def job_db(tmp_path, monkeypatch):
    """让任务入口（自建引擎）指向用例的 SQLite 文件库。"""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'inventario-test.db'}")
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_reserve_ttl_main(session, job_db):
    await seed_line(session, product_id=1, warehouse_id=1, available=5)
    await ReservationService().reserve(
        session,
        ReserveStockIn(
            product_id=1,
            warehouse_id=1,
            quantity=Decimal("5"),
            expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
        ),
    )

    dry = await reserve_ttl.main(["--dry-run"])
    assert (dry["found"], dry["released_count"]) == (1, 0)

    result = await reserve_ttl.main([])
    assert result["released_count"] == 1
    assert await line_state(session, 1, 1) == (Decimal("5"), Decimal("0"), Decimal("0"))


@pytest.mark.asyncio
async def test_low_stock_run(session, job_db, monkeypatch):
    monkeypatch.setenv("ALERT_RECIPIENTS", "ops@x.com")
    get_settings.cache_clear()
    await seed_line(session, product_id=1, warehouse_id=1, available=1, minimum_stock=3)
    sink = NullNotificationSink()

    out = await low_stock_alert.run(notifier=sink)

    assert out["critical_count"] == 1
    assert out["notification"]["queued"] is True
    assert sink.sent[0]["recipients"] == ["ops@x.com"]
