# inventario/obs/metrics.py
from prometheus_client import Counter, Gauge

movements_total = Counter(
    "inventario_movements_total", "Movement ledger entries appended", ["kind"]
)
reservation_transitions_total = Counter(
    "inventario_reservation_transitions_total", "Reservation state transitions", ["state"]
)
transfer_transitions_total = Counter(
    "inventario_transfer_transitions_total", "Transfer state transitions", ["state"]
)
sweep_released_total = Counter(
    "inventario_sweep_released_total", "Reservations expired by the TTL sweep"
)
sweep_errors_total = Counter(
    "inventario_sweep_errors_total", "Per-item failures inside reconciliation sweeps", ["job"]
)
low_stock_items = Gauge(
    "inventario_low_stock_items", "Stock lines at or below their minimum in the last sweep"
)
alerts_enqueued_total = Counter(
    "inventario_alerts_enqueued_total", "Low-stock alert enqueue outcomes", ["outcome"]
)
celery_active_tasks = Gauge("inventario_celery_active_tasks", "Celery active tasks")
