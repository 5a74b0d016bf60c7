from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from events import DISPLAY_ORDERS, DISPLAY_STATS, DRAW_CHART, TRAY_TITLE, EventBus
from models import FetchResult, OrderRecord, StatsSnapshot, to_dict

_UNSET = object()


def _result_ok(result: Optional[FetchResult]) -> bool:
    return result is not None and result.ok


def publish_stats(bus: EventBus, stats: StatsSnapshot) -> None:
    bus.publish(TRAY_TITLE, f"  {stats.revenue}")
    bus.publish(DRAW_CHART, [to_dict(point) for point in stats.sales])
    bus.publish(DISPLAY_STATS, to_dict(stats))


def publish_orders(bus: EventBus, orders: list[OrderRecord]) -> None:
    bus.publish(DISPLAY_ORDERS, [to_dict(order) for order in orders])


class ChangeDetector:
    """Compares each fetch against the last observed value and pushes changes.

    Only two scalars are kept: the stats revenue and the head order id.
    Each has its own lock, so a stats tick and an orders tick never
    contend with each other.
    """

    def __init__(
        self,
        bus: EventBus,
        notify_new_order: Callable[[], None],
        notifications_enabled: Callable[[], bool],
        logger: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.bus = bus
        self.notify_new_order = notify_new_order
        self.notifications_enabled = notifications_enabled
        self.log = logger or (lambda m: None)
        self._stats_lock = threading.Lock()
        self._orders_lock = threading.Lock()
        self._previous_revenue: Any = _UNSET
        self._previous_first_order_id: Optional[str] = None

    @property
    def previous_revenue(self) -> Any:
        return None if self._previous_revenue is _UNSET else self._previous_revenue

    @property
    def previous_first_order_id(self) -> Optional[str]:
        return self._previous_first_order_id

    def on_stats(self, result: Optional[FetchResult]) -> bool:
        """Push display-stats/draw-chart when revenue changed. Returns True if pushed."""
        if not _result_ok(result) or not isinstance(result.data, StatsSnapshot):
            return False
        stats: StatsSnapshot = result.data
        with self._stats_lock:
            if self._previous_revenue is not _UNSET and stats.revenue == self._previous_revenue:
                return False
            self._previous_revenue = stats.revenue
        publish_stats(self.bus, stats)
        return True

    def on_orders(self, result: Optional[FetchResult]) -> bool:
        """Push display-orders (and maybe notify) when the head order changed."""
        if not _result_ok(result) or not isinstance(result.data, list) or not result.data:
            return False
        orders: list[OrderRecord] = result.data
        head_id = orders[0].order_id
        with self._orders_lock:
            if head_id == self._previous_first_order_id:
                return False
            had_baseline = self._previous_first_order_id is not None
            self._previous_first_order_id = head_id
        if had_baseline and self._notifications_on():
            try:
                self.notify_new_order()
            except Exception as exc:
                self.log(f"New order notification failed: {exc}")
        publish_orders(self.bus, orders)
        return True

    def _notifications_on(self) -> bool:
        try:
            return bool(self.notifications_enabled())
        except Exception:
            return False
