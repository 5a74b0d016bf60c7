from __future__ import annotations

import threading
from typing import Callable, Optional

from api_client import StoreApiClient
from app_core import MESSAGES
from change_detection import ChangeDetector
from config import Session
from events import SHOW_SETTINGS, STORE_DETAILS, EventBus
from logger import report_error
from models import to_dict
from scheduler import PollingScheduler


class BootstrapSequencer:
    """Credential-gated startup: one-time fetches, then arm polling.

    Every run gets a fresh gateway client and change detector built from
    the current Session. Ticks left over from an earlier run are ignored.
    """

    def __init__(
        self,
        session: Session,
        bus: EventBus,
        scheduler: PollingScheduler,
        detector_factory: Callable[[], ChangeDetector],
        client_factory: Callable[[Session], StoreApiClient],
        logger: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.session = session
        self.bus = bus
        self.scheduler = scheduler
        self.detector_factory = detector_factory
        self.client_factory = client_factory
        self.log = logger or (lambda m: None)
        self._lock = threading.Lock()
        self._generation = 0
        self.client: Optional[StoreApiClient] = None
        self.detector: Optional[ChangeDetector] = None

    @property
    def generation(self) -> int:
        return self._generation

    def replace_session(self, session: Session) -> None:
        """Swap in a new Session and stop the current run's polling.

        Takes effect immediately: ticks still in flight see a stale
        generation and drop their results. Call bootstrap() afterwards.
        """
        self.session = session
        self._generation += 1
        self.scheduler.clear()

    def bootstrap(self) -> bool:
        """Returns True when polling was armed."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.scheduler.clear()
            session = self.session
            self.log("Loading data...")
            if not session.has_credential:
                self.client = None
                self.detector = None
                self.log(MESSAGES["API_KEY_MISSING"])
                self.bus.publish(SHOW_SETTINGS)
                return False

            client = self.client_factory(session)
            detector = self.detector_factory()
            self.client = client
            self.detector = detector

            store_details = self._safe_fetch("store details", client.fetch_store_details)
            subscription = self._safe_fetch("subscription", client.fetch_subscription)
            if self._superseded(generation):
                return False
            self.bus.publish(
                STORE_DETAILS,
                {"storeDetails": to_dict(store_details), "subscription": to_dict(subscription)},
            )

            stats = self._safe_fetch("initial stats", client.fetch_stats)
            if self._superseded(generation):
                return False
            detector.on_stats(stats)
            orders = self._safe_fetch("initial orders", client.fetch_orders)
            if self._superseded(generation):
                return False
            detector.on_orders(orders)
            if self._superseded(generation):
                return False

            self.scheduler.arm(
                lambda: self._stats_tick(generation, client, detector),
                lambda: self._orders_tick(generation, client, detector),
                session.stats_interval_seconds,
                session.orders_interval_seconds,
            )
            return True

    def _safe_fetch(self, label: str, fn):
        try:
            return fn()
        except Exception as exc:
            self.log(f"Fetching {label} failed: {exc}")
            report_error(exc, context=f"bootstrap {label}")
            return None

    def _current(self, generation: int) -> bool:
        return generation == self._generation

    def _superseded(self, generation: int) -> bool:
        """True when a newer session took over while this run was fetching."""
        if self._current(generation):
            return False
        self.log("Session replaced during bootstrap; dropping its results.")
        return True

    def _stats_tick(self, generation: int, client: StoreApiClient, detector: ChangeDetector) -> None:
        if not self._current(generation):
            return
        result = client.fetch_stats()
        if self._current(generation):
            detector.on_stats(result)

    def _orders_tick(self, generation: int, client: StoreApiClient, detector: ChangeDetector) -> None:
        if not self._current(generation):
            return
        result = client.fetch_orders()
        if self._current(generation):
            detector.on_orders(result)
