from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Optional

from api_client import StoreApiClient
from app_core import APP_NAME, APP_VERSION, MESSAGES
from autolaunch import AutoLaunch, sync_auto_launch
from bootstrap import BootstrapSequencer
from change_detection import ChangeDetector, publish_orders
from config import Session, SettingsStore
from events import APP_VERSION as APP_VERSION_EVENT, GET_ORDERS_ERROR, EventBus
from models import to_dict
from notifications import OrderNotifier
from scheduler import PollingScheduler


class AppController:
    """Command surface for the presentation layer.

    Wires the settings store, gateway, change detector, scheduler and
    notifier together and exposes the get/set commands the window calls.
    """

    def __init__(
        self,
        store: SettingsStore,
        bus: EventBus,
        logger: Callable[[str], None],
        icon: Optional[Path] = None,
        auto_launch: Optional[AutoLaunch] = None,
        scheduler: Optional[PollingScheduler] = None,
        client_factory: Optional[Callable[[Session], StoreApiClient]] = None,
        notifier: Optional[OrderNotifier] = None,
        quit_fn: Optional[Callable[[], None]] = None,
        run_async: bool = True,
    ) -> None:
        self.store = store
        self.bus = bus
        self.log = logger
        self.auto_launch = auto_launch or AutoLaunch(APP_NAME)
        self.scheduler = scheduler or PollingScheduler(log=logger)
        self.client_factory = client_factory or (lambda session: StoreApiClient(session, log=logger))
        self.notifier = notifier or OrderNotifier(bus, icon, logger)
        self.quit_fn = quit_fn
        self.run_async = run_async
        self.sequencer = BootstrapSequencer(
            Session.from_config(store.snapshot()),
            bus,
            self.scheduler,
            detector_factory=self._new_detector,
            client_factory=self.client_factory,
            logger=logger,
        )

    def _new_detector(self) -> ChangeDetector:
        return ChangeDetector(
            self.bus,
            notify_new_order=self.notifier.notify_new_order,
            notifications_enabled=lambda: self.store.notifications_enabled,
            logger=self.log,
        )

    def _run(self, fn: Callable[[], object], name: str) -> None:
        if not self.run_async:
            fn()
            return
        threading.Thread(target=fn, daemon=True, name=name).start()

    def start(self) -> None:
        """Apply the auto-launch preference, announce the version and bootstrap."""
        self.log(MESSAGES["APP_READY"])
        sync_auto_launch(self.auto_launch, self.store.auto_launch_enabled, self.log)
        self.bus.publish(APP_VERSION_EVENT, APP_VERSION)
        self._run(self.sequencer.bootstrap, "bootstrap")

    def get_api_key(self) -> str:
        return self.store.api_key

    def set_api_key(self, api_key: str) -> str:
        self.store.api_key = (api_key or "").strip()
        self.sequencer.replace_session(Session.from_config(self.store.snapshot()))
        self._run(self.sequencer.bootstrap, "bootstrap")
        return MESSAGES["API_KEY_SAVE_SUCCESS"]

    def get_notifications_enabled(self) -> bool:
        return self.store.notifications_enabled

    def set_notifications_enabled(self, enabled: bool) -> None:
        self.store.notifications_enabled = bool(enabled)

    def get_auto_launch_enabled(self) -> bool:
        return self.store.auto_launch_enabled

    def set_auto_launch_enabled(self, enabled: bool) -> None:
        self.store.auto_launch_enabled = bool(enabled)
        sync_auto_launch(self.auto_launch, bool(enabled), self.log)

    def get_orders(self) -> list[dict]:
        """Refetch orders now and push them; [] and get-orders-error on failure."""
        self.log("Fetching orders...")
        client = self.sequencer.client or self.client_factory(self.sequencer.session)
        result = client.fetch_orders()
        if result is None or not result.ok or not isinstance(result.data, list):
            self.bus.publish(GET_ORDERS_ERROR, MESSAGES["ORDER_FAILURE"])
            return []
        publish_orders(self.bus, result.data)
        return [to_dict(order) for order in result.data]

    def close_app(self) -> None:
        self.scheduler.clear()
        if self.quit_fn is not None:
            self.quit_fn()
