from pathlib import Path
from types import SimpleNamespace

import events
from app_core import APP_VERSION, MESSAGES
from config import SettingsStore
from controller import AppController
from models import FetchResult, OrderRecord, StatsSnapshot
from scheduler import PollingScheduler


class FakeTask:
    def __init__(self, name, interval, fn, log=None):
        self.name = name
        self.interval = interval
        self.fn = fn
        self.stopped = False

    @property
    def running(self):
        return not self.stopped

    def start(self):
        pass

    def stop(self):
        self.stopped = True


class FakeLauncher:
    def __init__(self):
        self.enabled = False

    def is_enabled(self):
        return self.enabled

    def enable(self):
        self.enabled = True

    def disable(self):
        self.enabled = False


class FakeClient:
    orders_result = FetchResult(status=200, data=[OrderRecord(order_id="1001", id="abc", total_amount=9.5)])

    def __init__(self, session):
        self.session = session

    def fetch_store_details(self):
        return None

    def fetch_subscription(self):
        return None

    def fetch_stats(self):
        return FetchResult(status=200, data=StatsSnapshot(revenue=10))

    def fetch_orders(self):
        return self.orders_result


def _controller(tmp_path: Path, api_key="", orders_result=None):
    store = SettingsStore(tmp_path / "config.json")
    store.api_key = api_key
    bus = events.EventBus()
    seen = []
    bus.subscribe_all(lambda name, payload: seen.append((name, payload)))
    quit_calls = []

    def factory(session):
        client = FakeClient(session)
        if orders_result is not None:
            client.orders_result = orders_result
        return client

    controller = AppController(
        store,
        bus,
        lambda m: None,
        auto_launch=FakeLauncher(),
        scheduler=PollingScheduler(task_factory=FakeTask),
        client_factory=factory,
        notifier=SimpleNamespace(notify_new_order=lambda: True),
        quit_fn=lambda: quit_calls.append(1),
        run_async=False,
    )
    return SimpleNamespace(controller=controller, store=store, seen=seen, quit_calls=quit_calls)


def test_start_without_key_shows_settings(tmp_path):
    h = _controller(tmp_path)
    h.controller.start()
    names = [name for name, _ in h.seen]
    assert (events.APP_VERSION, APP_VERSION) in h.seen
    assert events.SHOW_SETTINGS in names
    assert h.controller.scheduler.tasks == {}
    assert h.controller.auto_launch.enabled is True


def test_set_api_key_persists_and_bootstraps(tmp_path):
    h = _controller(tmp_path)
    h.controller.start()
    message = h.controller.set_api_key("  new-key  ")
    assert message == MESSAGES["API_KEY_SAVE_SUCCESS"]
    assert h.store.api_key == "new-key"
    assert h.controller.get_api_key() == "new-key"
    assert set(h.controller.scheduler.tasks) == {"stats", "orders"}
    assert h.controller.sequencer.session.api_key == "new-key"


def test_preferences_round_trip(tmp_path):
    h = _controller(tmp_path)
    h.controller.set_notifications_enabled(False)
    assert h.controller.get_notifications_enabled() is False
    h.controller.set_auto_launch_enabled(False)
    assert h.controller.get_auto_launch_enabled() is False
    assert h.controller.auto_launch.enabled is False
    assert SettingsStore(tmp_path / "config.json").notifications_enabled is False


def test_get_orders_pushes_list(tmp_path):
    h = _controller(tmp_path, api_key="k")
    orders = h.controller.get_orders()
    assert orders[0]["order_id"] == "1001"
    pushed = dict(h.seen)[events.DISPLAY_ORDERS]
    assert pushed[0]["id"] == "abc"


def test_get_orders_failure_reports_error(tmp_path):
    h = _controller(tmp_path, api_key="k", orders_result=FetchResult(status=500, data=None))
    assert h.controller.get_orders() == []
    assert (events.GET_ORDERS_ERROR, MESSAGES["ORDER_FAILURE"]) in h.seen


def test_close_app_stops_polling(tmp_path):
    h = _controller(tmp_path, api_key="k")
    h.controller.start()
    tasks = h.controller.scheduler.tasks
    h.controller.close_app()
    assert h.controller.scheduler.tasks == {}
    assert all(t.stopped for t in tasks.values())
    assert h.quit_calls == [1]
