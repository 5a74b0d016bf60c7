from types import SimpleNamespace

import events
from bootstrap import BootstrapSequencer
from change_detection import ChangeDetector
from config import Session
from models import FetchResult, OrderRecord, StatsSnapshot, StoreDetails, Subscription
from scheduler import PollingScheduler


class FakeTask:
    def __init__(self, name, interval, fn, log=None):
        self.name = name
        self.interval = interval
        self.fn = fn
        self.started = False
        self.stopped = False

    @property
    def running(self):
        return self.started and not self.stopped

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True


class FakeClient:
    def __init__(self, session, revenue=100, head="A1"):
        self.session = session
        self.revenue = revenue
        self.head = head
        self.calls = []

    def fetch_store_details(self):
        self.calls.append("details")
        return StoreDetails(store_name="Test Shop", default_currency_symbol="£")

    def fetch_subscription(self):
        self.calls.append("subscription")
        return Subscription(name="Pro", status="active")

    def fetch_stats(self):
        self.calls.append("stats")
        if self.revenue is None:
            return None
        return FetchResult(status=200, data=StatsSnapshot(revenue=self.revenue))

    def fetch_orders(self):
        self.calls.append("orders")
        if self.head is None:
            return None
        return FetchResult(status=200, data=[OrderRecord(order_id=self.head, id="x")])


def _build(api_key="key", client_kwargs=None):
    bus = events.EventBus()
    seen = []
    bus.subscribe_all(lambda name, payload: seen.append((name, payload)))
    created = []
    notified = []

    def client_factory(session):
        client = FakeClient(session, **(client_kwargs or {}))
        created.append(client)
        return client

    def detector_factory():
        return ChangeDetector(bus, notify_new_order=lambda: notified.append(1), notifications_enabled=lambda: True)

    scheduler = PollingScheduler(task_factory=FakeTask)
    seq = BootstrapSequencer(
        Session(api_key=api_key, stats_interval_seconds=5.0, orders_interval_seconds=7.0),
        bus,
        scheduler,
        detector_factory=detector_factory,
        client_factory=client_factory,
    )
    return SimpleNamespace(seq=seq, bus=bus, seen=seen, created=created, scheduler=scheduler, notified=notified)


def _names(h):
    return [name for name, _payload in h.seen]


def test_blank_credential_requests_settings_and_stops():
    h = _build(api_key="   ")
    assert h.seq.bootstrap() is False
    assert _names(h) == [events.SHOW_SETTINGS]
    assert h.created == []
    assert h.scheduler.tasks == {}
    assert h.seq.client is None


def test_credential_present_fetches_and_arms():
    h = _build()
    assert h.seq.bootstrap() is True
    client = h.created[0]
    assert client.calls == ["details", "subscription", "stats", "orders"]
    payload = dict(h.seen)[events.STORE_DETAILS]
    assert payload["storeDetails"]["store_name"] == "Test Shop"
    assert payload["subscription"]["name"] == "Pro"
    assert events.DISPLAY_STATS in _names(h)
    assert events.DISPLAY_ORDERS in _names(h)
    assert h.seq.detector.previous_revenue == 100
    assert h.seq.detector.previous_first_order_id == "A1"
    tasks = h.scheduler.tasks
    assert set(tasks) == {"stats", "orders"}
    assert tasks["stats"].interval == 5.0
    assert tasks["orders"].interval == 7.0
    assert all(t.running for t in tasks.values())


def test_rebootstrap_keeps_a_single_timer_pair():
    h = _build()
    h.seq.bootstrap()
    first = h.scheduler.tasks
    h.seq.bootstrap()
    second = h.scheduler.tasks
    assert all(t.stopped for t in first.values())
    assert all(t.running for t in second.values())
    assert len(second) == 2


def test_failed_initial_fetch_leaves_baseline_empty():
    h = _build(client_kwargs={"revenue": None, "head": None})
    assert h.seq.bootstrap() is True
    assert h.seq.detector.previous_revenue is None
    assert h.seq.detector.previous_first_order_id is None
    assert events.DISPLAY_STATS not in _names(h)


def test_ticks_feed_the_detector():
    h = _build()
    h.seq.bootstrap()
    client = h.created[0]
    client.head = "A2"
    h.scheduler.tasks["orders"].fn()
    assert h.notified == [1]
    assert h.seq.detector.previous_first_order_id == "A2"


def test_stale_ticks_are_dropped_after_session_change():
    h = _build()
    h.seq.bootstrap()
    old_tasks = h.scheduler.tasks
    old_client = h.created[0]
    old_client.head = "Z9"
    h.seq.replace_session(Session(api_key="other"))
    assert h.scheduler.tasks == {}
    calls_before = list(old_client.calls)
    old_tasks["orders"].fn()
    old_tasks["stats"].fn()
    assert old_client.calls == calls_before
    assert h.notified == []


def test_new_session_gets_fresh_baseline():
    h = _build()
    h.seq.bootstrap()
    h.seq.replace_session(Session(api_key="other"))
    h.created.clear()
    h.seq.bootstrap()
    # The first fetch under the new key seeds the baseline without a toast.
    assert h.notified == []
    assert h.seq.detector.previous_first_order_id == "A1"


def test_session_replaced_mid_bootstrap_publishes_nothing():
    h = _build()
    original_factory = h.seq.client_factory

    def factory(session):
        client = original_factory(session)
        real_fetch = client.fetch_subscription

        def fetch_subscription():
            # A new key is saved while this run is still fetching.
            h.seq.replace_session(Session(api_key="other"))
            return real_fetch()

        client.fetch_subscription = fetch_subscription
        return client

    h.seq.client_factory = factory
    assert h.seq.bootstrap() is False
    client = h.created[0]
    assert client.calls == ["details", "subscription"]
    assert _names(h) == []
    assert h.scheduler.tasks == {}
