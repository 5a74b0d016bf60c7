from __future__ import annotations

import threading
from threading import Event
from typing import Callable, Optional


def _spawn(fn: Callable[[], None], name: str) -> None:
    threading.Thread(target=fn, daemon=True, name=name).start()


class RepeatingTask:
    """Runs `fn` every `interval` seconds until stopped.

    Fires are timer-based: each tick body runs on its own daemon thread, so a
    hung fetch only delays its own tick and never the next fire.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        fn: Callable[[], None],
        log: Optional[Callable[[str], None]] = None,
        dispatch: Optional[Callable[[Callable[[], None], str], None]] = None,
    ) -> None:
        self.name = name
        self.interval = max(0.01, float(interval))
        self.fn = fn
        self.log = log or (lambda m: None)
        self.dispatch = dispatch or _spawn
        self.stop_event: Event = Event()
        self.thread: Optional[threading.Thread] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self.thread is not None and not self.stop_event.is_set()

    def start(self) -> threading.Thread:
        self.thread = threading.Thread(target=self._run, daemon=True, name=f"{self.name}-timer")
        self.thread.start()
        return self.thread

    def stop(self) -> None:
        self.stop_event.set()

    def _run(self) -> None:
        while not self.stop_event.wait(self.interval):
            self.ticks += 1
            try:
                self.dispatch(self.run_tick, f"{self.name}-tick-{self.ticks}")
            except Exception as exc:
                self.log(f"[{self.name}] dispatch failed: {exc}")

    def run_tick(self) -> None:
        """Run one tick body; errors are logged and the schedule continues."""
        if self.stop_event.is_set():
            return
        try:
            self.fn()
        except Exception as exc:
            self.log(f"[{self.name}] tick failed: {exc}")


class PollingScheduler:
    """Owns the stats and orders polling tasks.

    Arming always cancels the current tasks first, so at most one pair
    is ever active.
    """

    def __init__(
        self,
        log: Optional[Callable[[str], None]] = None,
        task_factory: Callable[..., RepeatingTask] = RepeatingTask,
    ) -> None:
        self.log = log or (lambda m: None)
        self.task_factory = task_factory
        self._lock = threading.Lock()
        self._tasks: dict[str, RepeatingTask] = {}

    @property
    def tasks(self) -> dict[str, RepeatingTask]:
        with self._lock:
            return dict(self._tasks)

    @property
    def armed(self) -> bool:
        return any(task.running for task in self.tasks.values())

    def arm(
        self,
        stats_tick: Callable[[], None],
        orders_tick: Callable[[], None],
        stats_interval: float,
        orders_interval: float,
    ) -> None:
        with self._lock:
            self._clear_locked()
            self._tasks = {
                "stats": self.task_factory("stats", stats_interval, stats_tick, self.log),
                "orders": self.task_factory("orders", orders_interval, orders_tick, self.log),
            }
            for task in self._tasks.values():
                task.start()
        self.log(f"Polling armed (stats every {stats_interval:g}s, orders every {orders_interval:g}s).")

    def clear(self) -> None:
        with self._lock:
            self._clear_locked()

    def _clear_locked(self) -> None:
        for task in self._tasks.values():
            task.stop()
        self._tasks = {}
