from __future__ import annotations

import io
import sys
import threading
import time
import urllib.request
import webbrowser
from queue import Empty, Queue
from typing import Any, Callable, Optional

import tkinter as tk
from tkinter import ttk

try:
    from PIL import Image, ImageTk  # type: ignore
except Exception:
    Image = None
    ImageTk = None

import events
from api_client import make_ssl_context
from formatting import avatar_url, format_money, order_url, store_logo_url, time_ago
from theme import apply_style_theme, compute_colors, set_titlebar_dark

SECTIONS = ("home", "orders", "settings")
_IMAGE_LOADED = "image-loaded"


def compute_window_position(
    platform: str, screen_w: int, screen_h: int, win_w: int, win_h: int, taskbar: int = 48
) -> tuple[int, int]:
    """Top-left corner that docks the window next to the tray area.

    macOS keeps the tray in the top menu bar, Windows and Linux panels
    default to the bottom right.
    """
    x = max(0, screen_w - win_w)
    if platform == "darwin":
        return x, 24
    return x, max(0, screen_h - win_h - taskbar)


def chart_points(series: list[dict], width: int, height: int, pad: int = 12) -> list[tuple[float, float]]:
    """Scale sales totals into canvas coordinates (left to right, oldest first)."""
    values = []
    for point in series or []:
        try:
            values.append(float(point.get("total_amount") or 0))
        except (TypeError, ValueError):
            values.append(0.0)
    if not values:
        return []
    top = max(values) or 1.0
    span = max(1, len(values) - 1)
    inner_w = max(1, width - 2 * pad)
    inner_h = max(1, height - 2 * pad)
    return [
        (pad + inner_w * i / span, pad + inner_h * (1 - value / top))
        for i, value in enumerate(values)
    ]


def toggle_shows_window(viewable: bool, hidden_at: float, now: float, grace: float = 0.4) -> bool:
    """Decide what a tray click does: show a hidden window, hide a visible one.

    Clicking the tray takes focus from the window, so it may already have
    been hidden on blur a moment before the click arrives. That counts as
    visible.
    """
    if viewable:
        return False
    return now - hidden_at > grace


class TrayWindow:
    """Main popup window: Home (stats + chart), Orders and Settings.

    Bus events arrive on worker threads; they are queued and drained on the
    Tk thread.
    """

    def __init__(
        self,
        root: tk.Tk,
        controller,
        bus: events.EventBus,
        logger: Callable[[str], None],
        geometry: str = "450x630",
        on_tray_title: Optional[Callable[[str], None]] = None,
        hide_on_blur: bool = True,
    ) -> None:
        self.root = root
        self.controller = controller
        self.log = logger
        self.on_tray_title = on_tray_title
        self.hide_on_blur = hide_on_blur
        self.colors = compute_colors(True)
        self._currency = ""
        self._hidden_at = float("-inf")
        self._order_ids: dict[str, str] = {}
        self.queue: "Queue[tuple[str, Any]]" = Queue()
        self._handlers = {
            events.SHOW_SETTINGS: self._on_show_settings,
            events.STORE_DETAILS: self._on_store_details,
            events.DISPLAY_STATS: self._on_display_stats,
            events.DRAW_CHART: self._on_draw_chart,
            events.DISPLAY_ORDERS: self._on_display_orders,
            events.APP_VERSION: self._on_app_version,
            events.FOCUS_WINDOW: lambda _p: self.focus(),
            events.TOGGLE_WINDOW: lambda _p: self.toggle(),
            events.GET_ORDERS_ERROR: self._on_orders_error,
            events.TRAY_TITLE: self._on_tray_title,
            _IMAGE_LOADED: self._on_image_loaded,
        }
        # PhotoImages vanish from widgets once garbage collected.
        self._images: dict[str, Any] = {}
        bus.subscribe_all(lambda name, payload: self.queue.put((name, payload)))

        root.title("ShopTray")
        root.geometry(geometry)
        root.configure(bg=self.colors["bg"])
        self.style = ttk.Style(root)
        apply_style_theme(self.style, self.colors)
        set_titlebar_dark(root, True)
        self._build()
        self.show_section("home")
        root.bind("<FocusOut>", self._on_focus_out)
        root.protocol("WM_DELETE_WINDOW", self.hide)
        root.after(100, self._drain_queue)

    # Layout

    def _build(self) -> None:
        nav = ttk.Frame(self.root, padding=(8, 6))
        nav.pack(fill="x")
        ttk.Button(nav, text="Home", style="Nav.TButton", command=lambda: self.show_section("home")).pack(side="left")
        ttk.Button(nav, text="Orders", style="Nav.TButton", command=lambda: self.show_section("orders")).pack(side="left", padx=4)
        ttk.Button(nav, text="Settings", style="Nav.TButton", command=lambda: self.show_section("settings")).pack(side="left")
        ttk.Button(nav, text="Exit", style="Nav.TButton", command=self.controller.close_app).pack(side="right")

        body = ttk.Frame(self.root, padding=8)
        body.pack(fill="both", expand=True)
        self.sections: dict[str, ttk.Frame] = {name: ttk.Frame(body) for name in SECTIONS}
        self._build_home(self.sections["home"])
        self._build_orders(self.sections["orders"])
        self._build_settings(self.sections["settings"])

        footer = ttk.Frame(self.root, padding=(8, 2))
        footer.pack(fill="x", side="bottom")
        self.version_label = ttk.Label(footer, text="", style="Muted.TLabel")
        self.version_label.pack(side="right")

    def _build_home(self, frame: ttk.Frame) -> None:
        header = ttk.Frame(frame)
        header.pack(fill="x", pady=(0, 8))
        self.logo_label = ttk.Label(header)
        self.logo_label.pack(side="left", padx=(0, 8))
        self.store_name_label = ttk.Label(header, text="Your store", style="Title.TLabel")
        self.store_name_label.pack(side="left")
        self.subscription_label = ttk.Label(header, text="", style="Muted.TLabel")
        self.subscription_label.pack(side="right")

        grid = ttk.Frame(frame)
        grid.pack(fill="x")
        self.stat_labels: dict[str, ttk.Label] = {}
        for idx, (key, caption) in enumerate(
            (("revenue", "Revenue"), ("orders", "Orders"), ("visitors", "Visitors"), ("abandoned", "Abandoned carts"))
        ):
            cell = ttk.Frame(grid, padding=6)
            cell.grid(row=idx // 2, column=idx % 2, sticky="nsew")
            grid.columnconfigure(idx % 2, weight=1)
            ttk.Label(cell, text=caption, style="Muted.TLabel").pack(anchor="w")
            value = ttk.Label(cell, text="-", style="Figure.TLabel")
            value.pack(anchor="w")
            self.stat_labels[key] = value

        ttk.Label(frame, text="Sales, last 7 days", style="Muted.TLabel").pack(anchor="w", pady=(12, 2))
        self.chart = tk.Canvas(frame, height=220, bg=self.colors["list_bg"], highlightthickness=0)
        self.chart.pack(fill="both", expand=True)
        self._chart_series: list[dict] = []
        self.chart.bind("<Configure>", lambda _e: self._redraw_chart())

    def _build_orders(self, frame: ttk.Frame) -> None:
        bar = ttk.Frame(frame)
        bar.pack(fill="x", pady=(0, 6))
        ttk.Button(bar, text="Refresh", command=self.refresh_orders).pack(side="left")
        self.orders_error = ttk.Label(bar, text="", style="Error.TLabel")
        self.orders_error.pack(side="left", padx=8)

        columns = ("order", "created", "total", "customer")
        self.orders_tree = ttk.Treeview(frame, columns=columns, show="headings", selectmode="browse")
        for col, caption, width in (
            ("order", "Order", 80),
            ("created", "Created", 120),
            ("total", "Total", 80),
            ("customer", "Customer", 160),
        ):
            self.orders_tree.heading(col, text=caption)
            self.orders_tree.column(col, width=width, anchor="w")
        self.orders_tree.tag_configure("unread", background=self.colors["unread_bg"])
        detail = ttk.Frame(frame, padding=(0, 6))
        detail.pack(side="bottom", fill="x")
        self.avatar_label = ttk.Label(detail)
        self.avatar_label.pack(side="left", padx=(0, 8))
        self.order_detail = ttk.Label(detail, text="Double-click an order to open it.", style="Muted.TLabel")
        self.order_detail.pack(side="left")
        scroll = ttk.Scrollbar(frame, orient="vertical", command=self.orders_tree.yview)
        self.orders_tree.configure(yscrollcommand=scroll.set)
        self.orders_tree.pack(side="left", fill="both", expand=True)
        scroll.pack(side="right", fill="y")
        self.orders_tree.bind("<Double-1>", self._open_selected_order)
        self.orders_tree.bind("<<TreeviewSelect>>", self._on_order_selected)

    def _build_settings(self, frame: ttk.Frame) -> None:
        ttk.Label(frame, text="API key").pack(anchor="w")
        self.api_key_var = tk.StringVar(value=self.controller.get_api_key())
        entry = ttk.Entry(frame, textvariable=self.api_key_var, show="*", width=48)
        entry.pack(fill="x", pady=(2, 6))
        ttk.Button(frame, text="Save", command=self.save_api_key).pack(anchor="w")
        self.settings_message = ttk.Label(frame, text="", style="Muted.TLabel")
        self.settings_message.pack(anchor="w", pady=(4, 12))

        self.notifications_var = tk.BooleanVar(value=self.controller.get_notifications_enabled())
        ttk.Checkbutton(
            frame,
            text="Notify me about new orders",
            variable=self.notifications_var,
            command=lambda: self.controller.set_notifications_enabled(self.notifications_var.get()),
        ).pack(anchor="w", pady=2)
        self.auto_launch_var = tk.BooleanVar(value=self.controller.get_auto_launch_enabled())
        ttk.Checkbutton(
            frame,
            text="Start ShopTray when I log in",
            variable=self.auto_launch_var,
            command=lambda: self.controller.set_auto_launch_enabled(self.auto_launch_var.get()),
        ).pack(anchor="w", pady=2)

    # Commands

    def show_section(self, name: str) -> None:
        for key, frame in self.sections.items():
            if key == name:
                frame.pack(fill="both", expand=True)
            else:
                frame.pack_forget()

    def save_api_key(self) -> None:
        message = self.controller.set_api_key(self.api_key_var.get())
        self.settings_message.configure(text=message)

    def refresh_orders(self) -> None:
        self.orders_error.configure(text="")
        threading.Thread(target=self.controller.get_orders, daemon=True, name="get-orders").start()

    def _open_selected_order(self, _event=None) -> None:
        selection = self.orders_tree.selection()
        if not selection:
            return
        internal_id = self._order_ids.get(selection[0])
        if internal_id:
            webbrowser.open(order_url(internal_id))

    def _on_order_selected(self, _event=None) -> None:
        selection = self.orders_tree.selection()
        if not selection:
            return
        email = self.orders_tree.set(selection[0], "customer")
        order_id = self.orders_tree.set(selection[0], "order")
        self.order_detail.configure(text=f"#{order_id}  {email}".strip())
        if email:
            self._load_image(avatar_url(email, 48), self.avatar_label, 48)

    def _load_image(self, url: str, target: ttk.Label, size: int) -> None:
        """Download an image off the Tk thread and show it on `target`."""
        if Image is None or ImageTk is None:
            return

        def _fetch() -> None:
            try:
                req = urllib.request.Request(url, headers={"User-Agent": "ShopTray"})
                with urllib.request.urlopen(req, timeout=10, context=make_ssl_context()) as resp:
                    raw = resp.read()
            except OSError as exc:
                self.log(f"Image download failed ({url}): {exc}")
                return
            self.queue.put((_IMAGE_LOADED, (target, raw, size)))

        threading.Thread(target=_fetch, daemon=True, name="image-fetch").start()

    def focus(self) -> None:
        self.position()
        self.root.deiconify()
        self.root.lift()
        self.root.focus_force()

    def toggle(self) -> None:
        if toggle_shows_window(self.root.winfo_viewable(), self._hidden_at, time.monotonic()):
            self.focus()
        else:
            self.hide()

    def hide(self) -> None:
        self._hidden_at = time.monotonic()
        self.root.withdraw()

    def position(self) -> None:
        self.root.update_idletasks()
        x, y = compute_window_position(
            sys.platform,
            self.root.winfo_screenwidth(),
            self.root.winfo_screenheight(),
            self.root.winfo_width(),
            self.root.winfo_height(),
        )
        self.root.geometry(f"+{x}+{y}")

    def _on_focus_out(self, _event=None) -> None:
        if not self.hide_on_blur:
            return
        # FocusOut also fires when moving between child widgets.
        self.root.after(150, self._hide_if_unfocused)

    def _hide_if_unfocused(self) -> None:
        try:
            if self.root.focus_get() is None:
                self.hide()
        except (KeyError, tk.TclError):
            self.hide()

    # Event handlers (Tk thread)

    def _drain_queue(self) -> None:
        try:
            while True:
                name, payload = self.queue.get_nowait()
                handler = self._handlers.get(name)
                if handler is None:
                    continue
                try:
                    handler(payload)
                except Exception as exc:
                    self.log(f"UI update for {name} failed: {exc}")
        except Empty:
            pass
        self.root.after(100, self._drain_queue)

    def _on_show_settings(self, _payload=None) -> None:
        self.show_section("settings")
        self.focus()

    def _on_store_details(self, payload: dict | None) -> None:
        payload = payload or {}
        details = payload.get("storeDetails") or {}
        subscription = payload.get("subscription") or {}
        if details.get("store_name"):
            self.store_name_label.configure(text=details["store_name"])
        if subscription.get("name"):
            status = subscription.get("status") or ""
            self.subscription_label.configure(text=f"{subscription['name']} {status}".strip())
        self._currency = details.get("default_currency_symbol") or ""
        if details:
            self._load_image(store_logo_url(details.get("store_logo")), self.logo_label, 40)

    def _on_image_loaded(self, payload: tuple) -> None:
        target, raw, size = payload
        img = Image.open(io.BytesIO(raw)).convert("RGBA")
        img.thumbnail((size, size))
        photo = ImageTk.PhotoImage(img)
        self._images[str(target)] = photo
        target.configure(image=photo)

    def _on_display_stats(self, stats: dict | None) -> None:
        stats = stats or {}
        self.stat_labels["revenue"].configure(text=format_money(self._currency, stats.get("revenue")))
        for key in ("orders", "visitors", "abandoned"):
            self.stat_labels[key].configure(text=str(stats.get(key, "-")))

    def _on_draw_chart(self, series: list | None) -> None:
        self._chart_series = list(series or [])
        self._redraw_chart()

    def _redraw_chart(self) -> None:
        self.chart.delete("all")
        width = self.chart.winfo_width()
        height = self.chart.winfo_height()
        points = chart_points(self._chart_series, width, height)
        if len(points) >= 2:
            flat = [coord for point in points for coord in point]
            self.chart.create_line(*flat, fill=self.colors["accent"], width=2, smooth=True)
        for x, y in points:
            self.chart.create_oval(x - 3, y - 3, x + 3, y + 3, fill=self.colors["accent"], outline="")

    def _on_display_orders(self, orders: list | None) -> None:
        self.orders_tree.delete(*self.orders_tree.get_children())
        self._order_ids = {}
        for order in orders or []:
            item = self.orders_tree.insert(
                "",
                "end",
                values=(
                    order.get("order_id"),
                    time_ago(order.get("created_at") or ""),
                    format_money(order.get("currency_symbol"), order.get("total_amount")),
                    order.get("email"),
                ),
                tags=("unread",) if order.get("is_unread") else (),
            )
            self._order_ids[item] = order.get("id") or ""

    def _on_orders_error(self, message: str | None) -> None:
        self.orders_error.configure(text=message or "")

    def _on_app_version(self, version: str | None) -> None:
        self.version_label.configure(text=f"v{version}" if version else "")

    def _on_tray_title(self, text: str | None) -> None:
        if self.on_tray_title is not None:
            self.on_tray_title(text or "")
