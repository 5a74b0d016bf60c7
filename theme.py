from __future__ import annotations

import ctypes
import os
from tkinter import ttk

from logger import log_event

# DWM attribute ids for the immersive dark titlebar (20 on Windows 10 20H1+, 19 before).
_DARK_TITLEBAR_ATTRS = (20, 19)

PALETTES = {
    True: {
        "bg": "#15171c",
        "fg": "#f1f1f4",
        "ctrl_bg": "#242833",
        "list_bg": "#1b1e25",
        "muted": "#8b90a0",
        "unread_bg": "#3a2320",
        "error": "#e57373",
    },
    False: {
        "bg": "#f7f7f9",
        "fg": "#1d1f24",
        "ctrl_bg": "#e4e6eb",
        "list_bg": "#ffffff",
        "muted": "#6b7080",
        "unread_bg": "#ffece8",
        "error": "#c62828",
    },
}
ACCENT = "#ff6347"
FONT = "Segoe UI"


def compute_colors(dark: bool = True) -> dict:
    colors = dict(PALETTES[bool(dark)])
    colors["accent"] = ACCENT
    return colors


def apply_style_theme(style: ttk.Style, colors: dict) -> None:
    """Configure the ttk styles used by the tray window."""
    bg, fg, panel, accent = colors["bg"], colors["fg"], colors["ctrl_bg"], colors["accent"]
    style.theme_use("clam")
    for name in ("TFrame", "TLabel", "TCheckbutton"):
        style.configure(name, background=bg, foreground=fg)
    label_variants = {
        "Muted.TLabel": {"foreground": colors["muted"]},
        "Title.TLabel": {"foreground": fg, "font": (FONT, 13, "bold")},
        "Figure.TLabel": {"foreground": accent, "font": (FONT, 16, "bold")},
        "Error.TLabel": {"foreground": colors["error"]},
    }
    for name, options in label_variants.items():
        style.configure(name, background=bg, **options)
    style.map("TCheckbutton", background=[("active", bg)], foreground=[("active", fg)])

    style.configure("TButton", background=panel, foreground=fg, bordercolor=panel, focuscolor=panel, padding=(8, 4))
    style.map("TButton", background=[("active", accent), ("pressed", accent)], foreground=[("active", bg), ("pressed", bg)])
    style.configure("Nav.TButton", padding=(6, 2))
    style.configure("TEntry", fieldbackground=panel, foreground=fg, insertcolor=fg)

    style.configure(
        "Treeview",
        background=colors["list_bg"],
        fieldbackground=colors["list_bg"],
        foreground=fg,
        bordercolor=panel,
        rowheight=24,
    )
    style.configure("Treeview.Heading", background=panel, foreground=fg)
    style.map("Treeview", background=[("selected", accent)], foreground=[("selected", bg)])


def set_titlebar_dark(window, enable: bool) -> None:
    """Ask DWM for a dark titlebar on Windows; a no-op elsewhere."""
    if os.name != "nt":
        return
    try:
        user32 = ctypes.windll.user32
        hwnd = window.winfo_id()
        # Tk hands back the client area; DWM wants the top-level frame.
        while user32.GetParent(hwnd):
            hwnd = user32.GetParent(hwnd)
        flag = ctypes.c_int(1 if enable else 0)
        for attr in _DARK_TITLEBAR_ATTRS:
            if ctypes.windll.dwmapi.DwmSetWindowAttribute(hwnd, attr, ctypes.byref(flag), ctypes.sizeof(flag)) == 0:
                break
    except Exception as exc:
        log_event("theme.titlebar_failed", {"error": str(exc)})
