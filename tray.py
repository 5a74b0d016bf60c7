from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

try:
    import pystray  # type: ignore
    from PIL import Image, ImageDraw  # type: ignore
except Exception:
    pystray = None
    Image = None
    ImageDraw = None


def tray_supported() -> bool:
    return pystray is not None and Image is not None


def make_tray_image(icon_path: Optional[Path] = None):
    """Load the bundled tray icon, or draw a shopping-bag glyph when it is missing."""
    if Image is None or ImageDraw is None:
        return None
    if icon_path is not None and Path(icon_path).exists():
        try:
            return Image.open(icon_path)
        except Exception:
            pass
    size = 32
    color = (255, 99, 71, 255)
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))  # type: ignore
    draw = ImageDraw.Draw(img)
    draw.rectangle((6, 11, size - 6, size - 4), fill=color)
    draw.arc((10, 3, size - 10, 19), start=180, end=360, fill=color, width=3)
    return img


def create_tray_icon(
    name: str,
    title: str,
    on_open: Callable[[], None],
    on_settings: Callable[[], None],
    on_quit: Callable[[], None],
    icon_path: Optional[Path] = None,
):
    if not tray_supported():
        return None
    try:
        img = make_tray_image(icon_path)
        menu = pystray.Menu(
            pystray.MenuItem("Open", lambda icon, item: on_open(), default=True),
            pystray.MenuItem("Settings", lambda icon, item: on_settings()),
            pystray.MenuItem("Quit", lambda icon, item: on_quit()),
        )
        icon = pystray.Icon(name, img, title, menu)
        icon.title = title
        icon.run_detached()
        if hasattr(icon, "visible"):
            icon.visible = True
        return icon
    except Exception:
        return None


def update_tray_title(icon, base_title: str, text: str) -> None:
    """Show the latest revenue next to the app name in the tray tooltip."""
    if not icon or not tray_supported():
        return
    try:
        icon.title = f"{base_title}{text}" if text else base_title
    except Exception:
        pass


def stop_tray_icon(icon) -> None:
    try:
        if icon:
            icon.stop()
    except Exception:
        pass
