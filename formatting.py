from __future__ import annotations

import hashlib
from datetime import datetime, timezone

from app_core import AVATAR_URL, DASHBOARD_ORDER_URL, IMG_URL


def _parse_api_time(value: str) -> datetime | None:
    """API timestamps are UTC without an offset ("2024-05-01 10:00:00")."""
    if not value:
        return None
    text = str(value).strip().replace("T", " ")
    if text.endswith("Z"):
        text = text[:-1]
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d %H:%M", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def time_ago(value: str, now: datetime | None = None) -> str:
    created = _parse_api_time(value)
    if created is None:
        return ""
    now = now or datetime.now(timezone.utc)
    seconds = int((now - created).total_seconds())
    if seconds < 60:
        return "a few seconds ago"
    if seconds < 3600:
        return f"{seconds // 60} minutes ago"
    if seconds < 86400:
        return f"{seconds // 3600} hours ago"
    return f"{seconds // 86400} days ago"


def email_hash(email: str) -> str:
    return hashlib.md5(str(email or "").lower().strip().encode("utf-8")).hexdigest()


def avatar_url(email: str, size: int = 128) -> str:
    return f"{AVATAR_URL}{email_hash(email)}?d=identicon&s={size}"


def store_logo_url(logo: str | None) -> str:
    return f"{IMG_URL}{logo}" if logo else f"{IMG_URL}store-placeholder.png"


def order_url(internal_id: str) -> str:
    return f"{DASHBOARD_ORDER_URL}{internal_id}"


def format_money(symbol: str | None, amount) -> str:
    if amount is None or amount == "":
        return f"{symbol or ''}0.00"
    try:
        return f"{symbol or ''}{float(amount):,.2f}"
    except (TypeError, ValueError):
        return f"{symbol or ''}{amount}"
