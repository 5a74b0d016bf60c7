from __future__ import annotations

import os
from pathlib import Path

APP_NAME = "ShopTray"
APP_VERSION = "1.4.0"

APP_DIR = os.path.join(os.getenv("APPDATA", os.path.expanduser("~")), APP_NAME)
DATA_DIR = Path(APP_DIR) / "data"
LOGS_DIR = Path(APP_DIR) / "logs"
os.makedirs(DATA_DIR, exist_ok=True)
os.makedirs(APP_DIR, exist_ok=True)
CONFIG_FILE = os.path.join(APP_DIR, "shoptray_config.json")
APP_LOG_FILE = LOGS_DIR / "shoptray.log"

DEFAULT_API_BASE_URL = "https://api.shoprocket.io/"
IMG_URL = "https://img.shoprocket.io/cdn-cgi/image/fit=cover,quality=75,w=70,h=70/"
AVATAR_URL = "https://avatar.shoprocket.io/avatar/"
DASHBOARD_ORDER_URL = "https://shoprocket.io/dashboard/orders/view/"

MESSAGES = {
    "APP_READY": "ShopTray app started",
    "API_KEY_SAVE_SUCCESS": "API Key saved successfully!",
    "METHOD_NOT_ALLOWED": "Method Not Allowed.",
    "ORDER_FAILURE": "An error occurred while fetching orders. Please try again later",
    "API_KEY_MISSING": "API key is not set. Showing settings window...",
}
