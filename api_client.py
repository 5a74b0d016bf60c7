from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.parse
import urllib.request
from datetime import date, timedelta
from typing import Any, Callable, Optional

from app_core import MESSAGES
from config import Session
from logger import report_error
from models import (
    FetchResult,
    StoreDetails,
    Subscription,
    orders_from_list,
    stats_from_dict,
    store_details_from_dict,
    subscription_from_dict,
)

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE")


class ApiError(Exception):
    """Transport-level failure: network error, non-2xx status or undecodable body."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


def make_ssl_context() -> ssl.SSLContext:
    """Return an SSL context using certifi if available."""
    try:
        import certifi  # type: ignore
        return ssl.create_default_context(cafile=certifi.where())
    except Exception:
        return ssl.create_default_context()


def stats_range(days: int = 7, today: date | None = None) -> tuple[str, str]:
    """Return (from, to) as YYYY-MM-DD covering the last `days` days."""
    end = today or date.today()
    start = end - timedelta(days=days)
    return start.isoformat(), end.isoformat()


def _envelope_status(body: Any, http_status: int) -> int:
    if isinstance(body, dict) and "status" in body:
        try:
            return int(body["status"])
        except (TypeError, ValueError):
            return http_status
    return http_status


class StoreApiClient:
    """Authenticated client for the store REST API.

    The session is read on every request, so replacing it takes effect
    on the next call.
    """

    def __init__(
        self,
        session: Session,
        log: Optional[Callable[[str], None]] = None,
        opener: Optional[Callable[..., Any]] = None,
    ) -> None:
        self.session = session
        self.log = log or (lambda m: None)
        self._urlopen = opener or urllib.request.urlopen
        self._ssl_ctx: ssl.SSLContext | None = None

    def _context(self) -> ssl.SSLContext:
        if self._ssl_ctx is None:
            self._ssl_ctx = make_ssl_context()
        return self._ssl_ctx

    def _url(self, path: str) -> str:
        return urllib.parse.urljoin(self.session.api_base_url, path.lstrip("/"))

    def invoke(
        self,
        method: str,
        path: str,
        data: Any = None,
        headers: dict | None = None,
    ) -> tuple[Any, int]:
        """Send one request and return (decoded body, HTTP status)."""
        method = str(method or "").upper()
        if method not in ALLOWED_METHODS:
            raise ApiError(MESSAGES["METHOD_NOT_ALLOWED"])
        req_headers = {
            "accept": "application/json",
            **(headers or {}),
            "x-api-key": self.session.api_key,
        }
        body = None
        if data is not None:
            body = json.dumps(data).encode("utf-8")
            req_headers["content-type"] = "application/json"
        url = self._url(path)
        req = urllib.request.Request(url, data=body, headers=req_headers, method=method)
        try:
            with self._urlopen(req, timeout=self.session.request_timeout_seconds, context=self._context()) as resp:
                status = getattr(resp, "status", None) or resp.getcode()
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            raise ApiError(f"{exc.code} - {exc.reason}", status=exc.code) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc
        if status < 200 or status >= 300:
            raise ApiError(f"{method} {path} returned status {status}", status=status)
        try:
            decoded = json.loads(raw.decode("utf-8")) if raw else None
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ApiError(f"{method} {path} returned invalid JSON: {exc}", status=status) from exc
        return decoded, status

    def _get(self, path: str) -> FetchResult:
        body, http_status = self.invoke("GET", path)
        data = body.get("data") if isinstance(body, dict) else None
        return FetchResult(status=_envelope_status(body, http_status), data=data)

    def _report(self, label: str, exc: Exception) -> None:
        self.log(f"{label} failed: {exc}")
        report_error(exc, context=label)

    def fetch_store_details(self) -> Optional[StoreDetails]:
        try:
            return store_details_from_dict(self._get("v1/store/details").data)
        except ApiError as exc:
            self._report("fetch_store_details", exc)
            return None

    def fetch_subscription(self) -> Optional[Subscription]:
        try:
            return subscription_from_dict(self._get("v1/subscription").data)
        except ApiError as exc:
            self._report("fetch_subscription", exc)
            return None

    def fetch_stats(self, date_from: str | None = None, date_to: str | None = None) -> Optional[FetchResult]:
        """Fetch stats; the result's data is a StatsSnapshot when status is 200."""
        if not date_from or not date_to:
            date_from, date_to = stats_range(self.session.stats_range_days)
        query = urllib.parse.urlencode({"from": date_from, "to": date_to})
        try:
            result = self._get(f"v1/store/stats?{query}")
            if not result.ok:
                self.log(f"fetch_stats status={result.status}")
                return result
            result.data = stats_from_dict(result.data)
            return result
        except ApiError as exc:
            self._report("fetch_stats", exc)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            self._report("fetch_stats (malformed response)", exc)
        return None

    def fetch_orders(self) -> Optional[FetchResult]:
        """Fetch the first page of orders, newest first."""
        if not self.session.has_credential:
            self.log("API key is not set. Please set the API key before fetching orders.")
            return None
        query = urllib.parse.urlencode({"limit": self.session.orders_page_size, "page": 0})
        try:
            result = self._get(f"v1/orders?{query}")
            if not result.ok:
                self.log(f"fetch_orders status={result.status}")
                return result
            result.data = orders_from_list(result.data)
            return result
        except ApiError as exc:
            self._report("fetch_orders", exc)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            self._report("fetch_orders (malformed response)", exc)
        return None

