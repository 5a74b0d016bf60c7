from dataclasses import dataclass, asdict, field
from typing import Optional, List, Any


@dataclass
class StoreDetails:
    store_name: Optional[str] = None
    store_logo: Optional[str] = None
    store_environment: Optional[str] = None
    store_id: Optional[str] = None
    default_currency_symbol: Optional[str] = None


@dataclass
class Subscription:
    name: Optional[str] = None
    status: Optional[str] = None


@dataclass
class SalesPoint:
    date: str
    total_amount: Any
    total_orders: int = 0


@dataclass
class StatsSnapshot:
    revenue: Any
    orders: int = 0
    visitors: int = 0
    abandoned: int = 0
    sales: List[SalesPoint] = field(default_factory=list)


@dataclass
class OrderRecord:
    order_id: str
    id: str
    created_at: Optional[str] = None
    total_amount: Any = None
    currency_symbol: str = ""
    email: str = ""
    is_unread: bool = False


@dataclass
class FetchResult:
    """Decoded API envelope; status is the body status or the HTTP status."""

    status: Optional[int]
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.status == 200


def _as_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    return int(float(value))


def store_details_from_dict(data: Optional[dict]) -> Optional[StoreDetails]:
    if not isinstance(data, dict):
        return None
    return StoreDetails(
        store_name=data.get("store_name"),
        store_logo=data.get("store_logo"),
        store_environment=data.get("store_environment"),
        store_id=None if data.get("store_id") is None else str(data.get("store_id")),
        default_currency_symbol=data.get("default_currency_symbol"),
    )


def subscription_from_dict(data: Optional[dict]) -> Optional[Subscription]:
    if not isinstance(data, dict):
        return None
    return Subscription(name=data.get("name"), status=data.get("status"))


def stats_from_dict(data: dict) -> StatsSnapshot:
    """Build a StatsSnapshot from the `data` member of v1/store/stats.

    Raises KeyError/TypeError/ValueError on a malformed payload.
    """
    stats = data["stats"]
    graphs = data.get("graphs") or {}
    sales = [
        SalesPoint(
            date=str(point.get("dt")),
            total_amount=point.get("total_amount"),
            total_orders=_as_int(point.get("total_orders")),
        )
        for point in (graphs.get("sales") or [])
    ]
    return StatsSnapshot(
        revenue=stats["revenue"],
        orders=_as_int(stats.get("orders")),
        visitors=_as_int(stats.get("visitors")),
        abandoned=_as_int(stats.get("abandoned")),
        sales=sales,
    )


def order_from_dict(data: dict) -> OrderRecord:
    return OrderRecord(
        order_id=str(data["order_id"]),
        id=str(data.get("id") or ""),
        created_at=data.get("created_at"),
        total_amount=data.get("total_amount"),
        currency_symbol=str(data.get("currency_paid_in_symbol") or ""),
        email=str(data.get("email") or ""),
        is_unread=bool(data.get("is_unread", False)),
    )


def orders_from_list(data: Any) -> List[OrderRecord]:
    """Parse the orders list, keeping the API's newest-first order."""
    if not isinstance(data, list):
        raise TypeError(f"orders payload is {type(data).__name__}, expected list")
    return [order_from_dict(item) for item in data]


def to_dict(obj) -> Optional[dict]:
    """Convert a model dataclass to a plain dict for event payloads."""
    if obj is None:
        return None
    return asdict(obj)
