from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from app.tmgr.modules.customer_data.records import Customer
from app.tmgr.modules.customer_data.store import CustomerStore

FILTER_KEYS = ("territory", "sales_rep", "is_q3_promo_target", "min_sales", "max_sales")

_FILTER_ALIASES = {
    "salesRep": "sales_rep",
    "isQ3PromoTarget": "is_q3_promo_target",
    "promo": "is_q3_promo_target",
    "minSales": "min_sales",
    "maxSales": "max_sales",
}

_TRUE_VALUES = ("1", "true", "yes", "y", "on")
_FALSE_VALUES = ("0", "false", "no", "n", "off")


def canonical_filter_key(key: str) -> str:
    k = _FILTER_ALIASES.get(key, key)
    if k not in FILTER_KEYS:
        raise KeyError(f"Unknown search filter: {key!r}")
    return k


def _matches_query(c: Customer, q: str) -> bool:
    return (
        q in c.account_name.lower()
        or q in c.customer_number.lower()
        or q in c.sales_rep.lower()
        or q in c.business_address.lower()
    )


def search_customers(customers: Iterable[Customer], query: str, filters: Mapping[str, Any]) -> list[Customer]:
    """
    Stable filter over customers: text query (OR across name, number, rep,
    address) AND every active structured filter.
    """
    q = (query or "").strip().lower()
    territory = filters.get("territory")
    sales_rep = filters.get("sales_rep")
    promo = filters.get("is_q3_promo_target")
    min_sales = filters.get("min_sales")
    max_sales = filters.get("max_sales")

    out: list[Customer] = []
    for c in customers:
        if q and not _matches_query(c, q):
            continue
        if territory is not None and c.territory != territory:
            continue
        if sales_rep is not None and c.sales_rep != sales_rep:
            continue
        if promo is not None and c.is_q3_promo_target != promo:
            continue
        if min_sales is not None and c.total_sales < min_sales:
            continue
        if max_sales is not None and c.total_sales > max_sales:
            continue
        out.append(c)
    return out


class SearchState:
    """
    Query + filter state over a CustomerStore.

    results is recomputed whenever the dataset version, the query or the
    filters change.
    """

    def __init__(self, store: CustomerStore) -> None:
        self.store = store
        self.query = ""
        self.filters: dict[str, Any] = {}
        self._cache_key: tuple | None = None
        self._cache: list[Customer] = []

    def set_query(self, text: str | None) -> None:
        self.query = text or ""

    def set_filter(self, key: str, value: Any) -> None:
        """
        Set one filter; None or "" clears it. False and 0 are real values.
        Values are coerced to the filter's type; raises ValueError when they can't be.
        """
        k = canonical_filter_key(key)
        if value is None or value == "":
            self.filters.pop(k, None)
        else:
            self.filters[k] = _coerce_filter_value(k, value)

    def clear_filters(self) -> None:
        self.filters = {}

    def clear_all(self) -> None:
        self.query = ""
        self.filters = {}

    @property
    def has_active_search(self) -> bool:
        return bool(self.query.strip()) or bool(self.filters)

    @property
    def results(self) -> list[Customer]:
        version, customers = self.store.snapshot()
        key = (version, self.query, tuple(sorted(self.filters.items())))
        if key != self._cache_key:
            self._cache = search_customers(customers, self.query, self.filters)
            self._cache_key = key
        return list(self._cache)


def _parse_number(name: str, raw: str) -> float:
    try:
        return float(raw.replace(",", "").replace("$", ""))
    except ValueError:
        raise ValueError(f"{name} must be a number.") from None


def _parse_bool(name: str, raw: str) -> bool:
    v = raw.lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be true or false.")


def _coerce_filter_value(key: str, value: Any) -> Any:
    if key in ("min_sales", "max_sales"):
        if isinstance(value, bool):
            raise ValueError(f"{key} must be a number.")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            return _parse_number(key, value.strip())
        raise ValueError(f"{key} must be a number.")
    if key == "is_q3_promo_target":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return _parse_bool(key, value.strip())
        raise ValueError(f"{key} must be true or false.")
    if not isinstance(value, str):
        raise ValueError(f"{key} must be text.")
    return value


def parse_search_args(args: Mapping[str, str | None]) -> tuple[str, dict[str, Any]]:
    """
    Query-string filters (API map):
    - q, territory, sales_rep, promo (true/false), min_sales, max_sales.
    Blank values mean "not set". Raises ValueError on malformed numbers/booleans.
    """
    def _arg(*names: str) -> str:
        for n in names:
            v = (args.get(n) or "").strip()
            if v:
                return v
        return ""

    territory = _arg("territory")
    sales_rep = _arg("sales_rep", "salesRep")
    promo = _arg("promo", "is_q3_promo_target", "isQ3PromoTarget")
    min_sales = _arg("min_sales", "minSales")
    max_sales = _arg("max_sales", "maxSales")

    filters: dict[str, Any] = {}
    if territory:
        filters["territory"] = territory
    if sales_rep:
        filters["sales_rep"] = sales_rep
    if promo:
        filters["is_q3_promo_target"] = _parse_bool("promo", promo)
    if min_sales:
        filters["min_sales"] = _parse_number("min_sales", min_sales)
    if max_sales:
        filters["max_sales"] = _parse_number("max_sales", max_sales)
    return args.get("q") or "", filters
