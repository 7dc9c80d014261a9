from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from app.tmgr.constants import BRANDS, format_territory_name
from app.tmgr.modules.customer_data.records import Customer
from app.tmgr.modules.customer_data.store import CustomerStore


@dataclass(frozen=True)
class TerritoryStats:
    customer_count: int
    total_sales: float
    q3_promo_targets: int
    top_product: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "customerCount": self.customer_count,
            "totalSales": self.total_sales,
            "q3PromoTargets": self.q3_promo_targets,
            "topProduct": self.top_product,
        }


@dataclass(frozen=True)
class SalesRepresentative:
    name: str | None
    customers: list[Customer] = field(default_factory=list)
    total_sales: float = 0
    territories: list[str] = field(default_factory=list)

    def to_dict(self, *, include_customers: bool = False) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "customerCount": len(self.customers),
            "totalSales": self.total_sales,
            "territories": list(self.territories),
        }
        if include_customers:
            d["customers"] = [c.to_dict() for c in self.customers]
        return d


def _partition(customers: Iterable[Customer], attr: str) -> dict[str | None, list[Customer]]:
    buckets: dict[str | None, list[Customer]] = {}
    for c in customers:
        buckets.setdefault(getattr(c, attr, None), []).append(c)
    return buckets


def customers_by_territory(customers: Iterable[Customer]) -> dict[str | None, list[Customer]]:
    return _partition(customers, "territory")


def customers_by_sales_rep(customers: Iterable[Customer]) -> dict[str | None, list[Customer]]:
    return _partition(customers, "sales_rep")


def top_product(customers: Iterable[Customer]) -> str:
    """Brand with the highest summed sales; ties resolve DAXXIFY > RHA > SkinPen."""
    totals = dict.fromkeys(BRANDS, 0.0)
    for c in customers:
        for brand in BRANDS:
            totals[brand] += c.sales_data.for_brand(brand).total()
    best = BRANDS[0]
    for brand in BRANDS[1:]:
        if totals[brand] > totals[best]:
            best = brand
    return best


def territory_stats(customers: Iterable[Customer]) -> dict[str | None, TerritoryStats]:
    stats: dict[str | None, TerritoryStats] = {}
    for territory, bucket in customers_by_territory(customers).items():
        stats[territory] = TerritoryStats(
            customer_count=len(bucket),
            total_sales=sum(c.total_sales for c in bucket),
            q3_promo_targets=sum(1 for c in bucket if c.is_q3_promo_target),
            top_product=top_product(bucket),
        )
    return stats


def sales_representatives(customers: Iterable[Customer]) -> list[SalesRepresentative]:
    reps: list[SalesRepresentative] = []
    for name, bucket in customers_by_sales_rep(customers).items():
        reps.append(
            SalesRepresentative(
                name=name,
                customers=bucket,
                total_sales=sum(c.total_sales for c in bucket),
                territories=list(dict.fromkeys(c.territory for c in bucket)),
            )
        )
    return reps


class TerritoryAnalytics:
    """
    Rollups over a CustomerStore, recomputed whenever the store's version changes.
    """

    def __init__(self, store: CustomerStore) -> None:
        self.store = store
        self._cache: tuple[int, dict[str, Any]] | None = None

    def _memo(self, name: str, compute):
        version, customers = self.store.snapshot()
        current = self._cache
        if current is not None and current[0] == version:
            cache = current[1]
        elif current is None or current[0] < version:
            cache = {}
            self._cache = (version, cache)
        else:
            # another reader already cached a newer dataset
            return compute(customers)
        if name not in cache:
            cache[name] = compute(customers)
        return cache[name]

    def customers_by_territory(self) -> dict[str | None, list[Customer]]:
        return self._memo("by_territory", customers_by_territory)

    def customers_by_sales_rep(self) -> dict[str | None, list[Customer]]:
        return self._memo("by_sales_rep", customers_by_sales_rep)

    def territory_stats(self) -> dict[str | None, TerritoryStats]:
        return self._memo("territory_stats", territory_stats)

    def sales_representatives(self) -> list[SalesRepresentative]:
        return self._memo("sales_representatives", sales_representatives)

    def get_customers_by_territory(self, territory: str) -> list[Customer]:
        return list(self.customers_by_territory().get(territory, []))


def territory_summary(stats: dict[str | None, TerritoryStats], territories: Sequence[str]) -> list[dict[str, Any]]:
    """One row per known territory (zeroed when empty), for listing views."""
    rows: list[dict[str, Any]] = []
    for t in territories:
        s = stats.get(t) or TerritoryStats(0, 0, 0, BRANDS[0])
        rows.append({"territory": t, "name": format_territory_name(t), **s.to_dict()})
    return rows
