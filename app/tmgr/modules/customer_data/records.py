from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from app.tmgr.constants import BRAND_KEYS, BRANDS, TERRITORIES
from app.tmgr.modules.sales_import.utils import create_period_key


@dataclass
class QuarterlySales:
    """Sales for one brand, keyed by period ("YYYY-Qn"). Only positive amounts are stored."""

    sales_by_period: dict[str, float] = field(default_factory=dict)

    def add(self, period: str, amount: float) -> None:
        self.sales_by_period[period] = self.sales_by_period.get(period, 0) + amount

    def total(self) -> float:
        return sum(self.sales_by_period.values())

    def periods(self) -> list[str]:
        return sorted(self.sales_by_period)

    def latest(self) -> tuple[str, float] | None:
        if not self.sales_by_period:
            return None
        period = max(self.sales_by_period)
        return period, self.sales_by_period[period]

    def for_year(self, year: int) -> float:
        prefix = str(year)
        return sum(v for k, v in self.sales_by_period.items() if k.startswith(prefix))

    def for_quarter(self, year: int, quarter: int) -> float:
        return self.sales_by_period.get(create_period_key(year, quarter), 0)

    def growth_rate(self, from_period: str, to_period: str) -> float | None:
        """Percent change between two periods; None if either is missing or the base is 0."""
        start = self.sales_by_period.get(from_period)
        end = self.sales_by_period.get(to_period)
        if start is None or end is None or start == 0:
            return None
        return (end - start) / start * 100

    def to_dict(self) -> dict[str, Any]:
        return {"salesByPeriod": dict(self.sales_by_period)}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "QuarterlySales":
        raw = d["salesByPeriod"]
        if not isinstance(raw, dict):
            raise ValueError("salesByPeriod must be an object")
        sales: dict[str, float] = {}
        for k, v in raw.items():
            if isinstance(v, bool) or not isinstance(v, (int, float)):
                raise ValueError(f"Invalid amount for {k}: {v!r}")
            amount = float(v)
            if not math.isfinite(amount) or amount <= 0:
                raise ValueError(f"Invalid amount for {k}: {v!r}")
            sales[str(k)] = amount
        return cls(sales_by_period=sales)


@dataclass
class SalesData:
    daxxify: QuarterlySales = field(default_factory=QuarterlySales)
    rha: QuarterlySales = field(default_factory=QuarterlySales)
    skin_pen: QuarterlySales = field(default_factory=QuarterlySales)

    def for_brand(self, brand: str) -> QuarterlySales:
        if brand == "DAXXIFY":
            return self.daxxify
        if brand == "RHA":
            return self.rha
        if brand == "SkinPen":
            return self.skin_pen
        raise KeyError(brand)

    def total(self) -> float:
        return sum(self.for_brand(b).total() for b in BRANDS)

    def to_dict(self) -> dict[str, Any]:
        return {BRAND_KEYS[b]: self.for_brand(b).to_dict() for b in BRANDS}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "SalesData":
        return cls(
            daxxify=QuarterlySales.from_dict(d["daxxify"]),
            rha=QuarterlySales.from_dict(d["rha"]),
            skin_pen=QuarterlySales.from_dict(d["skinPen"]),
        )


@dataclass
class CustomerNotes:
    general: str | None = None
    contact: str | None = None
    product: str | None = None

    def to_dict(self) -> dict[str, str]:
        out = {"general": self.general, "contact": self.contact, "product": self.product}
        return {k: v for k, v in out.items() if v}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "CustomerNotes":
        return cls(general=d.get("general"), contact=d.get("contact"), product=d.get("product"))


@dataclass
class Customer:
    customer_number: str
    account_name: str
    business_address: str
    sales_rep: str
    territory: str
    notes: CustomerNotes = field(default_factory=CustomerNotes)
    sales_data: SalesData = field(default_factory=SalesData)
    is_q3_promo_target: bool = False
    total_sales: float = 0

    @property
    def id(self) -> str:
        return self.customer_number.lower()

    def recompute_total(self) -> None:
        self.total_sales = self.sales_data.total()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customerNumber": self.customer_number,
            "accountName": self.account_name,
            "businessAddress": self.business_address,
            "salesRep": self.sales_rep,
            "territory": self.territory,
            "notes": self.notes.to_dict(),
            "salesData": self.sales_data.to_dict(),
            "isQ3PromoTarget": self.is_q3_promo_target,
            "totalSales": self.total_sales,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Customer":
        """
        Rebuild a customer from its JSON form. Raises KeyError/ValueError/TypeError
        on anything malformed; totalSales is recomputed, not trusted.
        """
        territory = d["territory"]
        if territory not in TERRITORIES:
            raise ValueError(f"Unknown territory {territory!r}")
        c = cls(
            customer_number=str(d["customerNumber"]),
            account_name=str(d["accountName"]),
            business_address=str(d.get("businessAddress") or ""),
            sales_rep=str(d["salesRep"]),
            territory=territory,
            notes=CustomerNotes.from_dict(d.get("notes") or {}),
            sales_data=SalesData.from_dict(d["salesData"]),
            is_q3_promo_target=bool(d.get("isQ3PromoTarget", False)),
        )
        c.recompute_total()
        return c
