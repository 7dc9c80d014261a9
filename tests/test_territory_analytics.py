import pytest

from app.tmgr.constants import TERRITORIES
from app.tmgr.modules.customer_data.records import Customer, QuarterlySales, SalesData
from app.tmgr.modules.customer_data.store import CustomerStore, DatasetLoadError
from app.tmgr.modules.sales_import.service import ParseMeta, ParseResult
from app.tmgr.modules.territory.analytics import (
    TerritoryAnalytics,
    customers_by_sales_rep,
    customers_by_territory,
    sales_representatives,
    territory_stats,
    territory_summary,
    top_product,
)


def _customer(number, rep, territory, *, daxxify=0, rha=0, skin_pen=0, promo=False) -> Customer:
    data = SalesData(
        daxxify=QuarterlySales({"2024-Q1": daxxify} if daxxify else {}),
        rha=QuarterlySales({"2024-Q1": rha} if rha else {}),
        skin_pen=QuarterlySales({"2024-Q1": skin_pen} if skin_pen else {}),
    )
    c = Customer(
        customer_number=number,
        account_name=f"Account {number}",
        business_address="",
        sales_rep=rep,
        territory=territory,
        sales_data=data,
        is_q3_promo_target=promo,
    )
    c.recompute_total()
    return c


@pytest.fixture()
def customers():
    return [
        _customer("CN000001", "Kim Coates", "littleton", rha=300),
        _customer("CN000002", "Kaiti Green", "castle-rock", daxxify=100, skin_pen=50, promo=True),
        _customer("CN000003", "Kim Coates", "castle-rock", skin_pen=200),
        _customer("CN000004", "Kim Coates", "littleton", daxxify=10),
    ]


def test_customers_by_territory_partitions_in_order(customers):
    groups = customers_by_territory(customers)
    assert list(groups) == ["littleton", "castle-rock"]
    assert [c.customer_number for c in groups["littleton"]] == ["CN000001", "CN000004"]
    assert sum(len(v) for v in groups.values()) == len(customers)


def test_customers_by_sales_rep(customers):
    groups = customers_by_sales_rep(customers)
    assert list(groups) == ["Kim Coates", "Kaiti Green"]
    assert len(groups["Kim Coates"]) == 3


def test_territory_stats(customers):
    stats = territory_stats(customers)

    cr = stats["castle-rock"]
    assert cr.customer_count == 2
    assert cr.total_sales == 350
    assert cr.q3_promo_targets == 1
    assert cr.top_product == "SkinPen"

    lt = stats["littleton"]
    assert lt.customer_count == 2
    assert lt.total_sales == 310
    assert lt.top_product == "RHA"

    assert stats["castle-rock"].to_dict() == {
        "customerCount": 2,
        "totalSales": 350,
        "q3PromoTargets": 1,
        "topProduct": "SkinPen",
    }


def test_territory_stats_empty():
    assert territory_stats([]) == {}


class TestTopProduct:
    def test_ties_resolve_in_brand_order(self):
        assert top_product([_customer("CN1", "Kim Coates", "littleton", daxxify=5, rha=5)]) == "DAXXIFY"
        assert top_product([_customer("CN1", "Kim Coates", "littleton", rha=5, skin_pen=5)]) == "RHA"

    def test_no_sales_is_daxxify(self):
        assert top_product([]) == "DAXXIFY"
        assert top_product([_customer("CN1", "Kim Coates", "littleton")]) == "DAXXIFY"


def test_sales_representatives(customers):
    reps = sales_representatives(customers)

    assert [r.name for r in reps] == ["Kim Coates", "Kaiti Green"]
    kim = reps[0]
    assert [c.customer_number for c in kim.customers] == ["CN000001", "CN000003", "CN000004"]
    assert kim.total_sales == 510
    assert kim.territories == ["littleton", "castle-rock"]

    d = kim.to_dict()
    assert d == {"name": "Kim Coates", "customerCount": 3, "totalSales": 510, "territories": ["littleton", "castle-rock"]}
    assert len(kim.to_dict(include_customers=True)["customers"]) == 3


def test_territory_summary_covers_every_territory(customers):
    rows = territory_summary(territory_stats(customers), TERRITORIES)

    assert [r["territory"] for r in rows] == list(TERRITORIES)
    by_key = {r["territory"]: r for r in rows}
    assert by_key["castle-rock"]["name"] == "Castle Rock"
    assert by_key["castle-rock"]["customerCount"] == 2
    assert by_key["highlands-ranch"]["customerCount"] == 0
    assert by_key["highlands-ranch"]["totalSales"] == 0


class _FixedParser:
    def __init__(self):
        self.batches = []

    def __call__(self, text):
        data = self.batches.pop(0)
        return ParseResult(data=data, errors=[], meta=ParseMeta(total_rows=len(data), valid_rows=len(data)))


class TestTerritoryAnalytics:
    """Memoized views follow the store version"""

    def test_recomputes_after_replace(self, customers):
        parser = _FixedParser()
        parser.batches = [customers, customers[:1]]
        store = CustomerStore(parser=parser)
        analytics = TerritoryAnalytics(store)

        assert analytics.territory_stats() == {}

        store.load("first")
        first = analytics.territory_stats()
        assert first["castle-rock"].customer_count == 2
        assert analytics.territory_stats() is first

        store.load("second")
        second = analytics.territory_stats()
        assert second is not first
        assert list(second) == ["littleton"]
        assert [c.customer_number for c in analytics.get_customers_by_territory("littleton")] == ["CN000001"]
        assert analytics.get_customers_by_territory("castle-rock") == []

    def test_clear_resets_views(self, customers):
        parser = _FixedParser()
        parser.batches = [customers]
        store = CustomerStore(parser=parser)
        analytics = TerritoryAnalytics(store)

        store.load("x")
        assert len(analytics.sales_representatives()) == 2
        store.clear()
        assert analytics.sales_representatives() == []
        assert analytics.customers_by_sales_rep() == {}

    def test_failed_load_keeps_views(self, customers):
        parser = _FixedParser()
        parser.batches = [customers, []]
        store = CustomerStore(parser=parser)
        analytics = TerritoryAnalytics(store)

        store.load("x")
        before = analytics.customers_by_territory()
        with pytest.raises(DatasetLoadError):
            store.load("empty")
        assert analytics.customers_by_territory() is before

    def test_result_from_replaced_dataset_is_not_cached_as_current(self, customers):
        parser = _FixedParser()
        parser.batches = [customers[:1], customers[2:3]]
        store = CustomerStore(parser=parser)
        analytics = TerritoryAnalytics(store)

        store.load("first")
        assert list(analytics.customers_by_territory()) == ["littleton"]

        def stats_while_dataset_replaced(snapshot_customers):
            # another request swaps the dataset and reads a view mid-computation
            store.load("second")
            analytics.customers_by_sales_rep()
            return territory_stats(snapshot_customers)

        stale = analytics._memo("territory_stats", stats_while_dataset_replaced)
        assert list(stale) == ["littleton"]

        assert store.version == 2
        assert list(analytics.territory_stats()) == ["castle-rock"]
        assert list(analytics.customers_by_territory()) == ["castle-rock"]
