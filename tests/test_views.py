import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.cost_settings import SettingsStore
from core.filters import DateFilter, OrderFilters, ProductViewOptions
from core.metrics_analytics import compute_analytics
from core.metrics_orders import compute_orders
from core.metrics_overview import compute_overview
from core.metrics_products import compute_products


def test_overview_without_data():
    payload = compute_overview(SettingsStore(), None)

    assert payload["has_data"] is False
    assert payload["total_profit"] == 0.0


def test_overview_kpis_and_rankings(sized_dataset):
    settings = SettingsStore(cost_settings={"Shirt": 4.0, "Mug": 2.0, "Sticker": 2.0})

    payload = compute_overview(settings, sized_dataset)

    assert payload["summary"]["totalOrders"] == 3
    assert payload["summary"]["totalRevenue"] == pytest.approx(71.0)
    assert payload["best_sellers"][0]["name"] == "Shirt"
    # sticker sells below cost so it is not in the margin ranking
    assert [p["name"] for p in payload["top_profit_margin"]] == ["Mug", "Shirt"]
    assert payload["revenue_trend"] is None
    assert payload["charts"] == {}


def test_overview_trend_when_date_filter_is_on(sized_dataset):
    filt = DateFilter(start_date="2024-02-01", end_date="2024-02-28", enabled=True)

    payload = compute_overview(SettingsStore(), sized_dataset, filt)

    assert payload["summary"]["totalOrders"] == 2
    assert payload["revenue_trend"] == [
        {"date": "2024-02-10", "revenue": 36.0},
        {"date": "2024-02-12", "revenue": 5.0},
    ]
    assert "revenue_trend" in payload["charts"]


def test_products_expand_size_groups_by_default(sized_dataset):
    payload = compute_products(sized_dataset, ProductViewOptions(sort_by="name", sort_order="asc"))

    names = [(r["name"], r["variant"]) for r in payload["products"]]
    assert names == [("Mug", "Default"), ("Shirt - Large", "Large"), ("Shirt - Small", "Small"), ("Sticker", "Default")]
    shirts = [r for r in payload["products"] if r["name"].startswith("Shirt")]
    assert sum(r["totalQuantity"] for r in shirts) == 5
    assert payload["products"][0]["rank"] == 1


def test_products_by_size_and_by_name(sized_dataset):
    by_size = compute_products(sized_dataset, ProductViewOptions(combine_mode="by-size"))
    assert by_size["count"] == 3
    assert by_size["products"][0]["name"] == "Shirt"
    assert by_size["products"][0]["variantCount"] == 2

    by_name = compute_products(sized_dataset, ProductViewOptions(combine_mode="by-name", sort_by="quantity"))
    assert by_name["products"][0]["variant"] == "All Variants"


def test_product_ratios_avoid_division_by_zero(sized_dataset):
    rows = compute_products(sized_dataset, ProductViewOptions(combine_mode="by-size"))["products"]
    sticker = next(r for r in rows if r["name"] == "Sticker")

    assert sticker["avgPrice"] == pytest.approx(1.0)
    assert sticker["avgPerOrder"] == pytest.approx(5.0)


def test_orders_search_and_amount_filters(sized_dataset):
    payload = compute_orders(sized_dataset, OrderFilters(search_term="shirt", min_amount=31))

    assert [o["id"] for o in payload["orders"]] == ["#1002"]
    assert payload["orders"][0]["itemCount"] == 3


def test_orders_sorted_by_total(sized_dataset):
    payload = compute_orders(sized_dataset, OrderFilters(sort_by="total", sort_order="asc"))

    assert [o["id"] for o in payload["orders"]] == ["#1003", "#1001", "#1002"]


def test_orders_default_sort_is_newest_first(sized_dataset):
    payload = compute_orders(sized_dataset)

    assert [o["id"] for o in payload["orders"]] == ["#1003", "#1002", "#1001"]


def test_analytics_payload(sized_dataset):
    payload = compute_analytics(SettingsStore(cost_settings={"Shirt": 4.0}), sized_dataset)

    assert payload["has_data"] is True
    assert [m["month"] for m in payload["monthly_trend"]] == ["2024-01", "2024-02"]
    assert payload["avg_order_value"] == pytest.approx(71.0 / 3)
    assert payload["avg_items_per_order"] == pytest.approx(11 / 3)
    assert payload["top_performers"][0]["name"] == "Shirt"
    assert payload["top_performers"][0]["totalCost"] == pytest.approx(20.0)
    assert len(payload["best_days"]) == 3
    assert payload["top_sizes"] == [{"size": "Unknown", "quantity": 11}]
    assert payload["profitable_products"] == 3
    assert "monthly_revenue" in payload["charts"]


def test_analytics_without_orders():
    assert compute_analytics(SettingsStore(), None) == {"has_data": False}
