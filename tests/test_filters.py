import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from conftest import shopify_csv
from core.data import parse_orders_csv
from core.filters import (
    DateFilter,
    filter_dataset_by_date,
    normalize_date_filter,
    normalize_order_filters,
    normalize_product_view,
)


def test_disabled_or_incomplete_filter_returns_dataset_unchanged(sized_dataset):
    assert filter_dataset_by_date(sized_dataset, DateFilter()) is sized_dataset
    assert filter_dataset_by_date(sized_dataset, DateFilter(start_date="2024-01-01", enabled=True)) is sized_dataset


def test_date_range_is_inclusive_of_whole_end_day():
    dataset = parse_orders_csv(
        shopify_csv(
            "#1,2024-01-01T00:00:00Z,10.00,Widget,,1,10.00",
            "#2,2024-01-31T23:30:00Z,20.00,Widget,,1,20.00",
            "#3,2024-02-01T00:00:01Z,30.00,Widget,,1,30.00",
            "#4,not a date,40.00,Widget,,1,40.00",
        )
    ).dataset

    view = filter_dataset_by_date(dataset, DateFilter(start_date="2024-01-01", end_date="2024-01-31", enabled=True))

    assert [o.id for o in view.orders] == ["#1", "#2"]
    [product] = view.products
    assert product.total_quantity == 2
    assert product.orders == ["#1", "#2"]
    assert view.summary.total_revenue == 30.0


def test_filtered_products_are_regrouped_by_size(sized_dataset):
    view = filter_dataset_by_date(sized_dataset, DateFilter(start_date="2024-02-01", end_date="2024-02-28", enabled=True))

    assert [p.key for p in view.products] == ["Shirt - Default", "Sticker - Default"]
    assert view.products[0].total_quantity == 3


def test_normalizers_fall_back_to_defaults():
    assert normalize_date_filter({"start_date": " 2024-01-01 ", "enabled": 1}) == DateFilter(start_date="2024-01-01", enabled=True)

    orders = normalize_order_filters({"sort_by": "bogus", "sort_order": "ASC", "min_amount": "", "max_amount": "50"})
    assert orders.sort_by == "date"
    assert orders.sort_order == "asc"
    assert orders.min_amount is None
    assert orders.max_amount == 50.0

    view = normalize_product_view({"combine_mode": "by-name"})
    assert view.combine_mode == "by-name"
    assert view.sort_by == "revenue"
