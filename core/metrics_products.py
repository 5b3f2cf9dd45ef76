from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from core.filters import DateFilter, ProductViewOptions, filter_dataset_by_date
from core.models import Dataset, ProductRecord, unique_in_order
from core.sizes import split_original_variant


def expand_variants(products: List[ProductRecord]) -> List[Dict[str, Any]]:
    """Split size-grouped products back into one row per original variant.

    Per-variant figures are an even split of the group totals; the quantity
    remainder goes to the first variant so the rows still add up.
    """
    rows: List[Dict[str, Any]] = []
    for product in products:
        variants = product.original_variants
        if len(variants) <= 1:
            rows.append(_row(product.name, product.variant, product.total_quantity, product.total_revenue, product.orders, variants))
            continue
        count = len(variants)
        qty_each, remainder = divmod(product.total_quantity, count)
        orders_each = len(product.orders) // count
        for idx, original in enumerate(variants):
            name, variant = split_original_variant(original, product.name, idx)
            rows.append(
                _row(
                    name,
                    variant,
                    qty_each + (remainder if idx == 0 else 0),
                    product.total_revenue / count,
                    product.orders[:orders_each],
                    [original],
                )
            )
    return rows


def group_by_name(products: List[ProductRecord]) -> List[Dict[str, Any]]:
    grouped: Dict[str, Dict[str, Any]] = {}
    for product in products:
        row = grouped.get(product.name)
        if row is None:
            row = _row(product.name, "All Variants", 0, 0.0, [], [])
            grouped[product.name] = row
        row["totalQuantity"] += product.total_quantity
        row["totalRevenue"] += product.total_revenue
        row["orders"] = unique_in_order([*row["orders"], *product.orders])
        variants = product.original_variants or [product.variant]
        row["originalVariants"] = unique_in_order([*row["originalVariants"], *variants])
    return list(grouped.values())


def _row(name: str, variant: str, quantity: int, revenue: float, orders: List[str], variants: List[str]) -> Dict[str, Any]:
    return {
        "name": name,
        "variant": variant,
        "totalQuantity": quantity,
        "totalRevenue": revenue,
        "orders": list(orders),
        "originalVariants": list(variants),
    }


def _with_ratios(row: Dict[str, Any]) -> Dict[str, Any]:
    qty = row["totalQuantity"]
    n_orders = len(row["orders"])
    row["orderCount"] = n_orders
    row["avgPrice"] = row["totalRevenue"] / qty if qty else None
    row["avgPerOrder"] = qty / n_orders if n_orders else None
    row["variantCount"] = len(row["originalVariants"])
    return row


_SORT_KEYS = {
    "name": lambda r: r["name"].lower(),
    "quantity": lambda r: r["totalQuantity"],
    "orders": lambda r: len(r["orders"]),
    "revenue": lambda r: r["totalRevenue"],
}


def product_rows(dataset: Dataset, options: ProductViewOptions) -> List[Dict[str, Any]]:
    if options.combine_mode == "none":
        rows = expand_variants(dataset.products)
    elif options.combine_mode == "by-name":
        rows = group_by_name(dataset.products)
    else:
        rows = [
            _row(p.name, p.variant, p.total_quantity, p.total_revenue, p.orders, p.original_variants)
            for p in dataset.products
        ]
    key = _SORT_KEYS.get(options.sort_by, _SORT_KEYS["revenue"])
    rows = sorted(rows, key=key, reverse=options.sort_order == "desc")
    return [_with_ratios(r) for r in rows]


def compute_products(
    dataset: Optional[Dataset],
    options: Optional[ProductViewOptions] = None,
    date_filter: Optional[DateFilter] = None,
) -> Dict[str, Any]:
    options = options or ProductViewOptions()
    filt = date_filter or DateFilter()
    if dataset is None:
        return {"filters": asdict(filt), "options": asdict(options), "count": 0, "products": []}
    view = filter_dataset_by_date(dataset, filt)
    rows = product_rows(view, options)
    for rank, row in enumerate(rows, start=1):
        row["rank"] = rank
    return {"filters": asdict(filt), "options": asdict(options), "count": len(rows), "products": rows}
