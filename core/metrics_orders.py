from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from core.filters import OrderFilters, parse_order_dates
from core.models import Dataset, OrderRecord


def _matches(order: OrderRecord, needle: str) -> bool:
    if needle in order.id.lower():
        return True
    return any(needle in i.product.lower() or needle in i.variant.lower() for i in order.items)


def filter_orders(orders: List[OrderRecord], filters: OrderFilters) -> List[OrderRecord]:
    out = list(orders)
    if filters.search_term:
        needle = filters.search_term.lower()
        out = [o for o in out if _matches(o, needle)]
    if filters.min_amount is not None:
        out = [o for o in out if o.total >= filters.min_amount]
    if filters.max_amount is not None:
        out = [o for o in out if o.total <= filters.max_amount]

    reverse = filters.sort_order == "desc"
    if filters.sort_by == "id":
        return sorted(out, key=lambda o: o.id.lower(), reverse=reverse)
    if filters.sort_by == "total":
        return sorted(out, key=lambda o: o.total, reverse=reverse)

    # unparseable dates sort last either way
    stamps = parse_order_dates(o.date for o in out)
    keyed = list(zip(out, stamps.tolist()))
    dated = [(o, ts) for o, ts in keyed if not pd.isna(ts)]
    undated = [o for o, ts in keyed if pd.isna(ts)]
    dated.sort(key=lambda pair: pair[1], reverse=reverse)
    return [o for o, _ in dated] + undated


def compute_orders(dataset: Optional[Dataset], filters: Optional[OrderFilters] = None) -> Dict[str, Any]:
    filters = filters or OrderFilters()
    if dataset is None:
        return {"filters": asdict(filters), "count": 0, "orders": []}
    orders = filter_orders(dataset.orders, filters)
    rows = []
    for o in orders:
        row = o.to_dict()
        row["itemCount"] = o.item_count
        rows.append(row)
    return {"filters": asdict(filters), "count": len(rows), "orders": rows}
