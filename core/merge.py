from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List

from core.models import Dataset, OrderRecord, ProductRecord, unique_in_order


@dataclass(frozen=True)
class MergeStats:
    new_orders: int
    duplicate_orders: int

    def to_dict(self) -> Dict[str, int]:
        return {"new_orders": self.new_orders, "duplicate_orders": self.duplicate_orders}


def merge_datasets(existing: Dataset, new: Dataset) -> Dataset:
    """Fold a freshly aggregated dataset into an existing one.

    Orders already present by id are kept as they are and the incoming copy
    is dropped, line items included. Products sharing a group key have their
    totals summed and their order ids / original variants unioned. Neither
    input is modified.
    """
    orders: List[OrderRecord] = list(existing.orders)
    known_ids = {o.id for o in existing.orders}
    for order in new.orders:
        if order.id in known_ids:
            continue
        known_ids.add(order.id)
        orders.append(order)

    products: List[ProductRecord] = list(existing.products)
    index: Dict[str, int] = {}
    for pos, product in enumerate(products):
        index.setdefault(product.key, pos)
    for incoming in new.products:
        pos = index.get(incoming.key)
        if pos is None:
            index[incoming.key] = len(products)
            products.append(incoming)
            continue
        current = products[pos]
        products[pos] = replace(
            current,
            total_quantity=current.total_quantity + incoming.total_quantity,
            total_revenue=current.total_revenue + incoming.total_revenue,
            orders=unique_in_order([*current.orders, *incoming.orders]),
            original_variants=unique_in_order([*current.original_variants, *incoming.original_variants]),
        )

    return Dataset.build(orders, products)


def merge_stats(existing: Dataset, new: Dataset, merged: Dataset) -> MergeStats:
    added = len(merged.orders) - len(existing.orders)
    return MergeStats(new_orders=added, duplicate_orders=len(new.orders) - added)
