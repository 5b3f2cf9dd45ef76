from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Tuple

from core.models import Dataset, OrderItem, OrderRecord, ProductRecord
from core.rows import SKIP_DUPLICATE, NormalizedRow, SkipStats, duplicate_key, is_blank_row, normalize_row
from core.schema import FieldMapping
from core.sizes import normalize_product_name

logger = logging.getLogger(__name__)


@dataclass
class _OrderAcc:
    id: str
    total: float
    date: str
    items: List[OrderItem] = field(default_factory=list)

    def freeze(self) -> OrderRecord:
        return OrderRecord(id=self.id, total=self.total, date=self.date, items=list(self.items))


@dataclass
class _ProductAcc:
    name: str
    variant: str
    display_name: str
    total_quantity: int = 0
    total_revenue: float = 0.0
    orders: List[str] = field(default_factory=list)
    original_variants: List[str] = field(default_factory=list)
    _seen_orders: set = field(default_factory=set)
    _seen_variants: set = field(default_factory=set)

    def add(self, order_id: str, quantity: int, price: float, original_variant: str) -> None:
        self.total_quantity += quantity
        self.total_revenue += price * quantity
        if original_variant not in self._seen_variants:
            self._seen_variants.add(original_variant)
            self.original_variants.append(original_variant)
        if order_id not in self._seen_orders:
            self._seen_orders.add(order_id)
            self.orders.append(order_id)

    def freeze(self) -> ProductRecord:
        return ProductRecord(
            name=self.name,
            variant=self.variant,
            display_name=self.display_name,
            total_quantity=self.total_quantity,
            total_revenue=self.total_revenue,
            orders=list(self.orders),
            original_variants=list(self.original_variants),
        )


class ProductFold:
    """Ordered product table keyed by the size-stripped group key."""

    def __init__(self) -> None:
        self._products: Dict[str, _ProductAcc] = {}

    def add(self, order_id: str, title: str, variant: str, quantity: int, price: float) -> None:
        ident = normalize_product_name(title, variant)
        acc = self._products.get(ident.group_key)
        if acc is None:
            acc = _ProductAcc(name=ident.group_name, variant=ident.group_variant, display_name=ident.display_name)
            self._products[ident.group_key] = acc
        acc.add(order_id, quantity, price, ident.original_variant)

    def products(self) -> List[ProductRecord]:
        return [acc.freeze() for acc in self._products.values()]


def fold_rows(rows: Iterable[NormalizedRow]) -> Dataset:
    """Fold validated, deduplicated rows into a Dataset.

    The first row of an order fixes its total and date; every row appends
    an item. Products are grouped across sizes.
    """
    orders: Dict[str, _OrderAcc] = {}
    products = ProductFold()
    for row in rows:
        acc = orders.get(row.order_id)
        if acc is None:
            acc = _OrderAcc(id=row.order_id, total=row.total, date=row.order_date)
            orders[row.order_id] = acc
        acc.items.append(OrderItem(product=row.product_title, variant=row.variant, quantity=row.quantity, price=row.price))
        products.add(row.order_id, row.product_title, row.variant, row.quantity, row.price)
    return Dataset.build([o.freeze() for o in orders.values()], products.products())


def rebuild_products(orders: Iterable[OrderRecord]) -> List[ProductRecord]:
    products = ProductFold()
    for order in orders:
        for item in order.items:
            products.add(order.id, item.product, item.variant, item.quantity, item.price)
    return products.products()


def select_rows(raw_rows: Iterable[Mapping[str, object]], mapping: FieldMapping) -> Tuple[List[NormalizedRow], SkipStats]:
    """Drop blank, duplicate and incomplete rows, keeping file order."""
    stats = SkipStats()
    seen: set = set()
    kept: List[NormalizedRow] = []
    for idx, raw in enumerate(raw_rows):
        if is_blank_row(raw):
            stats.blank_rows += 1
            continue
        key = duplicate_key(raw, mapping)
        if key in seen:
            logger.debug("row %d skipped: duplicate entry %s", idx + 1, key)
            stats.record((SKIP_DUPLICATE,))
            continue
        seen.add(key)
        row, reasons = normalize_row(raw, mapping)
        if row is None:
            logger.debug("row %d skipped: %s", idx + 1, ", ".join(reasons))
            stats.record(reasons)
            continue
        stats.processed_rows += 1
        kept.append(row)
    return kept, stats


def aggregate_rows(raw_rows: Iterable[Mapping[str, object]], mapping: FieldMapping) -> Tuple[Dataset, SkipStats]:
    rows, stats = select_rows(raw_rows, mapping)
    return fold_rows(rows), stats
