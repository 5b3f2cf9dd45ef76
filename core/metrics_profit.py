from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from core.cost_settings import SettingsStore
from core.filters import DateFilter, filter_dataset_by_date
from core.models import Dataset, ProductRecord, unique_in_order
from core.sizes import strip_sizes


@dataclass(frozen=True)
class ProductProfit:
    product: ProductRecord
    cost: float
    total_cost: float
    profit: float
    profit_margin: float

    def to_dict(self) -> Dict[str, Any]:
        out = self.product.to_dict()
        out.update(
            {
                "key": self.product.key,
                "cost": self.cost,
                "totalCost": self.total_cost,
                "profit": self.profit,
                "profitMargin": self.profit_margin,
            }
        )
        return out


@dataclass(frozen=True)
class ProfitReport:
    total_profit: float
    products: List[ProductProfit]


def profit_margin(profit: float, revenue: float) -> float:
    return (profit / revenue) * 100 if revenue > 0 else 0.0


def _per_size_cost(product: ProductRecord, settings: SettingsStore) -> Tuple[float, float]:
    cost = settings.cost_for(product.key)
    if cost is None:
        cost = settings.cost_for(product.name)
    cost = cost or 0.0
    return cost, cost * product.total_quantity


def _unified_cost(product: ProductRecord, settings: SettingsStore) -> Tuple[float, float]:
    base_cost = settings.cost_for(product.name) or 0.0
    overrides = settings.overrides_for(product.name)
    variants = product.original_variants
    if len(variants) > 1 and overrides:
        # even split across variants, not each variant's real volume
        share = product.total_quantity / len(variants)
        total_cost = sum(overrides.get(v, base_cost) * share for v in variants)
        cost = total_cost / product.total_quantity if product.total_quantity else 0.0
        return cost, total_cost
    return base_cost, base_cost * product.total_quantity


def product_profit(product: ProductRecord, settings: SettingsStore) -> ProductProfit:
    if settings.size_costing_enabled:
        cost, total_cost = _per_size_cost(product, settings)
    else:
        cost, total_cost = _unified_cost(product, settings)
    profit = product.total_revenue - total_cost
    return ProductProfit(
        product=product,
        cost=cost,
        total_cost=total_cost,
        profit=profit,
        profit_margin=profit_margin(profit, product.total_revenue),
    )


def calculate_profits(dataset: Optional[Dataset], settings: SettingsStore) -> ProfitReport:
    if dataset is None:
        return ProfitReport(total_profit=0.0, products=[])
    rows = [product_profit(p, settings) for p in dataset.products]
    return ProfitReport(total_profit=sum(r.profit for r in rows), products=rows)


def products_for_costing(dataset: Dataset, settings: SettingsStore) -> List[Dict[str, Any]]:
    """Rows a cost-entry form needs, one per cost key of the active mode."""
    report = calculate_profits(dataset, settings)
    if settings.size_costing_enabled:
        return [
            {
                "name": r.product.name,
                "variant": r.product.variant,
                "costKey": r.product.key,
                "currentCost": settings.cost_for(r.product.key) or settings.cost_for(r.product.name),
                "originalVariants": list(r.product.original_variants),
                "overrides": {},
                "totalQuantity": r.product.total_quantity,
                "totalRevenue": r.product.total_revenue,
                "totalCost": r.total_cost,
                "profit": r.profit,
                "profitMargin": r.profit_margin,
            }
            for r in report.products
        ]

    grouped: Dict[str, Dict[str, Any]] = {}
    for r in report.products:
        base_name = strip_sizes(r.product.name) or r.product.name
        row = grouped.get(base_name)
        if row is None:
            row = {
                "name": base_name,
                "variant": "All Sizes",
                "costKey": base_name,
                "currentCost": settings.cost_for(base_name),
                "originalVariants": [],
                "overrides": settings.overrides_for(base_name),
                "totalQuantity": 0,
                "totalRevenue": 0.0,
                "totalCost": 0.0,
                "profit": 0.0,
            }
            grouped[base_name] = row
        row["totalQuantity"] += r.product.total_quantity
        row["totalRevenue"] += r.product.total_revenue
        row["totalCost"] += r.total_cost
        row["profit"] += r.profit
        variants = r.product.original_variants or [f"{r.product.name} - {r.product.variant}"]
        row["originalVariants"] = unique_in_order([*row["originalVariants"], *variants])
    for row in grouped.values():
        row["profitMargin"] = profit_margin(row["profit"], row["totalRevenue"])
    return list(grouped.values())


def compute_profit(settings: SettingsStore, dataset: Dataset, date_filter: Optional[DateFilter] = None) -> Dict[str, Any]:
    filt = date_filter or DateFilter()
    view = filter_dataset_by_date(dataset, filt)
    report = calculate_profits(view, settings)
    return {
        "filters": asdict(filt),
        "mode": "per-size" if settings.size_costing_enabled else "unified",
        "total_profit": report.total_profit,
        "products": [p.to_dict() for p in report.products],
        "costing": products_for_costing(view, settings),
    }
