from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd

from core.charts import monthly_revenue_chart
from core.cost_settings import SettingsStore
from core.metrics_overview import orders_frame
from core.metrics_profit import calculate_profits
from core.models import Dataset
from core.sizes import detect_size_label

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
TREND_MONTHS = 6


def monthly_trend(df: pd.DataFrame, months: int = TREND_MONTHS) -> pd.DataFrame:
    dated = df.dropna(subset=["date"])
    if dated.empty:
        return pd.DataFrame(columns=["month", "revenue", "orders"])
    monthly = (
        dated.assign(month=lambda d: d["date"].dt.strftime("%Y-%m"))
        .groupby("month")
        .agg(revenue=("total", "sum"), orders=("id", "count"))
        .reset_index()
        .sort_values("month")
    )
    return monthly.tail(months).reset_index(drop=True)


def weekday_revenue(df: pd.DataFrame) -> List[Dict[str, Any]]:
    dated = df.dropna(subset=["date"])
    totals = dated.groupby(dated["date"].dt.dayofweek)["total"].sum() if not dated.empty else pd.Series(dtype=float)
    rows = [{"day": DAY_NAMES[i], "revenue": float(totals.get(i, 0.0))} for i in range(7)]
    return sorted(rows, key=lambda r: r["revenue"], reverse=True)


def size_distribution(dataset: Dataset) -> pd.DataFrame:
    records = [
        {"size": detect_size_label(item.product, item.variant), "quantity": item.quantity}
        for order in dataset.orders
        for item in order.items
    ]
    if not records:
        return pd.DataFrame(columns=["size", "quantity"])
    return (
        pd.DataFrame(records)
        .groupby("size", sort=False)["quantity"]
        .sum()
        .reset_index()
        .sort_values("quantity", ascending=False, kind="stable")
    )


def compute_analytics(settings: SettingsStore, dataset: Optional[Dataset], *, top_n: int = 10) -> Dict[str, Any]:
    if dataset is None or not dataset.orders:
        return {"has_data": False}

    df = orders_frame(dataset.orders)
    summary = dataset.summary
    report = calculate_profits(dataset, settings)

    performers = sorted(report.products, key=lambda p: p.product.total_revenue, reverse=True)
    top_performers = []
    for p in performers[:top_n]:
        row = p.to_dict()
        qty = p.product.total_quantity
        row["avgPrice"] = p.product.total_revenue / qty if qty else None
        row["avgPerOrder"] = qty / len(p.product.orders) if p.product.orders else None
        top_performers.append(row)

    margins = [p.profit_margin for p in report.products]
    monthly = monthly_trend(df)
    sizes = size_distribution(dataset)

    charts: Dict[str, Any] = {}
    if not monthly.empty:
        charts["monthly_revenue"] = monthly_revenue_chart(monthly)

    return {
        "has_data": True,
        "monthly_trend": monthly.to_dict(orient="records"),
        "avg_order_value": summary.total_revenue / summary.total_orders if summary.total_orders else None,
        "avg_items_per_order": float(df["item_count"].mean()) if not df.empty else None,
        "top_performers": top_performers,
        "top_sizes": sizes.head(5).to_dict(orient="records"),
        "best_days": weekday_revenue(df)[:3],
        "profitable_products": sum(1 for p in report.products if p.profit > 0),
        "total_profit": report.total_profit,
        "avg_profit_margin": sum(margins) / len(margins) if margins else 0.0,
        "total_products": summary.total_products,
        "total_orders": summary.total_orders,
        "charts": charts,
    }
