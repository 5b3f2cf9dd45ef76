from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import pandas as pd

from core.charts import daily_revenue_chart
from core.cost_settings import SettingsStore
from core.filters import DateFilter, filter_dataset_by_date, parse_order_dates
from core.metrics_profit import calculate_profits
from core.models import Dataset, OrderRecord


def orders_frame(orders: List[OrderRecord]) -> pd.DataFrame:
    if not orders:
        return pd.DataFrame(columns=["id", "total", "date", "item_count"])
    df = pd.DataFrame(
        {
            "id": [o.id for o in orders],
            "total": [float(o.total or 0.0) for o in orders],
            "date": parse_order_dates(o.date for o in orders).values,
            "item_count": [o.item_count for o in orders],
        }
    )
    return df


def revenue_trend(orders: List[OrderRecord]) -> pd.DataFrame:
    df = orders_frame(orders).dropna(subset=["date"])
    if df.empty:
        return pd.DataFrame(columns=["date", "revenue"])
    trend = (
        df.assign(date=lambda d: d["date"].dt.normalize())
        .groupby("date")["total"]
        .sum()
        .reset_index()
        .rename(columns={"total": "revenue"})
        .sort_values("date")
    )
    trend["date"] = trend["date"].dt.strftime("%Y-%m-%d")
    return trend


def compute_overview(settings: SettingsStore, dataset: Optional[Dataset], date_filter: Optional[DateFilter] = None) -> Dict[str, Any]:
    filt = date_filter or DateFilter()
    if dataset is None:
        return {"filters": asdict(filt), "has_data": False, "summary": {}, "total_profit": 0.0, "charts": {}}

    view = filter_dataset_by_date(dataset, filt)
    report = calculate_profits(view, settings)

    top_margin = sorted(
        (p for p in report.products if p.profit > 0),
        key=lambda p: p.profit_margin,
        reverse=True,
    )[:5]
    best_sellers = sorted(view.products, key=lambda p: p.total_quantity, reverse=True)[:5]

    trend_rows: Optional[List[Dict[str, Any]]] = None
    charts: Dict[str, Any] = {}
    if filt.active and view.orders:
        trend = revenue_trend(view.orders)
        trend_rows = trend.to_dict(orient="records")
        if not trend.empty:
            charts["revenue_trend"] = daily_revenue_chart(trend)

    return {
        "filters": asdict(filt),
        "has_data": True,
        "summary": view.summary.to_dict(),
        "total_profit": report.total_profit,
        "top_profit_margin": [p.to_dict() for p in top_margin],
        "best_sellers": [p.to_dict() for p in best_sellers],
        "revenue_trend": trend_rows,
        "charts": charts,
    }
