from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

import pandas as pd

from core.aggregate import rebuild_products
from core.models import Dataset

ProductSort = Literal["revenue", "quantity", "orders", "name"]
OrderSort = Literal["date", "id", "total"]
SortOrder = Literal["asc", "desc"]
CombineMode = Literal["none", "by-size", "by-name"]


@dataclass(frozen=True)
class DateFilter:
    start_date: str = ""
    end_date: str = ""
    enabled: bool = False

    @property
    def active(self) -> bool:
        return self.enabled and bool(self.start_date) and bool(self.end_date)


@dataclass(frozen=True)
class OrderFilters:
    search_term: str = ""
    sort_by: OrderSort = "date"
    sort_order: SortOrder = "desc"
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None


@dataclass(frozen=True)
class ProductViewOptions:
    sort_by: ProductSort = "revenue"
    sort_order: SortOrder = "desc"
    combine_mode: CombineMode = "none"


def _as_float(value: object) -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except Exception:
        return None


def _choice(value: object, allowed: tuple, default: str) -> str:
    s = str(value or "").strip().lower()
    return s if s in allowed else default


def normalize_date_filter(raw: Optional[dict]) -> DateFilter:
    raw = raw or {}
    return DateFilter(
        start_date=str(raw.get("start_date") or "").strip(),
        end_date=str(raw.get("end_date") or "").strip(),
        enabled=bool(raw.get("enabled", False)),
    )


def normalize_order_filters(raw: Optional[dict]) -> OrderFilters:
    raw = raw or {}
    return OrderFilters(
        search_term=str(raw.get("search_term") or "").strip(),
        sort_by=_choice(raw.get("sort_by"), ("date", "id", "total"), "date"),  # type: ignore[arg-type]
        sort_order=_choice(raw.get("sort_order"), ("asc", "desc"), "desc"),  # type: ignore[arg-type]
        min_amount=_as_float(raw.get("min_amount")),
        max_amount=_as_float(raw.get("max_amount")),
    )


def normalize_product_view(raw: Optional[dict]) -> ProductViewOptions:
    raw = raw or {}
    return ProductViewOptions(
        sort_by=_choice(raw.get("sort_by"), ("revenue", "quantity", "orders", "name"), "revenue"),  # type: ignore[arg-type]
        sort_order=_choice(raw.get("sort_order"), ("asc", "desc"), "desc"),  # type: ignore[arg-type]
        combine_mode=_choice(raw.get("combine_mode"), ("none", "by-size", "by-name"), "none"),  # type: ignore[arg-type]
    )


def parse_order_dates(values) -> pd.Series:
    """Order date strings -> naive UTC timestamps (NaT when unparseable)."""
    parsed = pd.to_datetime(pd.Series(list(values), dtype="object"), errors="coerce", utc=True, format="mixed")
    return parsed.dt.tz_localize(None)


def filter_dataset_by_date(dataset: Dataset, filt: DateFilter) -> Dataset:
    """Keep orders inside the inclusive date range and re-aggregate products.

    The end date covers its whole day. Orders whose date cannot be parsed
    drop out while the filter is active.
    """
    if not filt.active or dataset is None:
        return dataset
    start = pd.to_datetime(filt.start_date, errors="coerce")
    end = pd.to_datetime(filt.end_date, errors="coerce")
    if pd.isna(start) or pd.isna(end):
        return dataset
    start = start.normalize()
    end = end.normalize() + pd.Timedelta(days=1) - pd.Timedelta(milliseconds=1)

    dates = parse_order_dates(o.date for o in dataset.orders)
    mask = (dates >= start) & (dates <= end)
    orders = [o for o, keep in zip(dataset.orders, mask.tolist()) if keep]
    return Dataset.build(orders, rebuild_products(orders))
