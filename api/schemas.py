from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class DateFilterModel(BaseModel):
    start_date: str = ""
    end_date: str = ""
    enabled: bool = False


class OrderFiltersModel(BaseModel):
    search_term: str = ""
    sort_by: Literal["date", "id", "total"] = "date"
    sort_order: Literal["asc", "desc"] = "desc"
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None


class ProductViewModel(BaseModel):
    sort_by: Literal["revenue", "quantity", "orders", "name"] = "revenue"
    sort_order: Literal["asc", "desc"] = "desc"
    combine_mode: Literal["none", "by-size", "by-name"] = "none"
    date_filter: DateFilterModel = Field(default_factory=DateFilterModel)


class SettingsPatchModel(BaseModel):
    costSettings: Optional[Dict[str, Any]] = None
    sizeOverrides: Optional[Dict[str, Dict[str, Any]]] = None
    sizeCostingEnabled: Optional[bool] = None
    darkMode: Optional[bool] = None


class CostUpdateModel(BaseModel):
    key: str
    # free-form input; non-numeric values are stored as 0
    value: Any = None


class SizeOverrideModel(BaseModel):
    product: str
    variant: str
    value: Any = None

