from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

from core.config import DEFAULT_VARIANT
from core.sizes import product_key


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    if out != out:
        return default
    return out


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def unique_in_order(values: Iterable[str]) -> List[str]:
    seen: set = set()
    out: List[str] = []
    for v in values:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


@dataclass(frozen=True)
class OrderItem:
    product: str
    variant: str
    quantity: int
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"product": self.product, "variant": self.variant, "quantity": self.quantity, "price": self.price}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OrderItem":
        return cls(
            product=str(raw.get("product") or ""),
            variant=str(raw.get("variant") or DEFAULT_VARIANT),
            quantity=_as_int(raw.get("quantity"), 0),
            price=_as_float(raw.get("price")),
        )


@dataclass(frozen=True)
class OrderRecord:
    id: str
    total: float
    date: str
    items: List[OrderItem] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "total": self.total,
            "date": self.date,
            "items": [i.to_dict() for i in self.items],
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OrderRecord":
        return cls(
            id=str(raw.get("id") or ""),
            total=_as_float(raw.get("total")),
            date=str(raw.get("date") or ""),
            items=[OrderItem.from_dict(i) for i in (raw.get("items") or [])],
        )


@dataclass(frozen=True)
class ProductRecord:
    name: str
    variant: str
    display_name: str
    total_quantity: int = 0
    total_revenue: float = 0.0
    orders: List[str] = field(default_factory=list)
    original_variants: List[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return product_key(self.name, self.variant)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "variant": self.variant,
            "displayName": self.display_name,
            "totalQuantity": self.total_quantity,
            "totalRevenue": self.total_revenue,
            "orders": list(self.orders),
            "originalVariants": list(self.original_variants),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ProductRecord":
        name = str(raw.get("name") or "")
        return cls(
            name=name,
            variant=str(raw.get("variant") or DEFAULT_VARIANT),
            display_name=str(raw.get("displayName") or name),
            total_quantity=_as_int(raw.get("totalQuantity"), 0),
            total_revenue=_as_float(raw.get("totalRevenue")),
            orders=unique_in_order(str(o) for o in (raw.get("orders") or [])),
            original_variants=unique_in_order(str(v) for v in (raw.get("originalVariants") or [])),
        )


@dataclass(frozen=True)
class Summary:
    total_orders: int = 0
    total_products: int = 0
    total_revenue: float = 0.0
    total_items: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalOrders": self.total_orders,
            "totalProducts": self.total_products,
            "totalRevenue": self.total_revenue,
            "totalItems": self.total_items,
        }


def summarize(orders: List[OrderRecord], products: List[ProductRecord]) -> Summary:
    return Summary(
        total_orders=len(orders),
        total_products=len(products),
        total_revenue=sum((o.total or 0.0) for o in orders),
        total_items=sum((p.total_quantity or 0) for p in products),
    )


@dataclass(frozen=True)
class Dataset:
    """Aggregated orders and products; ``summary`` is always derived."""

    orders: List[OrderRecord] = field(default_factory=list)
    products: List[ProductRecord] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)

    @classmethod
    def build(cls, orders: List[OrderRecord], products: List[ProductRecord]) -> "Dataset":
        return cls(orders=list(orders), products=list(products), summary=summarize(orders, products))

    @classmethod
    def empty(cls) -> "Dataset":
        return cls.build([], [])

    @property
    def is_empty(self) -> bool:
        return not self.orders and not self.products

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orders": [o.to_dict() for o in self.orders],
            "products": [p.to_dict() for p in self.products],
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Dataset":
        orders = [OrderRecord.from_dict(o) for o in (raw.get("orders") or [])]
        products = [ProductRecord.from_dict(p) for p in (raw.get("products") or [])]
        return cls.build(orders, products)
