from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from core.errors import SchemaValidationFailed

ORDER_ID = "order_id"
PRODUCT_TITLE = "product_title"
QUANTITY = "quantity"
PRICE = "price"
TOTAL = "total"
DATE = "date"
VARIANT = "variant"

# Resolution order matters: a header claimed by an earlier field is not reused.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    ORDER_ID: ("Name", "Order", "Order Number", "Order ID", "#", "Order Name"),
    PRODUCT_TITLE: ("Lineitem name", "Product Title", "Title", "Product Name", "Item Name", "Product"),
    QUANTITY: ("Lineitem quantity", "Quantity", "Qty", "Item Quantity"),
    PRICE: ("Lineitem price", "Price", "Unit Price", "Item Price", "Line Item Price"),
    TOTAL: ("Total", "Order Total", "Line Total", "Amount"),
    DATE: ("Created at", "Date", "Order Date", "Created At"),
    VARIANT: ("Lineitem variant", "Variant", "Product Variant", "Size", "Option"),
}

REQUIRED_FIELDS: Tuple[str, ...] = (ORDER_ID, PRODUCT_TITLE)

FIELD_LABELS: Dict[str, str] = {
    ORDER_ID: "Order ID",
    PRODUCT_TITLE: "Product Name",
    QUANTITY: "Quantity",
    PRICE: "Price",
    TOTAL: "Total",
    DATE: "Date",
    VARIANT: "Variant",
}


@dataclass(frozen=True)
class FieldMapping:
    """Canonical field -> source header. Unresolved fields are absent."""

    columns: Dict[str, str] = field(default_factory=dict)
    headers: List[str] = field(default_factory=list)

    def column(self, name: str) -> Optional[str]:
        return self.columns.get(name)

    def has(self, name: str) -> bool:
        return name in self.columns

    @property
    def missing_required(self) -> List[str]:
        return [f for f in REQUIRED_FIELDS if f not in self.columns]


def _clean_headers(headers: Iterable[object]) -> List[str]:
    out: List[str] = []
    for h in headers:
        if h is None:
            continue
        s = str(h).strip()
        if s:
            out.append(s)
    return out


def _match(aliases: Tuple[str, ...], headers: List[str], claimed: set, *, exact: bool) -> Optional[str]:
    for alias in aliases:
        a = alias.lower()
        for h in headers:
            if h in claimed:
                continue
            hl = h.lower()
            if (hl == a) if exact else (a in hl):
                return h
    return None


def detect_fields(headers: Iterable[object]) -> FieldMapping:
    """Map raw headers onto canonical fields using the prioritized alias table.

    Exact (case-insensitive) matches are resolved for every field first, so a
    file with both ``Name`` and ``Lineitem name`` does not hand the product
    column to the order id. Substring matches fill the remaining fields.
    """
    cleaned = _clean_headers(headers)
    columns: Dict[str, str] = {}
    claimed: set = set()
    for exact in (True, False):
        for name, aliases in FIELD_ALIASES.items():
            if name in columns:
                continue
            hit = _match(aliases, cleaned, claimed, exact=exact)
            if hit is not None:
                columns[name] = hit
                claimed.add(hit)
    return FieldMapping(columns=columns, headers=cleaned)


def validation_message(mapping: FieldMapping) -> str:
    lines = [
        "CSV validation failed. Please ensure your CSV contains order and product information.",
        "",
        f"Looking for order ID in: {', '.join(FIELD_ALIASES[ORDER_ID])}",
        f"Looking for product name in: {', '.join(FIELD_ALIASES[PRODUCT_TITLE])}",
        "",
        f"Found fields in your CSV: {', '.join(mapping.headers) if mapping.headers else 'None'}",
        "",
    ]
    for name in REQUIRED_FIELDS:
        label = FIELD_LABELS[name]
        if mapping.has(name):
            lines.append(f"{label} field found ({mapping.column(name)}).")
        else:
            lines.append(f"No {label.lower()} field found.")
    return "\n".join(lines)


def validate_mapping(mapping: FieldMapping) -> FieldMapping:
    missing = mapping.missing_required
    if missing:
        found = [FIELD_LABELS[f] for f in FIELD_ALIASES if mapping.has(f)]
        raise SchemaValidationFailed(
            validation_message(mapping),
            found=found,
            missing=[FIELD_LABELS[f] for f in missing],
            headers=mapping.headers,
        )
    return mapping
