from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Tuple

from core.config import DEFAULT_VARIANT
from core.schema import DATE, ORDER_ID, PRICE, PRODUCT_TITLE, QUANTITY, TOTAL, VARIANT, FieldMapping

SKIP_DUPLICATE = "duplicate"
SKIP_MISSING_ORDER_ID = "missing_order_id"
SKIP_MISSING_PRODUCT_TITLE = "missing_product_title"

_INT_RE = re.compile(r"^[+-]?\d+")
_FLOAT_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_MONEY_NOISE_RE = re.compile(r"[\s$€£¥]|,(?=\d{3}\b)")


@dataclass(frozen=True)
class NormalizedRow:
    order_id: str
    product_title: str
    quantity: int
    price: float
    total: float
    order_date: str
    variant: str


@dataclass
class SkipStats:
    blank_rows: int = 0
    duplicates: int = 0
    missing_order_id: int = 0
    missing_product_title: int = 0
    # rows missing either required field; a row missing both counts once
    incomplete_rows: int = 0
    processed_rows: int = 0

    @property
    def skipped_rows(self) -> int:
        return self.duplicates + self.incomplete_rows

    def record(self, reasons: Tuple[str, ...]) -> None:
        if SKIP_DUPLICATE in reasons:
            self.duplicates += 1
            return
        if SKIP_MISSING_ORDER_ID in reasons:
            self.missing_order_id += 1
        if SKIP_MISSING_PRODUCT_TITLE in reasons:
            self.missing_product_title += 1
        self.incomplete_rows += 1

    def to_dict(self) -> Dict[str, int]:
        return {
            "processed_rows": self.processed_rows,
            "skipped_rows": self.skipped_rows,
            "blank_rows": self.blank_rows,
            "duplicates": self.duplicates,
            "missing_order_id": self.missing_order_id,
            "missing_product_title": self.missing_product_title,
        }


def _cell(row: Mapping[str, object], column: Optional[str]) -> str:
    if column is None:
        return ""
    value = row.get(column)
    if value is None:
        return ""
    # pandas may hand back NaN for short rows
    if isinstance(value, float) and value != value:
        return ""
    return str(value).strip()


def is_blank_row(row: Mapping[str, object]) -> bool:
    return all(_cell(row, k) == "" for k in row)


def parse_quantity(value: str) -> int:
    match = _INT_RE.match(value.strip()) if value else None
    if not match:
        return 1
    return max(0, int(match.group(0)))


def parse_money(value: str) -> Optional[float]:
    if not value:
        return None
    match = _FLOAT_RE.match(_MONEY_NOISE_RE.sub("", value))
    if not match:
        return None
    return float(match.group(0))


def ingestion_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_row(row: Mapping[str, object], mapping: FieldMapping) -> Tuple[Optional[NormalizedRow], Tuple[str, ...]]:
    """Extract canonical values from one raw row.

    Returns ``(row, ())`` on success or ``(None, reasons)`` when a required
    field is missing. Duplicate detection is the caller's concern since it
    spans rows.
    """
    order_id = _cell(row, mapping.column(ORDER_ID))
    product_title = _cell(row, mapping.column(PRODUCT_TITLE))

    reasons = []
    if not order_id:
        reasons.append(SKIP_MISSING_ORDER_ID)
    if not product_title:
        reasons.append(SKIP_MISSING_PRODUCT_TITLE)
    if reasons:
        return None, tuple(reasons)

    quantity = parse_quantity(_cell(row, mapping.column(QUANTITY)))
    price = parse_money(_cell(row, mapping.column(PRICE)))
    price = max(0.0, price) if price is not None else 0.0
    total = parse_money(_cell(row, mapping.column(TOTAL)))
    if total is None:
        total = price * quantity

    order_date = _cell(row, mapping.column(DATE)) or ingestion_timestamp()
    variant = _cell(row, mapping.column(VARIANT)) or DEFAULT_VARIANT

    normalized = NormalizedRow(
        order_id=order_id,
        product_title=product_title,
        quantity=quantity,
        price=price,
        total=total,
        order_date=order_date,
        variant=variant,
    )
    return normalized, ()


def duplicate_key(row: Mapping[str, object], mapping: FieldMapping) -> str:
    order_id = _cell(row, mapping.column(ORDER_ID))
    product_title = _cell(row, mapping.column(PRODUCT_TITLE))
    variant = _cell(row, mapping.column(VARIANT)) or DEFAULT_VARIANT
    return f"{order_id}-{product_title}-{variant}"
