from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from core.config import DEFAULT_VARIANT, KEY_SEPARATOR

SIZE_PATTERN = re.compile(
    r"\b("
    r"X{1,3}-?(?:Small|Large)|Extra[ -]?(?:Small|Large)|Small|Medium|Large"
    r"|XXS|XS|XXXL|XXL|XL|\d+XL|S|M|L"
    r")\b",
    re.IGNORECASE,
)

# Used by the size distribution analytics, more permissive than SIZE_PATTERN.
SIZE_LABEL_PATTERN = re.compile(
    r"\b(XXS|XS\/S|XS|S\/M|M\/L|L\/XL|XXXL|XXL|XL|\d+XL|S|M|L)\b",
    re.IGNORECASE,
)
NUMERIC_SIZE_PATTERN = re.compile(r"\b(size\s*)?(\d{1,2})\b", re.IGNORECASE)
ONE_SIZE_PATTERN = re.compile(r"\b(one\s*size|OS|OSFA|free\s*size)\b", re.IGNORECASE)

_EMPTY_BRACKETS = re.compile(r"\(\s*\)|\[\s*\]")
_DANGLING = " -–—/|,:"
_WS = re.compile(r"\s+")


@dataclass(frozen=True)
class SizeIdentity:
    display_name: str
    group_name: str
    display_variant: str
    group_variant: str

    @property
    def group_key(self) -> str:
        return product_key(self.group_name, self.group_variant)

    @property
    def original_variant(self) -> str:
        return f"{self.display_name}{KEY_SEPARATOR}{self.display_variant}"


def product_key(name: str, variant: str) -> str:
    return f"{name}{KEY_SEPARATOR}{variant}"


def strip_sizes(text: str) -> str:
    out = SIZE_PATTERN.sub("", text or "")
    out = _EMPTY_BRACKETS.sub("", out)
    out = _WS.sub(" ", out)
    return out.strip(_DANGLING).strip()


def normalize_product_name(title: str, variant: str) -> SizeIdentity:
    group_name = strip_sizes(title) or title
    group_variant = strip_sizes(variant) or DEFAULT_VARIANT
    return SizeIdentity(
        display_name=title,
        group_name=group_name,
        display_variant=variant,
        group_variant=group_variant,
    )


def split_original_variant(value: str, fallback_name: str, index: int) -> Tuple[str, str]:
    """Split a stored ``"name - variant"`` string back into its parts."""
    name, sep, variant = value.rpartition(KEY_SEPARATOR)
    if not sep:
        return fallback_name, value or f"Variant {index + 1}"
    return name or fallback_name, variant or f"Variant {index + 1}"


def detect_size_label(product: str, variant: str) -> str:
    text = f"{product} {variant}"
    match = SIZE_LABEL_PATTERN.search(text)
    if match:
        return match.group(0).upper()
    numeric: Optional[re.Match] = NUMERIC_SIZE_PATTERN.search(text)
    if numeric:
        return f"Size {numeric.group(2)}"
    if ONE_SIZE_PATTERN.search(text):
        return "One Size"
    return "Unknown"
