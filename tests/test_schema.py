import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.errors import SchemaValidationFailed
from core.schema import detect_fields, validate_mapping


def test_detect_fields_shopify_export_headers():
    mapping = detect_fields(
        ["Name", "Created at", "Total", "Lineitem name", "Lineitem variant", "Lineitem quantity", "Lineitem price"]
    )

    assert mapping.columns == {
        "order_id": "Name",
        "product_title": "Lineitem name",
        "quantity": "Lineitem quantity",
        "price": "Lineitem price",
        "total": "Total",
        "date": "Created at",
        "variant": "Lineitem variant",
    }


def test_detect_fields_is_case_insensitive():
    mapping = detect_fields(["order id", "PRODUCT TITLE", "qty"])

    assert mapping.column("order_id") == "order id"
    assert mapping.column("product_title") == "PRODUCT TITLE"
    assert mapping.column("quantity") == "qty"


def test_detect_fields_falls_back_to_substring_match():
    mapping = detect_fields(["Order #", "Product Description", "Unit Price (USD)"])

    assert mapping.column("order_id") == "Order #"
    assert mapping.column("product_title") == "Product Description"
    assert mapping.column("price") == "Unit Price (USD)"


def test_detect_fields_does_not_reuse_a_claimed_header():
    mapping = detect_fields(["Name", "Lineitem name"])

    assert mapping.column("order_id") == "Name"
    assert mapping.column("product_title") == "Lineitem name"


def test_detect_fields_strips_and_drops_empty_headers():
    mapping = detect_fields(["  Name ", "", None, "Title"])

    assert mapping.headers == ["Name", "Title"]
    assert mapping.column("order_id") == "Name"


def test_missing_product_title_fails_validation():
    mapping = detect_fields(["Name", "Lineitem quantity", "Lineitem price"])

    with pytest.raises(SchemaValidationFailed) as excinfo:
        validate_mapping(mapping)

    err = excinfo.value
    assert err.missing == ["Product Name"]
    assert err.found == ["Order ID", "Quantity", "Price"]
    assert err.headers == ["Name", "Lineitem quantity", "Lineitem price"]
    assert "No product name field found." in str(err)
    assert "Order ID field found (Name)." in str(err)


def test_validation_passes_with_required_fields():
    mapping = detect_fields(["Order", "Product"])
    assert validate_mapping(mapping) is mapping
