import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.data import parse_orders_csv

SHOPIFY_HEADER = "Name,Created at,Total,Lineitem name,Lineitem variant,Lineitem quantity,Lineitem price"


def shopify_csv(*rows: str) -> str:
    return "\n".join([SHOPIFY_HEADER, *rows]) + "\n"


@pytest.fixture
def sized_dataset():
    text = shopify_csv(
        "#1001,2024-01-05T10:00:00Z,30.00,Shirt - Small,Small,2,10.00",
        "#1001,2024-01-05T10:00:00Z,30.00,Mug,,1,10.00",
        "#1002,2024-02-10T15:30:00Z,36.00,Shirt - Large,Large,3,12.00",
        "#1003,2024-02-12T09:00:00Z,5.00,Sticker,,5,1.00",
    )
    result = parse_orders_csv(text, filename="orders.csv")
    assert result.ok
    return result.dataset
