import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.sizes import detect_size_label, normalize_product_name, split_original_variant, strip_sizes


def test_sized_titles_share_a_group_key():
    small = normalize_product_name("Shirt - Small", "Small")
    large = normalize_product_name("Shirt - Large", "Large")

    assert small.group_key == "Shirt - Default"
    assert large.group_key == "Shirt - Default"
    assert small.original_variant == "Shirt - Small - Small"


def test_non_size_variant_is_kept():
    ident = normalize_product_name("Hoodie", "Blue / XL")

    assert ident.group_name == "Hoodie"
    assert ident.group_variant == "Blue"
    assert ident.group_key == "Hoodie - Blue"


def test_strip_sizes_cleans_leftovers():
    assert strip_sizes("Hoodie (XL)") == "Hoodie"
    assert strip_sizes("Tee - Extra Large") == "Tee"
    assert strip_sizes("Mask") == "Mask"
    assert strip_sizes("M") == ""


def test_title_made_only_of_a_size_keeps_the_title():
    ident = normalize_product_name("M", "Default")
    assert ident.group_name == "M"


def test_split_original_variant():
    assert split_original_variant("Shirt - Small - Small", "Shirt", 0) == ("Shirt - Small", "Small")
    assert split_original_variant("Small", "Shirt", 0) == ("Shirt", "Small")
    assert split_original_variant("", "Shirt", 1) == ("Shirt", "Variant 2")


def test_detect_size_label():
    assert detect_size_label("Tee", "xl") == "XL"
    assert detect_size_label("Jeans", "Size 32") == "Size 32"
    assert detect_size_label("Cap", "One Size") == "One Size"
    assert detect_size_label("Mug", "Default") == "Unknown"
