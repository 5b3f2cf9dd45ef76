import sys
import threading
import time
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from conftest import shopify_csv
from core.errors import PersistenceFailure
from core.store import FallbackStore, InMemoryStore, JsonFileStore, build_store
from core.uploads import UploadService


class BrokenStore(InMemoryStore):
    def save_dataset(self, user_key, dataset):
        raise PersistenceFailure("disk full")

    def load_dataset(self, user_key):
        raise PersistenceFailure("disk unreadable")


def test_json_file_store_round_trip(tmp_path, sized_dataset):
    store = JsonFileStore(tmp_path)

    assert store.load_dataset("shop@example.com") is None
    store.save_dataset("shop@example.com", sized_dataset)

    assert store.load_dataset("shop@example.com") == sized_dataset
    assert (tmp_path / "orders" / "shop_example.com.json").exists()

    store.delete_dataset("shop@example.com")
    assert store.load_dataset("shop@example.com") is None


def test_settings_are_saved_as_partial_updates(tmp_path):
    store = JsonFileStore(tmp_path)

    store.save_settings("u1", {"costSettings": {"Shirt": 4}})
    settings = store.save_settings("u1", {"darkMode": False})

    assert settings.cost_for("Shirt") == 4.0
    assert settings.dark_mode is False
    assert store.load_settings("u1") == settings


def test_corrupt_file_raises_persistence_failure(tmp_path):
    store = JsonFileStore(tmp_path)
    (tmp_path / "orders").mkdir()
    (tmp_path / "orders" / "u1.json").write_text("{oops", encoding="utf-8")

    with pytest.raises(PersistenceFailure):
        store.load_dataset("u1")


def test_fallback_store_uses_secondary_on_failure(sized_dataset):
    secondary = InMemoryStore()
    store = FallbackStore(BrokenStore(), secondary)

    store.save_dataset("u1", sized_dataset)

    assert secondary.load_dataset("u1") == sized_dataset
    assert store.load_dataset("u1") == sized_dataset


def test_build_store_backends(tmp_path):
    assert isinstance(build_store("memory", tmp_path), InMemoryStore)
    assert isinstance(build_store("file", tmp_path), FallbackStore)


def test_upload_merges_into_existing_dataset():
    service = UploadService(InMemoryStore())
    service.ingest("u1", "a.csv", shopify_csv("#1,2024-01-01,10.00,Widget,,1,10.00"))

    outcome = service.ingest(
        "u1",
        "b.csv",
        shopify_csv("#1,2024-01-01,10.00,Widget,,1,10.00", "#2,2024-01-02,20.00,Widget,,2,10.00").encode("utf-8"),
    )

    assert outcome.merge.to_dict() == {"new_orders": 1, "duplicate_orders": 1}
    assert [o.id for o in outcome.dataset.orders] == ["#1", "#2"]
    assert service.store.load_dataset("u1") == outcome.dataset


def test_upload_replace_discards_previous_dataset():
    service = UploadService(InMemoryStore())
    service.ingest("u1", "a.csv", shopify_csv("#1,2024-01-01,10.00,Widget,,1,10.00"))

    outcome = service.ingest("u1", "b.csv", shopify_csv("#9,2024-01-02,20.00,Mug,,2,10.00"), mode="replace")

    assert [o.id for o in service.store.load_dataset("u1").orders] == ["#9"]
    assert outcome.merge.new_orders == 1


def test_failed_upload_leaves_stored_dataset_unchanged():
    service = UploadService(InMemoryStore())
    first = service.ingest("u1", "a.csv", shopify_csv("#1,2024-01-01,10.00,Widget,,1,10.00"))

    rejected = service.ingest("u1", "b.csv", "Name,Qty\n#2,1\n")
    empty = service.ingest("u1", "c.csv", shopify_csv(",2024-01-01,10.00,Widget,,1,10.00"))

    assert rejected.result.status == "schema_invalid"
    assert empty.result.status == "no_rows"
    assert rejected.merge is None
    assert service.store.load_dataset("u1") == first.dataset


def test_upload_decodes_bom_prefixed_bytes():
    service = UploadService(InMemoryStore())
    content = "\ufeff" + shopify_csv("#1,2024-01-01,10.00,Widget,,1,10.00")

    outcome = service.ingest("u1", "a.csv", content.encode("utf-8"))

    assert outcome.result.ok
    assert outcome.result.mapping.column("order_id") == "Name"


def test_clear_keeps_settings_and_remove_all_drops_them(sized_dataset):
    store = InMemoryStore()
    service = UploadService(store)
    store.save_dataset("u1", sized_dataset)
    store.save_settings("u1", {"costSettings": {"Shirt": 4}})

    service.clear("u1")
    assert store.load_dataset("u1") is None
    assert store.load_settings("u1").cost_for("Shirt") == 4.0

    service.remove_all("u1")
    assert store.load_settings("u1").cost_settings == {}


def test_restore_persists_backup(sized_dataset):
    store = InMemoryStore()
    service = UploadService(store)

    service.restore("u1", {"data": sized_dataset.to_dict(), "sizeCostingEnabled": True})

    assert store.load_dataset("u1") == sized_dataset
    assert store.load_settings("u1").size_costing_enabled is True


class SlowStore(InMemoryStore):
    def load_dataset(self, user_key):
        time.sleep(0.05)
        return super().load_dataset(user_key)


def test_concurrent_uploads_for_one_user_keep_both_files():
    service = UploadService(SlowStore())
    files = [
        shopify_csv("#1,2024-01-01,10.00,Widget,,1,10.00"),
        shopify_csv("#2,2024-01-02,20.00,Gadget,,2,10.00"),
    ]
    threads = [threading.Thread(target=service.ingest, args=("u1", f"{i}.csv", text)) for i, text in enumerate(files)]

    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = service.store.load_dataset("u1")
    assert sorted(o.id for o in stored.orders) == ["#1", "#2"]
    assert stored.summary.total_products == 2


def test_lock_table_does_not_grow_with_user_keys():
    service = UploadService(InMemoryStore())

    for n in range(5):
        service.ingest(f"user-{n}", "a.csv", shopify_csv("#1,2024-01-01,10.00,Widget,,1,10.00"))

    assert len(service._locks) == 0
