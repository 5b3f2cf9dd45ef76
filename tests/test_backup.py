import json
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.backup import backup_filename, export_backup, import_backup
from core.cost_settings import SettingsStore
from core.errors import BackupImportRejected


def test_export_then_import_restores_dataset_and_settings(sized_dataset):
    settings = SettingsStore(
        cost_settings={"Shirt": 4.0},
        size_overrides={"Shirt": {"Shirt - Small - Small": 3.0}},
        size_costing_enabled=True,
    )
    now = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    document = export_backup(sized_dataset, settings, now=now)
    backup = import_backup(json.dumps(document))

    assert document["exportDate"] == "2024-03-01T12:00:00.000Z"
    assert backup.dataset == sized_dataset
    assert backup.settings_patch() == {
        "costSettings": {"Shirt": 4.0},
        "sizeOverrides": {"Shirt": {"Shirt - Small - Small": 3.0}},
        "sizeCostingEnabled": True,
    }


def test_import_without_optional_settings():
    backup = import_backup({"data": {"orders": [], "products": []}, "costSettings": {"Mug": 1}})

    assert backup.dataset.is_empty
    assert backup.settings_patch() == {"costSettings": {"Mug": 1}}


@pytest.mark.parametrize(
    "document",
    [
        "{not json",
        "[]",
        json.dumps({"data": {"orders": []}}),
        json.dumps({"costSettings": {}}),
    ],
)
def test_invalid_backup_is_rejected(document):
    with pytest.raises(BackupImportRejected):
        import_backup(document)


def test_backup_filename():
    assert backup_filename(datetime(2024, 3, 1, tzinfo=timezone.utc)) == "shopify-analytics-backup-2024-03-01.json"


@pytest.mark.parametrize(
    "data",
    [
        {"orders": ["x"], "products": []},
        {"orders": [{"id": "#1", "items": ["x"]}], "products": []},
        {"orders": [], "products": [42]},
    ],
)
def test_backup_entries_that_are_not_objects_are_rejected(data):
    with pytest.raises(BackupImportRejected):
        import_backup({"data": data})
