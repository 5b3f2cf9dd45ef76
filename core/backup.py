from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from core.cost_settings import SettingsStore
from core.errors import BackupImportRejected
from core.models import Dataset


@dataclass(frozen=True)
class Backup:
    dataset: Dataset
    cost_settings: Optional[Dict[str, Any]] = None
    size_overrides: Optional[Dict[str, Any]] = None
    size_costing_enabled: Optional[bool] = None

    def settings_patch(self) -> Dict[str, Any]:
        """Settings keys carried by the backup, in persisted form."""
        patch: Dict[str, Any] = {}
        if self.cost_settings is not None:
            patch["costSettings"] = self.cost_settings
        if self.size_overrides is not None:
            patch["sizeOverrides"] = self.size_overrides
        if self.size_costing_enabled is not None:
            patch["sizeCostingEnabled"] = self.size_costing_enabled
        return patch


def backup_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"shopify-analytics-backup-{now.date().isoformat()}.json"


def export_backup(dataset: Dataset, settings: SettingsStore, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "exportDate": now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "data": dataset.to_dict(),
        "costSettings": dict(settings.cost_settings),
        "sizeOverrides": {k: dict(v) for k, v in settings.size_overrides.items()},
        "sizeCostingEnabled": settings.size_costing_enabled,
    }


def import_backup(document: Union[str, bytes, Mapping[str, Any]]) -> Backup:
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as exc:
            raise BackupImportRejected(f"Error reading backup file: {exc}") from exc
    if not isinstance(document, Mapping):
        raise BackupImportRejected("Invalid backup file format")

    data = document.get("data")
    if not isinstance(data, Mapping) or not isinstance(data.get("orders"), list) or not isinstance(data.get("products"), list):
        raise BackupImportRejected("Invalid backup file format")

    try:
        dataset = Dataset.from_dict(data)
    except (AttributeError, TypeError, ValueError) as exc:
        # entries that are not objects
        raise BackupImportRejected("Invalid backup file format") from exc

    cost_settings = document.get("costSettings")
    size_overrides = document.get("sizeOverrides")
    size_costing = document.get("sizeCostingEnabled")
    return Backup(
        dataset=dataset,
        cost_settings=dict(cost_settings) if isinstance(cost_settings, Mapping) else None,
        size_overrides=dict(size_overrides) if isinstance(size_overrides, Mapping) else None,
        size_costing_enabled=size_costing if isinstance(size_costing, bool) else None,
    )
