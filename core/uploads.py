from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Union

from core.backup import Backup, import_backup
from core.data import IngestResult, decode_upload, parse_orders_csv
from core.merge import MergeStats, merge_datasets, merge_stats
from core.models import Dataset
from core.store import DatasetStore

logger = logging.getLogger(__name__)

UploadMode = Literal["merge", "replace"]


@dataclass(frozen=True)
class UploadOutcome:
    result: IngestResult
    dataset: Optional[Dataset]
    merge: Optional[MergeStats] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = self.result.to_dict()
        payload["dataset_summary"] = self.dataset.summary.to_dict() if self.dataset else None
        payload["merge"] = self.merge.to_dict() if self.merge else None
        return payload


class UploadService:
    """Serializes dataset writes per user key.

    Upload, import and clear all run load -> combine -> save under the same
    lock so two uploads for one user cannot lose each other's orders.
    """

    def __init__(self, store: DatasetStore) -> None:
        self.store = store
        # a lock lives only while some caller holds it
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def _lock_for(self, user_key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(user_key)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_key] = lock
            return lock

    def ingest(
        self,
        user_key: str,
        filename: Optional[str],
        content: Union[str, bytes],
        mode: UploadMode = "merge",
    ) -> UploadOutcome:
        text = decode_upload(content) if isinstance(content, bytes) else content
        result = parse_orders_csv(text, filename=filename)

        with self._lock_for(user_key):
            existing = self.store.load_dataset(user_key)
            if not result.ok:
                # stored dataset stays as it was
                return UploadOutcome(result=result, dataset=existing)

            if mode == "merge" and existing is not None and not existing.is_empty:
                combined = merge_datasets(existing, result.dataset)
                stats = merge_stats(existing, result.dataset, combined)
            else:
                combined = result.dataset
                stats = MergeStats(new_orders=len(combined.orders), duplicate_orders=0)
            self.store.save_dataset(user_key, combined)

        logger.info(
            "Upload stored for %s: mode=%s new_orders=%d duplicate_orders=%d total_orders=%d",
            user_key,
            mode,
            stats.new_orders,
            stats.duplicate_orders,
            combined.summary.total_orders,
        )
        return UploadOutcome(result=result, dataset=combined, merge=stats)

    def restore(self, user_key: str, document: Union[str, bytes, Dict[str, Any]]) -> Backup:
        backup = import_backup(document)
        with self._lock_for(user_key):
            self.store.save_dataset(user_key, backup.dataset)
            patch = backup.settings_patch()
            if patch:
                self.store.save_settings(user_key, patch)
        logger.info("Backup restored for %s: orders=%d", user_key, backup.dataset.summary.total_orders)
        return backup

    def clear(self, user_key: str) -> None:
        """Forget the dataset; cost settings are kept."""
        with self._lock_for(user_key):
            self.store.delete_dataset(user_key)
        logger.info("Dataset cleared for %s", user_key)

    def remove_all(self, user_key: str) -> None:
        with self._lock_for(user_key):
            self.store.delete_dataset(user_key)
            self.store.delete_settings(user_key)
        logger.info("Dataset and settings removed for %s", user_key)
