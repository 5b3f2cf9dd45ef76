from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol

from core.cost_settings import SettingsStore
from core.errors import PersistenceFailure
from core.models import Dataset

logger = logging.getLogger(__name__)


class DatasetStore(Protocol):
    def load_dataset(self, user_key: str) -> Optional[Dataset]: ...

    def save_dataset(self, user_key: str, dataset: Dataset) -> None: ...

    def delete_dataset(self, user_key: str) -> None: ...

    def load_settings(self, user_key: str) -> SettingsStore: ...

    def save_settings(self, user_key: str, partial: Mapping[str, Any]) -> SettingsStore: ...

    def delete_settings(self, user_key: str) -> None: ...


class InMemoryStore:
    """Keeps JSON documents in process memory; used by tests and the API default."""

    def __init__(self) -> None:
        self._datasets: Dict[str, Dict[str, Any]] = {}
        self._settings: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load_dataset(self, user_key: str) -> Optional[Dataset]:
        with self._lock:
            doc = self._datasets.get(user_key)
        return Dataset.from_dict(doc) if doc is not None else None

    def save_dataset(self, user_key: str, dataset: Dataset) -> None:
        with self._lock:
            self._datasets[user_key] = dataset.to_dict()

    def delete_dataset(self, user_key: str) -> None:
        with self._lock:
            self._datasets.pop(user_key, None)

    def load_settings(self, user_key: str) -> SettingsStore:
        with self._lock:
            doc = self._settings.get(user_key)
        return SettingsStore.from_dict(doc)

    def save_settings(self, user_key: str, partial: Mapping[str, Any]) -> SettingsStore:
        with self._lock:
            updated = SettingsStore.from_dict(self._settings.get(user_key)).updated(partial)
            self._settings[user_key] = updated.to_dict()
        return updated

    def delete_settings(self, user_key: str) -> None:
        with self._lock:
            self._settings.pop(user_key, None)


_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]+")


class JsonFileStore:
    """One JSON document per user and kind under ``base_dir``."""

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = Path(base_dir)
        self._lock = threading.Lock()

    def _path(self, kind: str, user_key: str) -> Path:
        safe = _SAFE_KEY.sub("_", user_key).strip("._") or "default"
        return self.base_dir / kind / f"{safe}.json"

    def _read(self, path: Path) -> Optional[Dict[str, Any]]:
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise PersistenceFailure(f"Could not read {path.name}: {exc}", cause=exc) from exc

    def _write(self, path: Path, doc: Mapping[str, Any]) -> None:
        tmp = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(doc, fh)
            tmp.replace(path)
        except OSError as exc:
            raise PersistenceFailure(f"Could not write {path.name}: {exc}", cause=exc) from exc

    def _delete(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise PersistenceFailure(f"Could not delete {path.name}: {exc}", cause=exc) from exc

    def load_dataset(self, user_key: str) -> Optional[Dataset]:
        with self._lock:
            doc = self._read(self._path("orders", user_key))
        return Dataset.from_dict(doc) if doc is not None else None

    def save_dataset(self, user_key: str, dataset: Dataset) -> None:
        with self._lock:
            self._write(self._path("orders", user_key), dataset.to_dict())

    def delete_dataset(self, user_key: str) -> None:
        with self._lock:
            self._delete(self._path("orders", user_key))

    def load_settings(self, user_key: str) -> SettingsStore:
        with self._lock:
            doc = self._read(self._path("settings", user_key))
        return SettingsStore.from_dict(doc)

    def save_settings(self, user_key: str, partial: Mapping[str, Any]) -> SettingsStore:
        path = self._path("settings", user_key)
        with self._lock:
            updated = SettingsStore.from_dict(self._read(path)).updated(partial)
            self._write(path, updated.to_dict())
        return updated

    def delete_settings(self, user_key: str) -> None:
        with self._lock:
            self._delete(self._path("settings", user_key))


class FallbackStore:
    """Reads and writes the primary store, falling back to the secondary on failure."""

    def __init__(self, primary: DatasetStore, secondary: DatasetStore) -> None:
        self.primary = primary
        self.secondary = secondary

    def _call(self, op: str, *args: Any) -> Any:
        try:
            return getattr(self.primary, op)(*args)
        except PersistenceFailure:
            logger.exception("%s failed on primary store, using fallback", op)
            return getattr(self.secondary, op)(*args)

    def load_dataset(self, user_key: str) -> Optional[Dataset]:
        return self._call("load_dataset", user_key)

    def save_dataset(self, user_key: str, dataset: Dataset) -> None:
        self._call("save_dataset", user_key, dataset)

    def delete_dataset(self, user_key: str) -> None:
        self._call("delete_dataset", user_key)

    def load_settings(self, user_key: str) -> SettingsStore:
        return self._call("load_settings", user_key)

    def save_settings(self, user_key: str, partial: Mapping[str, Any]) -> SettingsStore:
        return self._call("save_settings", user_key, partial)

    def delete_settings(self, user_key: str) -> None:
        self._call("delete_settings", user_key)


def build_store(backend: str, data_dir: Path) -> DatasetStore:
    if backend == "memory":
        return InMemoryStore()
    return FallbackStore(JsonFileStore(data_dir), InMemoryStore())
