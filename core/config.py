from __future__ import annotations

import os
from pathlib import Path
from typing import List


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name) or default
    return [part.strip() for part in raw.split(",") if part.strip()]


DATA_DIR = Path(os.getenv("ORDER_ANALYTICS_DATA_DIR") or Path(__file__).resolve().parents[1] / "data")
DEFAULT_USER_KEY: str = os.getenv("ORDER_ANALYTICS_DEFAULT_USER") or "local"
STORE_BACKEND: str = (os.getenv("ORDER_ANALYTICS_STORE") or "file").strip().lower()
LOG_LEVEL: str = (os.getenv("ORDER_ANALYTICS_LOG_LEVEL") or "INFO").upper()
CORS_ORIGINS: List[str] = _env_list("ORDER_ANALYTICS_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")

DEFAULT_VARIANT = "Default"
KEY_SEPARATOR = " - "
