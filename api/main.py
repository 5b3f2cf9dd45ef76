from __future__ import annotations

from dataclasses import asdict
import logging
import math
from typing import Literal, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, File, Header, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from api.schemas import (
    CostUpdateModel,
    DateFilterModel,
    OrderFiltersModel,
    ProductViewModel,
    SettingsPatchModel,
    SizeOverrideModel,
)
from core.backup import backup_filename, export_backup
from core.config import CORS_ORIGINS, DATA_DIR, DEFAULT_USER_KEY, LOG_LEVEL, STORE_BACKEND
from core.errors import AnalyticsError, BackupImportRejected, PersistenceFailure
from core.filters import filter_dataset_by_date, normalize_date_filter, normalize_order_filters, normalize_product_view
from core.metrics_analytics import compute_analytics
from core.metrics_orders import compute_orders
from core.metrics_overview import compute_overview
from core.metrics_products import compute_products
from core.metrics_profit import compute_profit, products_for_costing
from core.models import Dataset
from core.store import build_store
from core.uploads import UploadService

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Order Analytics API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

store = build_store(STORE_BACKEND, DATA_DIR)
uploads = UploadService(store)

_UPLOAD_STATUS_CODES = {"ok": 200, "no_rows": 200, "format_rejected": 400, "schema_invalid": 422}


def _user(x_user_key: Optional[str]) -> str:
    return (x_user_key or "").strip() or DEFAULT_USER_KEY


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        ),
    )


def _error(exc: Exception, name: str) -> JSONResponse:
    if isinstance(exc, PersistenceFailure):
        status_code = 503
    elif isinstance(exc, AnalyticsError):
        status_code = 400
    else:
        status_code = 500
    if status_code >= 500:
        logger.exception("%s failed", name)
    else:
        logger.warning("%s rejected: %s", name, exc)
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _dataset(user_key: str) -> Optional[Dataset]:
    return store.load_dataset(user_key)


@app.post("/upload")
def upload(
    file: UploadFile = File(...),
    mode: Literal["merge", "replace"] = Query(default="merge"),
    x_user_key: Optional[str] = Header(default=None),
):
    try:
        content = file.file.read()
        outcome = uploads.ingest(_user(x_user_key), file.filename, content, mode=mode)
        return _json(outcome.to_dict(), status_code=_UPLOAD_STATUS_CODES[outcome.result.status])
    except Exception as exc:
        return _error(exc, "upload")


@app.get("/dataset")
def get_dataset(x_user_key: Optional[str] = Header(default=None)):
    try:
        dataset = _dataset(_user(x_user_key))
        if dataset is None:
            return _json({"has_data": False, **Dataset.empty().to_dict()})
        return _json({"has_data": True, **dataset.to_dict()})
    except Exception as exc:
        return _error(exc, "get_dataset")


@app.delete("/dataset")
def delete_dataset(
    include_settings: bool = Query(default=False),
    x_user_key: Optional[str] = Header(default=None),
):
    try:
        user_key = _user(x_user_key)
        if include_settings:
            uploads.remove_all(user_key)
        else:
            uploads.clear(user_key)
        return _json({"cleared": True, "include_settings": include_settings})
    except Exception as exc:
        return _error(exc, "delete_dataset")


@app.get("/settings")
def get_settings(x_user_key: Optional[str] = Header(default=None)):
    try:
        return _json(store.load_settings(_user(x_user_key)).to_dict())
    except Exception as exc:
        return _error(exc, "get_settings")


@app.patch("/settings")
def patch_settings(patch: SettingsPatchModel, x_user_key: Optional[str] = Header(default=None)):
    try:
        settings = store.save_settings(_user(x_user_key), patch.model_dump(exclude_none=True))
        return _json(settings.to_dict())
    except Exception as exc:
        return _error(exc, "patch_settings")


@app.put("/settings/costs")
def put_cost(update: CostUpdateModel, x_user_key: Optional[str] = Header(default=None)):
    try:
        user_key = _user(x_user_key)
        edited = store.load_settings(user_key).with_cost(update.key, update.value)
        settings = store.save_settings(user_key, {"costSettings": edited.cost_settings})
        return _json(settings.to_dict())
    except Exception as exc:
        return _error(exc, "put_cost")


@app.put("/settings/size-overrides")
def put_size_override(update: SizeOverrideModel, x_user_key: Optional[str] = Header(default=None)):
    try:
        user_key = _user(x_user_key)
        edited = store.load_settings(user_key).with_size_override(update.product, update.variant, update.value)
        settings = store.save_settings(user_key, {"sizeOverrides": edited.size_overrides})
        return _json(settings.to_dict())
    except Exception as exc:
        return _error(exc, "put_size_override")


@app.delete("/settings/size-overrides")
def delete_size_override(
    product: str = Query(...),
    variant: Optional[str] = Query(default=None),
    x_user_key: Optional[str] = Header(default=None),
):
    try:
        user_key = _user(x_user_key)
        current = store.load_settings(user_key)
        if variant is None:
            edited = current.without_product_overrides(product)
        else:
            edited = current.without_size_override(product, variant)
        settings = store.save_settings(user_key, {"sizeOverrides": edited.size_overrides})
        return _json(settings.to_dict())
    except Exception as exc:
        return _error(exc, "delete_size_override")


@app.post("/overview")
def overview(filters: DateFilterModel, x_user_key: Optional[str] = Header(default=None)):
    try:
        user_key = _user(x_user_key)
        f = normalize_date_filter(filters.model_dump())
        return _json(compute_overview(store.load_settings(user_key), _dataset(user_key), f))
    except Exception as exc:
        return _error(exc, "overview")


@app.post("/products")
def products(view: ProductViewModel, x_user_key: Optional[str] = Header(default=None)):
    try:
        raw = view.model_dump()
        options = normalize_product_view(raw)
        f = normalize_date_filter(raw.get("date_filter"))
        return _json(compute_products(_dataset(_user(x_user_key)), options, f))
    except Exception as exc:
        return _error(exc, "products")


@app.post("/orders")
def orders(filters: OrderFiltersModel, x_user_key: Optional[str] = Header(default=None)):
    try:
        f = normalize_order_filters(filters.model_dump())
        return _json(compute_orders(_dataset(_user(x_user_key)), f))
    except Exception as exc:
        return _error(exc, "orders")


@app.post("/profit")
def profit(filters: DateFilterModel, x_user_key: Optional[str] = Header(default=None)):
    try:
        user_key = _user(x_user_key)
        f = normalize_date_filter(filters.model_dump())
        dataset = _dataset(user_key) or Dataset.empty()
        return _json(compute_profit(store.load_settings(user_key), dataset, f))
    except Exception as exc:
        return _error(exc, "profit")


@app.post("/costing")
def costing(filters: DateFilterModel, x_user_key: Optional[str] = Header(default=None)):
    try:
        user_key = _user(x_user_key)
        f = normalize_date_filter(filters.model_dump())
        settings = store.load_settings(user_key)
        view = filter_dataset_by_date(_dataset(user_key) or Dataset.empty(), f)
        return _json(
            {
                "filters": asdict(f),
                "mode": "per-size" if settings.size_costing_enabled else "unified",
                "products": products_for_costing(view, settings),
            }
        )
    except Exception as exc:
        return _error(exc, "costing")


@app.get("/analytics")
def analytics(top_n: int = Query(default=10, ge=1, le=100), x_user_key: Optional[str] = Header(default=None)):
    try:
        user_key = _user(x_user_key)
        return _json(compute_analytics(store.load_settings(user_key), _dataset(user_key), top_n=top_n))
    except Exception as exc:
        return _error(exc, "analytics")


@app.get("/export")
def export(x_user_key: Optional[str] = Header(default=None)):
    try:
        user_key = _user(x_user_key)
        dataset = _dataset(user_key) or Dataset.empty()
        document = export_backup(dataset, store.load_settings(user_key))
        response = _json(document)
        response.headers["Content-Disposition"] = f"attachment; filename={backup_filename()}"
        return response
    except Exception as exc:
        return _error(exc, "export")


@app.post("/import")
def import_(file: UploadFile = File(...), x_user_key: Optional[str] = Header(default=None)):
    try:
        content = file.file.read()
        if not content:
            raise BackupImportRejected("Invalid backup file format")
        backup = uploads.restore(_user(x_user_key), content)
        return _json({"imported": True, "summary": backup.dataset.summary.to_dict(), "settings": backup.settings_patch()})
    except Exception as exc:
        return _error(exc, "import")
