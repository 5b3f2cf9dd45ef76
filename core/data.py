from __future__ import annotations

import csv
import io
import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional

import pandas as pd

from core.aggregate import aggregate_rows
from core.errors import AnalyticsError, FormatRejected, NoRowsParsed, SchemaValidationFailed
from core.models import Dataset
from core.rows import SkipStats
from core.schema import FIELD_ALIASES, FIELD_LABELS, FieldMapping, detect_fields, validate_mapping

logger = logging.getLogger(__name__)

CSV_EXTENSION = ".csv"

IngestStatus = Literal["ok", "no_rows", "format_rejected", "schema_invalid"]


@dataclass(frozen=True)
class IngestResult:
    status: IngestStatus
    dataset: Dataset = field(default_factory=Dataset.empty)
    stats: SkipStats = field(default_factory=SkipStats)
    mapping: Optional[FieldMapping] = None
    error: Optional[AnalyticsError] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def message(self) -> str:
        if self.status == "ok":
            return (
                f"Successfully loaded {self.dataset.summary.total_orders} orders "
                f"with {self.dataset.summary.total_products} unique products!"
            )
        if self.status == "no_rows":
            return no_rows_message(self.mapping)
        return str(self.error) if self.error else "Upload failed"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": self.status,
            "ok": self.ok,
            "message": self.message,
            "stats": self.stats.to_dict(),
            "summary": self.dataset.summary.to_dict(),
            "columns": dict(self.mapping.columns) if self.mapping else {},
        }
        if isinstance(self.error, SchemaValidationFailed):
            payload["found"] = self.error.found
            payload["missing"] = self.error.missing
            payload["headers"] = self.error.headers
        return payload


def no_rows_message(mapping: Optional[FieldMapping]) -> str:
    headers = ", ".join(mapping.headers) if mapping and mapping.headers else "None"
    expected = "\n".join(
        f"- {FIELD_LABELS[name]}: {', '.join(repr(a) for a in FIELD_ALIASES[name])}"
        for name in ("order_id", "product_title", "quantity", "price")
    )
    return (
        "No orders could be parsed from the CSV file.\n\n"
        "This usually means the field names don't match what we expect, or every row "
        "was blank, duplicated or missing an order ID / product name.\n\n"
        f"Expected field names include:\n{expected}\n\n"
        f"Found field names in your CSV: {headers}"
    )


def check_filename(filename: Optional[str]) -> None:
    if filename is not None and not filename.lower().endswith(CSV_EXTENSION):
        raise FormatRejected("Please select a CSV file")


def decode_upload(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Shopify exports opened and re-saved in Excel are often cp1252
        return content.decode("latin-1")


def read_csv_text(text: str) -> pd.DataFrame:
    """Parse CSV text into a string-only DataFrame.

    Every cell stays a (stripped) string, blank lines are skipped and any
    structural problem surfaces as FormatRejected so nothing is aggregated
    from a half-read file.
    """
    if not text or not text.strip():
        raise FormatRejected("Error parsing CSV: file is empty")
    try:
        with warnings.catch_warnings():
            # rows longer than the header are truncated with only a warning
            warnings.simplefilter("error", pd.errors.ParserWarning)
            df = pd.read_csv(
                io.StringIO(text),
                sep=",",
                quotechar='"',
                doublequote=True,
                quoting=csv.QUOTE_MINIMAL,
                dtype=str,
                keep_default_na=False,
                na_filter=False,
                skip_blank_lines=True,
                index_col=False,
            )
    except (pd.errors.EmptyDataError, pd.errors.ParserError, pd.errors.ParserWarning, csv.Error, ValueError) as exc:
        raise FormatRejected(f"Error parsing CSV: {exc}") from exc
    df.columns = [str(c).strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].astype(str).str.strip()
    return df


def parse_orders_frame(df: pd.DataFrame) -> IngestResult:
    mapping = detect_fields(df.columns)
    try:
        validate_mapping(mapping)
    except SchemaValidationFailed as exc:
        logger.warning("CSV rejected: missing %s (headers: %s)", ", ".join(exc.missing), ", ".join(exc.headers))
        return IngestResult(status="schema_invalid", mapping=mapping, error=exc)

    dataset, stats = aggregate_rows(df.to_dict(orient="records"), mapping)
    logger.info(
        "CSV parsed: rows=%d processed=%d skipped=%d blank=%d orders=%d products=%d",
        len(df),
        stats.processed_rows,
        stats.skipped_rows,
        stats.blank_rows,
        dataset.summary.total_orders,
        dataset.summary.total_products,
    )
    if not dataset.orders:
        logger.warning("CSV validated but no rows parsed (columns: %s)", mapping.columns)
        return IngestResult(
            status="no_rows",
            dataset=dataset,
            stats=stats,
            mapping=mapping,
            error=NoRowsParsed(no_rows_message(mapping)),
        )
    return IngestResult(status="ok", dataset=dataset, stats=stats, mapping=mapping)


def parse_orders_csv(text: str, *, filename: Optional[str] = None) -> IngestResult:
    """CSV text -> IngestResult. Never raises for bad input."""
    try:
        check_filename(filename)
        df = read_csv_text(text)
    except FormatRejected as exc:
        logger.warning("CSV rejected: %s", exc)
        return IngestResult(status="format_rejected", error=exc)
    return parse_orders_frame(df)
