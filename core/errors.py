from __future__ import annotations

from typing import List, Optional


class AnalyticsError(Exception):
    """Base class for errors surfaced by the analytics core."""


class FormatRejected(AnalyticsError):
    """The upload is not a parseable CSV file."""


class SchemaValidationFailed(AnalyticsError):
    def __init__(self, message: str, *, found: List[str], missing: List[str], headers: List[str]) -> None:
        super().__init__(message)
        self.found = list(found)
        self.missing = list(missing)
        self.headers = list(headers)


class NoRowsParsed(AnalyticsError):
    """Validation passed but no row survived filtering."""


class BackupImportRejected(AnalyticsError):
    pass


class PersistenceFailure(AnalyticsError):
    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause
