from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Union

import polars as pl

from seolens.core.config import settings

# ─── Logger ──────────────────────────────────────────────────────────────────
logger = logging.getLogger(__name__)

# ─── Constants ───────────────────────────────────────────────────────────────
URL_COLUMNS: tuple[str, ...]  = ("url", "URL", "website", "link", "domain", "site")
URL_HINTS: tuple[str, ...]    = ("http", "www.", ".")
MAX_FILE_SIZE_BYTES: int      = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
MAX_URLS: int                 = settings.MAX_URLS_PER_JOB

CsvSource = Union[str, os.PathLike, bytes]

# ─── Custom Exceptions ───────────────────────────────────────────────────────
class CsvProcessingError(Exception):
    pass

# ─── Validation Result ───────────────────────────────────────────────────────
@dataclass
class CsvValidationResult:
    valid: bool
    error: Optional[str] = None
    url_count: Optional[int] = None


# ─── Extraction ──────────────────────────────────────────────────────────────
def _first_line(error: Exception) -> str:
    # polars appends multi-paragraph hints after the actual reason
    lines = str(error).strip().splitlines()
    return lines[0] if lines else error.__class__.__name__


def _read_rows(source: CsvSource) -> list[dict[str, str]]:
    if isinstance(source, bytes):
        source = BytesIO(source)
    try:
        # infer_schema_length=0 keeps every column as text
        df = pl.read_csv(
            source,
            infer_schema_length=0,
            encoding="utf8-lossy",
        )
    except (pl.exceptions.PolarsError, OSError) as e:
        raise CsvProcessingError(_first_line(e)) from e

    rows: list[dict[str, str]] = []
    for raw in df.iter_rows(named=True):
        row: dict[str, str] = {}
        for key, value in raw.items():
            row.setdefault(key.strip(), (value or "").strip())
        rows.append(row)
    return rows


def _candidate_from_row(row: dict[str, str]) -> str:
    for column in URL_COLUMNS:
        if row.get(column):
            return row[column]

    # Best effort: first value that looks like a URL or a bare domain
    for value in row.values():
        if value and any(hint in value for hint in URL_HINTS):
            return value
    return ""


def ensure_scheme(url: str) -> str:
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"https://{url}"


def parse_csv_urls(source: CsvSource) -> list[str]:
    """
    Extract one candidate URL per data row, in row order.
    Rows without a candidate are skipped; duplicates are kept.
    """
    urls: list[str] = []
    for row in _read_rows(source):
        candidate = _candidate_from_row(row)
        if candidate:
            urls.append(ensure_scheme(candidate))
    return urls


# ─── Validation ──────────────────────────────────────────────────────────────
def validate_csv_file(file_path: Union[str, os.PathLike], max_size_bytes: int = MAX_FILE_SIZE_BYTES) -> CsvValidationResult:
    """Check the size ceiling and the 1..MAX_URLS bounds of an uploaded CSV."""
    try:
        size = os.path.getsize(file_path)
        if size > max_size_bytes:
            return CsvValidationResult(
                valid=False,
                error=(
                    f"File size {size / 1024 / 1024:.2f}MB exceeds maximum of "
                    f"{max_size_bytes / 1024 / 1024:g}MB"
                ),
            )

        urls = parse_csv_urls(file_path)
    except (CsvProcessingError, OSError) as e:
        logger.warning(f"CSV validation failed for {file_path}: {e}")
        return CsvValidationResult(valid=False, error=f"Invalid CSV file: {e}")

    if not urls:
        return CsvValidationResult(
            valid=False,
            error="No valid URLs found in CSV file. Please ensure your CSV has a column with URLs.",
        )

    if len(urls) > MAX_URLS:
        return CsvValidationResult(
            valid=False,
            error=f"CSV contains {len(urls)} URLs. Maximum allowed is {MAX_URLS} URLs per batch.",
        )

    return CsvValidationResult(valid=True, url_count=len(urls))
