"""
file_validation.py
~~~~~~~~~~~~~~~~~~
Security hardening for bulk CSV uploads.
Checks the declared type, enforces the size ceiling while streaming, and
rejects binary content masquerading as CSV.
"""
import logging
import os
import re

from fastapi import UploadFile, HTTPException

from seolens.core.config import settings

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPES = {"text/csv", "application/csv"}
CHUNK_SIZE = 64 * 1024  # 64KB chunks


def sanitize_filename(filename: str) -> str:
    base_name = os.path.basename(filename or "")
    safe_filename = re.sub(r'[^a-zA-Z0-9_.-]', '_', base_name)
    return safe_filename or "unnamed_file.csv"


def is_csv_upload(file: UploadFile) -> bool:
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    return content_type in CSV_CONTENT_TYPES or (file.filename or "").lower().endswith(".csv")


async def validate_csv_upload(file: UploadFile) -> None:
    """
    Raise HTTPException(400) for non-CSV, oversized or binary uploads.
    Leaves the file pointer at 0.
    """
    if not is_csv_upload(file):
        logger.warning(f"Validation failed: {file.filename} ({file.content_type}) is not a CSV.")
        raise HTTPException(status_code=400, detail="Only CSV files are allowed")

    # Enforce file size limit while streaming, without loading the whole file
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    size = 0
    await file.seek(0)
    header = await file.read(CHUNK_SIZE)
    chunk = header
    while chunk:
        size += len(chunk)
        if size > max_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File size exceeds maximum of {settings.MAX_UPLOAD_SIZE_MB}MB",
            )
        chunk = await file.read(CHUNK_SIZE)
    await file.seek(0)  # Reset for downstream read

    # CSVs don't have magic numbers. Binary files often contain null bytes, which are rare in valid CSVs.
    if b"\x00" in header[:1024]:
        logger.warning(f"Validation failed: {file.filename} contains null bytes, likely binary.")
        raise HTTPException(
            status_code=400,
            detail="Invalid file content. CSV file appears to be binary.",
        )
