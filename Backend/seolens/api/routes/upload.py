"""
Upload Route — Bulk CSV ingestion endpoint.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool

from seolens.api.deps import get_job_store, get_runner, get_session_key, get_storage
from seolens.core.config import settings
from seolens.core.file_validation import sanitize_filename, validate_csv_upload
from seolens.core.limiter import limiter, UPLOAD_LIMIT
from seolens.services.bulk_processor import BulkAnalysisRunner
from seolens.services.csv_processor import validate_csv_file
from seolens.services.job_store import JobStore
from seolens.services.seo_models import CamelModel
from seolens.services.storage import StorageProvider

logger = logging.getLogger(__name__)
router = APIRouter()


class UploadResponse(CamelModel):
    job_id: str
    total_urls: int
    estimated_completion_time: str


@router.post("/bulk/upload", response_model=UploadResponse)
@limiter.limit(UPLOAD_LIMIT)
async def upload_bulk_csv(
    request: Request,
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    store: JobStore = Depends(get_job_store),
    storage: StorageProvider = Depends(get_storage),
    runner: BulkAnalysisRunner = Depends(get_runner),
):
    """
    Validates the CSV, creates a job and schedules processing.
    Returns the job id immediately; poll /bulk/status/{job_id} for progress.
    """
    if file is None or not file.filename:
        raise HTTPException(400, "No file uploaded")

    await validate_csv_upload(file)
    safe_filename = sanitize_filename(file.filename)

    temp_ref = storage.save_upload(file.file, safe_filename)
    validation = await run_in_threadpool(validate_csv_file, temp_ref)
    if not validation.valid:
        storage.delete(temp_ref)
        logger.info(f"Rejected upload {safe_filename}: {validation.error}")
        raise HTTPException(400, validation.error)

    job = await store.create_job(get_session_key(request), safe_filename, validation.url_count)
    try:
        storage.assign_upload(temp_ref, job.id)
    except OSError as e:
        logger.error(f"Could not store upload for job {job.id}: {e}")
        await store.update_job(job.id, status="failed", completed_at=datetime.now(timezone.utc).isoformat())
        storage.delete(temp_ref)
        raise HTTPException(500, "Failed to store uploaded file")

    background_tasks.add_task(runner.process_job, job.id)

    eta = datetime.now(timezone.utc) + timedelta(
        seconds=validation.url_count * settings.SECONDS_PER_URL_ESTIMATE
    )
    return UploadResponse(
        job_id=job.id,
        total_urls=validation.url_count,
        estimated_completion_time=eta.isoformat(),
    )
