"""
Job Routes — result download, job history and cancellation.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse
from datetime import datetime, timezone
from pathlib import Path
import logging
import os

from seolens.api.deps import get_job_store, get_session_key, get_storage
from seolens.core.limiter import limiter, DOWNLOAD_LIMIT
from seolens.services.job_store import JobStatus, JobStore
from seolens.services.storage import StorageProvider

logger = logging.getLogger(__name__)
router = APIRouter()


def download_filename(original: str) -> str:
    return f"seo-analysis-{Path(original).stem or 'results'}.csv"


@router.get("/bulk/download/{job_id}")
@limiter.limit(DOWNLOAD_LIMIT)
async def download_results(request: Request, job_id: str, store: JobStore = Depends(get_job_store)):
    """
    Streams the result CSV of a completed job.
    """
    job = await store.get_job(job_id)
    if not job:
        raise HTTPException(404, "Job not found")

    if job.status != JobStatus.COMPLETED:
        raise HTTPException(400, "Job is not completed yet")

    if not job.result_file_path or not os.path.exists(job.result_file_path):
        raise HTTPException(404, "Result file not found")

    return FileResponse(
        job.result_file_path,
        media_type="text/csv",
        filename=download_filename(job.filename),
    )


@router.get("/bulk/jobs")
async def list_jobs(request: Request, store: JobStore = Depends(get_job_store)):
    """Jobs created from the caller's session, newest first."""
    jobs = await store.list_jobs_for_session(get_session_key(request))
    return {"jobs": [job.to_dict() for job in jobs]}


@router.delete("/bulk/jobs/{job_id}")
async def delete_job(
    request: Request,
    job_id: str,
    store: JobStore = Depends(get_job_store),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Best-effort cancellation: an unfinished job is marked failed, and its
    uploaded and result files are removed. In-flight fetches still finish.
    """
    job = await store.get_job(job_id)
    if not job:
        raise HTTPException(404, "Job not found")

    if job.user_session != get_session_key(request):
        raise HTTPException(403, "Access denied")

    if job.status in (JobStatus.PENDING, JobStatus.PROCESSING):
        await store.update_job(
            job_id,
            status=JobStatus.FAILED,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info(f"Job {job_id} cancelled by owner")

    storage.delete(storage.upload_path(job_id))
    if job.result_file_path:
        storage.delete(job.result_file_path)

    return {"success": True, "message": "Job deleted successfully"}
