"""
Status Routes — Bulk job status polling and WebSocket updates.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect
from typing import Any, Dict, Optional
import asyncio
import logging

from seolens.api.deps import get_job_store
from seolens.core.config import settings
from seolens.core.limiter import limiter, STATUS_LIMIT
from seolens.services.job_store import BulkJob, JobStatus, JobStore, TERMINAL_STATUSES
from seolens.services.seo_models import CamelModel

logger = logging.getLogger(__name__)
router = APIRouter()


class JobProgress(CamelModel):
    total: int
    processed: int
    percentage: int


class StatusResponse(CamelModel):
    job_id: str
    status: JobStatus
    progress: JobProgress
    estimated_time_remaining: Optional[int] = None


def build_status(job: BulkJob) -> StatusResponse:
    remaining = None
    if job.status in (JobStatus.PENDING, JobStatus.PROCESSING):
        remaining = (job.total_urls - job.processed_urls) * settings.SECONDS_PER_URL_ESTIMATE

    return StatusResponse(
        job_id=job.id,
        status=job.status,
        progress=JobProgress(
            total=job.total_urls,
            processed=job.processed_urls,
            percentage=job.percentage,
        ),
        estimated_time_remaining=remaining,
    )


@router.get("/bulk/status/{job_id}", response_model=StatusResponse, response_model_exclude_none=True)
@limiter.limit(STATUS_LIMIT)
async def get_job_status(request: Request, job_id: str, store: JobStore = Depends(get_job_store)):
    """
    Check the progress of a bulk job.
    """
    job = await store.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return build_status(job)


@router.websocket("/ws/bulk/status/{job_id}")
async def websocket_status(websocket: WebSocket, job_id: str):
    """
    Real-time status updates by polling the job store until the job settles.
    """
    store: JobStore = websocket.app.state.job_store
    await websocket.accept()
    logger.info(f"WebSocket connected for job {job_id}")

    try:
        while True:
            job = await store.get_job(job_id)
            if job is None:
                await websocket.send_json({"jobId": job_id, "error": "Job not found"})
                break

            payload: Dict[str, Any] = build_status(job).model_dump(mode="json", by_alias=True, exclude_none=True)
            await websocket.send_json(payload)

            if job.status in TERMINAL_STATUSES:
                break

            await asyncio.sleep(settings.STATUS_POLL_INTERVAL_SECONDS)

        await websocket.close()

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for job {job_id}")
