import abc
import logging
import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from seolens.services.seo_models import SeoAnalysisResult

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def percent_of(processed: int, total: int) -> int:
    """Whole-number percentage, rounded half-up (1/8 -> 13)."""
    if not total:
        return 0
    return math.floor(processed / total * 100 + 0.5)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed forward moves. PENDING -> FAILED covers cancelling an unclaimed job.
_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}

TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class InvalidJobUpdateError(ValueError):
    pass


@dataclass
class BulkJob:
    id: str
    user_session: str
    filename: str
    total_urls: int
    processed_urls: int = 0
    status: JobStatus = JobStatus.PENDING
    created_at: str = field(default_factory=utc_now)
    completed_at: Optional[str] = None
    result_file_path: Optional[str] = None

    @property
    def percentage(self) -> int:
        return percent_of(self.processed_urls, self.total_urls)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "totalUrls": self.total_urls,
            "processedUrls": self.processed_urls,
            "status": self.status.value,
            "createdAt": self.created_at,
            "completedAt": self.completed_at,
        }


@dataclass(frozen=True)
class UrlResult:
    id: str
    job_id: str
    url: str
    analysis: Optional[SeoAnalysisResult] = None
    error_message: Optional[str] = None
    processed_at: str = field(default_factory=utc_now)

    def __post_init__(self):
        if (self.analysis is None) == (self.error_message is None):
            raise ValueError("UrlResult needs exactly one of analysis or error_message")


_UPDATABLE_FIELDS = {"processed_urls", "status", "completed_at", "result_file_path"}


def apply_job_update(job: BulkJob, changes: Dict[str, Any]) -> BulkJob:
    """Validate a partial update against the job invariants and return the merged job."""
    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise InvalidJobUpdateError(f"Cannot update fields: {sorted(unknown)}")

    if "status" in changes:
        new_status = JobStatus(changes["status"])
        if new_status != job.status and new_status not in _TRANSITIONS[job.status]:
            raise InvalidJobUpdateError(
                f"Job {job.id}: illegal status change {job.status.value} -> {new_status.value}"
            )
        changes = {**changes, "status": new_status}

    if "processed_urls" in changes:
        processed = changes["processed_urls"]
        if processed < 0 or processed > job.total_urls:
            raise InvalidJobUpdateError(
                f"Job {job.id}: processed_urls {processed} outside 0..{job.total_urls}"
            )

    return replace(job, **changes)


class JobStore(abc.ABC):
    """
    Storage contract for bulk jobs and their per-URL results.
    Swap the backend (in-memory, database, ...) without touching the runner.
    """

    @abc.abstractmethod
    async def create_job(self, user_session: str, filename: str, total_urls: int) -> BulkJob:
        pass

    @abc.abstractmethod
    async def get_job(self, job_id: str) -> Optional[BulkJob]:
        pass

    @abc.abstractmethod
    async def update_job(self, job_id: str, **changes: Any) -> Optional[BulkJob]:
        """
        Partial-field merge. Returns the updated job, or None if the id is unknown.
        Raises InvalidJobUpdateError when the change breaks a job invariant.
        """
        pass

    @abc.abstractmethod
    async def list_jobs_for_session(self, user_session: str) -> List[BulkJob]:
        pass

    @abc.abstractmethod
    async def create_url_result(
        self,
        job_id: str,
        url: str,
        analysis: Optional[SeoAnalysisResult] = None,
        error_message: Optional[str] = None,
    ) -> UrlResult:
        pass

    @abc.abstractmethod
    async def list_url_results(self, job_id: str) -> List[UrlResult]:
        pass


class InMemoryJobStore(JobStore):
    """
    Process-local store. Lost on restart; fine for single-server deployments and tests.
    """

    def __init__(self):
        self._jobs: Dict[str, BulkJob] = {}
        self._url_results: Dict[str, UrlResult] = {}

    async def create_job(self, user_session: str, filename: str, total_urls: int) -> BulkJob:
        job = BulkJob(
            id=str(uuid.uuid4()),
            user_session=user_session,
            filename=filename,
            total_urls=total_urls,
        )
        self._jobs[job.id] = job
        logger.info(f"Job {job.id} created ({total_urls} URLs from {filename}).")
        return job

    async def get_job(self, job_id: str) -> Optional[BulkJob]:
        return self._jobs.get(job_id)

    async def update_job(self, job_id: str, **changes: Any) -> Optional[BulkJob]:
        # No await between read and write, so the merge is atomic on the event loop
        job = self._jobs.get(job_id)
        if job is None:
            return None
        updated = apply_job_update(job, changes)
        self._jobs[job_id] = updated
        return updated

    async def list_jobs_for_session(self, user_session: str) -> List[BulkJob]:
        # Insertion order breaks created_at ties
        jobs = [
            (job.created_at, index, job)
            for index, job in enumerate(self._jobs.values())
            if job.user_session == user_session
        ]
        return [job for _, _, job in sorted(jobs, key=lambda item: item[:2], reverse=True)]

    async def create_url_result(
        self,
        job_id: str,
        url: str,
        analysis: Optional[SeoAnalysisResult] = None,
        error_message: Optional[str] = None,
    ) -> UrlResult:
        result = UrlResult(
            id=str(uuid.uuid4()),
            job_id=job_id,
            url=url,
            analysis=analysis,
            error_message=error_message,
        )
        self._url_results[result.id] = result
        return result

    async def list_url_results(self, job_id: str) -> List[UrlResult]:
        return [result for result in self._url_results.values() if result.job_id == job_id]
