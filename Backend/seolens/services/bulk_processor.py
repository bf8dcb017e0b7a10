"""
bulk_processor.py
~~~~~~~~~~~~~~~~~
Runs a bulk job: reads the uploaded CSV, analyzes URLs in fixed-size
concurrent batches, records progress in the job store and writes the
result CSV.

One runner instance is built at application startup. Its active-job set
guarantees a given job id is processed by at most one coroutine at a time.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from seolens.core.config import settings
from seolens.services.csv_processor import parse_csv_urls
from seolens.services.job_store import JobStatus, JobStore, TERMINAL_STATUSES, percent_of
from seolens.services.result_csv import write_results_csv
from seolens.services.seo_models import BulkRow, SeoAnalysisResult
from seolens.services.seo_scoring import PLACEHOLDER
from seolens.services.storage import StorageProvider

logger = logging.getLogger(__name__)

AnalyzeFn = Callable[[str], Awaitable[SeoAnalysisResult]]
# notify(event, job_id, payload); events: job-started, job-progress, job-completed, job-failed
Notifier = Callable[[str, str, dict[str, Any]], None]

TIMEOUT_MESSAGE = "URL analysis timeout"


class UrlAnalysisError(Exception):
    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to analyze {url}: {reason}")
        self.url = url
        self.reason = reason


class JobCancelledError(Exception):
    pass


class JobNotFoundError(LookupError):
    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _tag_content(analysis: SeoAnalysisResult, name: str) -> str:
    for tag in analysis.tags:
        if tag.tag == name:
            return "" if tag.content == PLACEHOLDER else tag.content
    return ""


def to_bulk_row(analysis: SeoAnalysisResult) -> BulkRow:
    title = _tag_content(analysis, "Title")
    description = _tag_content(analysis, "Meta Description")
    facebook = analysis.previews.facebook
    twitter = analysis.previews.twitter

    return BulkRow(
        url=analysis.url,
        seo_score=analysis.score,
        title_tag=title,
        title_length=len(title),
        meta_description=description,
        meta_description_length=len(description),
        h1_tag=analysis.h1,
        og_title=facebook.title,
        og_description=facebook.description,
        og_image=facebook.image or "",
        twitter_title=twitter.title,
        twitter_description=twitter.description,
        twitter_card=twitter.card,
        robots_tag=_tag_content(analysis, "Meta Robots"),
        canonical_url=analysis.canonical_url,
        analysis_date=_now(),
        score_breakdown=analysis.breakdown,
    )


def placeholder_row(url: str, error_message: str) -> BulkRow:
    """Row emitted for a URL whose analysis failed: empty fields, score 0."""
    return BulkRow(url=url, seo_score=0, analysis_date=_now(), error_message=error_message or "Analysis failed")


def _log_notifier(event: str, job_id: str, payload: dict[str, Any]) -> None:
    logger.debug(f"[{event}] job={job_id} {payload}")


class BulkAnalysisRunner:
    def __init__(
        self,
        store: JobStore,
        analyze: AnalyzeFn,
        storage: StorageProvider,
        *,
        batch_size: int = settings.BULK_BATCH_SIZE,
        url_timeout: float = settings.URL_ANALYSIS_TIMEOUT_SECONDS,
        notify: Optional[Notifier] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.analyze = analyze
        self.storage = storage
        self.batch_size = batch_size
        self.url_timeout = url_timeout
        self.notify = notify or _log_notifier
        self._processing: set[str] = set()

    # ─── Introspection ───────────────────────────────────────────────────────

    def is_processing(self, job_id: str) -> bool:
        return job_id in self._processing

    def processing_jobs(self) -> list[str]:
        return list(self._processing)

    # ─── Job Lifecycle ───────────────────────────────────────────────────────

    async def process_job(self, job_id: str) -> None:
        """
        Process every URL of a job. Never raises: failures end in a FAILED job.
        A second call for a job that is already running returns immediately.
        """
        if job_id in self._processing:
            logger.info(f"Job {job_id} is already being processed")
            return

        self._processing.add(job_id)
        self.notify("job-started", job_id, {})

        try:
            result_path = await self._run(job_id)
            await self.store.update_job(
                job_id,
                status=JobStatus.COMPLETED,
                completed_at=_now(),
                result_file_path=result_path,
            )
            self.notify("job-completed", job_id, {"result_file_path": result_path})
            logger.info(f"Job {job_id} completed successfully")

        except JobCancelledError:
            logger.info(f"Job {job_id} was cancelled; discarding remaining work")
            self.notify("job-failed", job_id, {"error": "cancelled"})

        except Exception as e:
            logger.error(f"Job {job_id} failed: {e}")
            await self._mark_failed(job_id)
            self.notify("job-failed", job_id, {"error": str(e)})

        finally:
            self._processing.discard(job_id)

    async def _mark_failed(self, job_id: str) -> None:
        try:
            await self.store.update_job(job_id, status=JobStatus.FAILED, completed_at=_now())
        except Exception as e:
            logger.error(f"Could not mark job {job_id} as failed: {e}")

    async def _run(self, job_id: str) -> str:
        job = await self.store.get_job(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")

        # Cancelled before the background task got to it; leave the stored state alone
        if job.status in TERMINAL_STATUSES:
            raise JobCancelledError(job_id)

        await self.store.update_job(job_id, status=JobStatus.PROCESSING, processed_urls=0)

        urls = parse_csv_urls(self.storage.upload_path(job_id))
        total = len(urls)
        logger.info(f"Processing {total} URLs for job {job_id}")

        results: list[BulkRow] = []
        for start in range(0, total, self.batch_size):
            batch = urls[start:start + self.batch_size]

            # gather keeps input order regardless of completion order
            settled = await asyncio.gather(
                *(self.process_url(url, job_id) for url in batch),
                return_exceptions=True,
            )

            await self._ensure_not_cancelled(job_id)

            for offset, (url, outcome) in enumerate(zip(batch, settled)):
                if isinstance(outcome, BaseException):
                    results.append(placeholder_row(url, str(outcome)))
                else:
                    results.append(outcome)

                processed = start + offset + 1
                await self.store.update_job(job_id, processed_urls=min(processed, job.total_urls))
                self.notify("job-progress", job_id, {
                    "total": total,
                    "processed": processed,
                    "percentage": percent_of(processed, total),
                })

        return write_results_csv(results, self.storage.result_path(job_id))

    async def _ensure_not_cancelled(self, job_id: str) -> None:
        job = await self.store.get_job(job_id)
        if job is None or job.status == JobStatus.FAILED:
            raise JobCancelledError(job_id)

    # ─── Single URL ──────────────────────────────────────────────────────────

    async def process_url(self, url: str, job_id: str) -> BulkRow:
        """
        Analyze one URL under the per-URL timeout and record the outcome.
        Raises UrlAnalysisError on any failure, after storing it.
        """
        try:
            analysis = await asyncio.wait_for(self.analyze(url), timeout=self.url_timeout)
        except asyncio.TimeoutError:
            error_message = TIMEOUT_MESSAGE
        except Exception as e:
            error_message = str(e) or e.__class__.__name__
        else:
            row = to_bulk_row(analysis)
            await self.store.create_url_result(job_id, url, analysis=analysis)
            return row

        logger.warning(f"Job {job_id}: {url} failed: {error_message}")
        await self.store.create_url_result(job_id, url, error_message=error_message)
        raise UrlAnalysisError(url, error_message)
