"""
Bulk runner tests: batching, ordering, timeouts, idempotence and failure paths.
"""
import asyncio

import polars as pl
import pytest

from seolens.services.bulk_processor import (
    TIMEOUT_MESSAGE,
    BulkAnalysisRunner,
    placeholder_row,
    to_bulk_row,
)
from seolens.services.job_store import JobStatus
from seolens.services.page_fetcher import PageFetchError
from seolens.services.seo_analyzer import analyze_html
from conftest import FakeAnalyzer, full_page_html


async def _job_with_urls(store, storage, urls, filename="sites.csv"):
    job = await store.create_job("session", filename, len(urls))
    with open(storage.upload_path(job.id), "w", encoding="utf-8") as fh:
        fh.write("url\n" + "\n".join(urls) + "\n")
    return job


def _result_urls(path) -> list:
    return pl.read_csv(path, infer_schema_length=0)["URL"].to_list()


# ─── Row Mapping ─────────────────────────────────────────────────────────────

def test_to_bulk_row_maps_missing_tags_to_empty():
    analysis = analyze_html("<html><head><title>Only a title</title></head></html>", "https://a.com")
    row = to_bulk_row(analysis)

    assert row.title_tag == "Only a title"
    assert row.title_length == len("Only a title")
    assert row.meta_description == ""
    assert row.robots_tag == ""
    assert row.twitter_card == "summary"
    assert row.error_message is None
    assert row.score_breakdown == analysis.breakdown


def test_placeholder_row():
    row = placeholder_row("https://a.com", "boom")

    assert row.seo_score == 0
    assert row.title_tag == ""
    assert row.error_message == "boom"
    assert row.breakdown_summary == ""


# ─── Job Processing ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_job_completes_with_all_rows(store, storage):
    urls = [f"https://site{i}.com" for i in range(5)]
    job = await _job_with_urls(store, storage, urls)
    events = []
    runner = BulkAnalysisRunner(
        store, FakeAnalyzer().analyze, storage, batch_size=2,
        notify=lambda event, job_id, payload: events.append((event, payload)),
    )

    await runner.process_job(job.id)

    done = await store.get_job(job.id)
    assert done.status == JobStatus.COMPLETED
    assert done.processed_urls == done.total_urls == 5
    assert done.completed_at is not None
    assert done.result_file_path == storage.result_path(job.id)
    assert _result_urls(done.result_file_path) == urls
    assert len(await store.list_url_results(job.id)) == 5

    progress = [payload["processed"] for event, payload in events if event == "job-progress"]
    assert progress == [1, 2, 3, 4, 5]
    assert events[0][0] == "job-started"
    assert events[-1][0] == "job-completed"
    assert not runner.is_processing(job.id)


@pytest.mark.asyncio
async def test_rows_keep_input_order_regardless_of_completion(store, storage):
    urls = ["https://slow.com", "https://medium.com", "https://fast.com"]
    analyzer = FakeAnalyzer(delays={"https://slow.com": 0.1, "https://medium.com": 0.05})
    job = await _job_with_urls(store, storage, urls)

    await BulkAnalysisRunner(store, analyzer.analyze, storage, batch_size=10).process_job(job.id)

    done = await store.get_job(job.id)
    assert _result_urls(done.result_file_path) == urls


@pytest.mark.asyncio
async def test_slow_url_times_out_without_failing_job(store, storage):
    urls = ["https://a.com", "https://hang.com", "https://c.com"]
    analyzer = FakeAnalyzer(delays={"https://hang.com": 5})
    job = await _job_with_urls(store, storage, urls)

    runner = BulkAnalysisRunner(store, analyzer.analyze, storage, batch_size=10, url_timeout=0.2)
    await runner.process_job(job.id)

    done = await store.get_job(job.id)
    assert done.status == JobStatus.COMPLETED
    assert done.processed_urls == 3

    df = pl.read_csv(done.result_file_path, infer_schema_length=0)
    assert df["URL"].to_list() == urls
    hung = df.row(1, named=True)
    assert TIMEOUT_MESSAGE in hung["Error_Message"]
    assert hung["SEO_Score"] == "0"
    assert df.row(0, named=True)["SEO_Score"] == "100"

    stored = {r.url: r for r in await store.list_url_results(job.id)}
    assert stored["https://hang.com"].error_message == TIMEOUT_MESSAGE


@pytest.mark.asyncio
async def test_analysis_failure_becomes_error_row(store, storage):
    urls = ["https://ok.com", "https://gone.com"]
    analyzer = FakeAnalyzer(failures={
        "https://gone.com": PageFetchError("The specified page was not found (404 error).", 404),
    })
    job = await _job_with_urls(store, storage, urls)

    await BulkAnalysisRunner(store, analyzer.analyze, storage).process_job(job.id)

    done = await store.get_job(job.id)
    assert done.status == JobStatus.COMPLETED
    row = pl.read_csv(done.result_file_path, infer_schema_length=0).row(1, named=True)
    assert "404" in row["Error_Message"]
    assert row["URL"] == "https://gone.com"


@pytest.mark.asyncio
async def test_concurrent_calls_process_job_once(store, storage):
    urls = [f"https://site{i}.com" for i in range(4)]
    analyzer = FakeAnalyzer(delays={url: 0.01 for url in urls})
    job = await _job_with_urls(store, storage, urls)
    runner = BulkAnalysisRunner(store, analyzer.analyze, storage, batch_size=2)

    await asyncio.gather(runner.process_job(job.id), runner.process_job(job.id))

    assert len(analyzer.calls) == 4
    done = await store.get_job(job.id)
    assert done.status == JobStatus.COMPLETED
    assert len(await store.list_url_results(job.id)) == 4


@pytest.mark.asyncio
async def test_missing_upload_fails_job(store, storage):
    job = await store.create_job("session", "sites.csv", 2)

    await BulkAnalysisRunner(store, FakeAnalyzer().analyze, storage).process_job(job.id)

    done = await store.get_job(job.id)
    assert done.status == JobStatus.FAILED
    assert done.completed_at is not None
    assert done.result_file_path is None


@pytest.mark.asyncio
async def test_unknown_job_is_ignored(store, storage):
    runner = BulkAnalysisRunner(store, FakeAnalyzer().analyze, storage)

    await runner.process_job("does-not-exist")

    assert runner.processing_jobs() == []


@pytest.mark.asyncio
async def test_cancelled_job_stops_after_current_batch(store, storage):
    urls = ["https://a.com", "https://b.com", "https://c.com"]
    job = await _job_with_urls(store, storage, urls)
    calls = []

    async def cancelling_analyze(url):
        calls.append(url)
        if url == "https://a.com":
            await store.update_job(job.id, status=JobStatus.FAILED)
        return analyze_html(full_page_html(), url)

    await BulkAnalysisRunner(store, cancelling_analyze, storage, batch_size=1).process_job(job.id)

    done = await store.get_job(job.id)
    assert done.status == JobStatus.FAILED
    assert calls == ["https://a.com"]
    assert done.result_file_path is None


def test_batch_size_must_be_positive(store, storage):
    with pytest.raises(ValueError):
        BulkAnalysisRunner(store, FakeAnalyzer().analyze, storage, batch_size=0)


@pytest.mark.asyncio
async def test_job_cancelled_before_start_is_skipped(store, storage):
    job = await _job_with_urls(store, storage, ["https://a.com"])
    await store.update_job(job.id, status=JobStatus.FAILED, completed_at="2024-05-01T12:00:00+00:00")
    analyzer = FakeAnalyzer()
    events = []
    runner = BulkAnalysisRunner(
        store, analyzer.analyze, storage,
        notify=lambda event, job_id, payload: events.append((event, payload)),
    )

    await runner.process_job(job.id)

    done = await store.get_job(job.id)
    assert done.status == JobStatus.FAILED
    assert done.completed_at == "2024-05-01T12:00:00+00:00"
    assert done.processed_urls == 0
    assert analyzer.calls == []
    assert events[-1] == ("job-failed", {"error": "cancelled"})
    assert not runner.is_processing(job.id)


@pytest.mark.asyncio
async def test_progress_percentage_rounds_half_up(store, storage):
    urls = [f"https://site{i}.com" for i in range(8)]
    job = await _job_with_urls(store, storage, urls)
    events = []
    runner = BulkAnalysisRunner(
        store, FakeAnalyzer().analyze, storage, batch_size=8,
        notify=lambda event, job_id, payload: events.append((event, payload)),
    )

    await runner.process_job(job.id)

    percentages = [payload["percentage"] for event, payload in events if event == "job-progress"]
    assert percentages[0] == 13
    assert percentages[-1] == 100
