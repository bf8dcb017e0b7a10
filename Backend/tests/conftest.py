"""
Test configuration and fixtures for the SEOLens API.

Environment is set before any seolens import so the settings singleton,
the rate limiter and the module-level app pick up test values.
"""
import asyncio
import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="seolens-tests-")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_ROOT, "uploads")
os.environ["RESULTS_DIR"] = os.path.join(_TEST_ROOT, "results")

from typing import Dict, Generator, Optional

import pytest
from fastapi.testclient import TestClient

from seolens.services.job_store import InMemoryJobStore
from seolens.services.seo_analyzer import analyze_html
from seolens.services.seo_models import SeoAnalysisResult
from seolens.services.storage import LocalStorageProvider


TITLE_45 = "A" * 45
DESCRIPTION_140 = "D" * 140


def full_page_html(title: str = TITLE_45, description: str = DESCRIPTION_140) -> str:
    return f"""
    <html><head>
      <title>{title}</title>
      <meta name="description" content="{description}">
      <meta name="robots" content="index, follow">
      <meta property="og:title" content="OG Title">
      <meta property="og:description" content="OG Description">
      <meta property="og:image" content="https://example.com/og.png">
      <meta name="twitter:card" content="summary_large_image">
      <meta name="twitter:title" content="Twitter Title">
      <meta name="twitter:description" content="Twitter Description">
      <meta name="twitter:image" content="https://example.com/tw.png">
      <link rel="canonical" href="https://example.com/">
    </head><body><h1>Welcome</h1></body></html>
    """


class FakeAnalyzer:
    """
    Stands in for SeoAnalyzer. Serves canned HTML per URL; URLs listed in
    `failures` raise, URLs listed in `delays` sleep first.
    """

    def __init__(self, pages: Optional[Dict[str, str]] = None,
                 failures: Optional[Dict[str, Exception]] = None,
                 delays: Optional[Dict[str, float]] = None):
        self.pages = pages or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls = []

    async def analyze(self, url: str) -> SeoAnalysisResult:
        self.calls.append(url)
        if url in self.delays:
            await asyncio.sleep(self.delays[url])
        if url in self.failures:
            raise self.failures[url]
        return analyze_html(self.pages.get(url, full_page_html()), url)


@pytest.fixture
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture
def storage(tmp_path) -> LocalStorageProvider:
    return LocalStorageProvider(
        upload_dir=str(tmp_path / "uploads"),
        results_dir=str(tmp_path / "results"),
    )


@pytest.fixture
def fake_analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture
def test_app(store, storage, fake_analyzer):
    from seolens.main import create_app

    return create_app(store=store, storage=storage, analyzer=fake_analyzer)


@pytest.fixture
def client(test_app) -> Generator[TestClient, None, None]:
    with TestClient(test_app) as test_client:
        yield test_client
