"""
Request-scoped accessors for the services built in main.create_app().
"""
from fastapi import Request

from seolens.services.bulk_processor import BulkAnalysisRunner
from seolens.services.job_store import JobStore
from seolens.services.seo_analyzer import SeoAnalyzer
from seolens.services.storage import StorageProvider


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_storage(request: Request) -> StorageProvider:
    return request.app.state.storage


def get_runner(request: Request) -> BulkAnalysisRunner:
    return request.app.state.runner


def get_analyzer(request: Request) -> SeoAnalyzer:
    return request.app.state.analyzer


def get_session_key(request: Request) -> str:
    """Ownership partition for jobs: caller address plus user agent. Not an auth mechanism."""
    client_ip = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent", "")
    return f"{client_ip}-{user_agent}"
