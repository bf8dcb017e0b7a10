from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
from contextlib import asynccontextmanager
import logging

from seolens.core.config import settings
from seolens.core.limiter import limiter
from seolens.api import endpoints
from seolens.services.bulk_processor import BulkAnalysisRunner
from seolens.services.job_store import InMemoryJobStore, JobStore
from seolens.services.page_fetcher import PageFetcher
from seolens.services.seo_analyzer import SeoAnalyzer
from seolens.services.storage import LocalStorageProvider, StorageProvider

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


def create_app(
    store: Optional[JobStore] = None,
    storage: Optional[StorageProvider] = None,
    analyzer: Optional[SeoAnalyzer] = None,
) -> FastAPI:
    """
    Build the API with its service objects. Tests pass their own store,
    storage and analyzer to isolate state.
    """
    logging.basicConfig(level=settings.LOG_LEVEL.upper())

    fetcher: Optional[PageFetcher] = None
    if analyzer is None:
        fetcher = PageFetcher()
        analyzer = SeoAnalyzer(fetcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Shutdown: release pooled connections
        if fetcher is not None:
            await fetcher.aclose()

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    app.state.job_store = store or InMemoryJobStore()
    app.state.storage = storage or LocalStorageProvider()
    app.state.analyzer = analyzer
    app.state.runner = BulkAnalysisRunner(
        app.state.job_store,
        analyzer.analyze,
        app.state.storage,
        batch_size=settings.BULK_BATCH_SIZE,
        url_timeout=settings.URL_ANALYSIS_TIMEOUT_SECONDS,
    )

    # Rate Limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Set all CORS enabled origins
    cors_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(endpoints.router, prefix="/api", tags=["api"])

    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "project": settings.PROJECT_NAME,
            "active_jobs": app.state.runner.processing_jobs(),
        }

    return app


app = create_app()
