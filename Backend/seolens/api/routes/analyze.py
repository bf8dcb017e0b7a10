"""
Analyze Route — Single-URL SEO analysis.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import field_validator
from urllib.parse import urlparse
import logging

from seolens.api.deps import get_analyzer
from seolens.core.limiter import limiter, ANALYZE_LIMIT
from seolens.services.page_fetcher import PageFetchError
from seolens.services.seo_analyzer import SeoAnalyzer
from seolens.services.seo_models import CamelModel, SeoAnalysisResult

logger = logging.getLogger(__name__)
router = APIRouter()


class AnalyzeRequest(CamelModel):
    url: str

    @field_validator("url")
    @classmethod
    def must_be_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Please enter a valid URL")
        return value


@router.post("/analyze", response_model=SeoAnalysisResult)
@limiter.limit(ANALYZE_LIMIT)
async def analyze_url(request: Request, body: AnalyzeRequest, analyzer: SeoAnalyzer = Depends(get_analyzer)):
    """
    Fetch one page and return its tags, score breakdown and social previews.
    """
    try:
        return await analyzer.analyze(body.url)
    except PageFetchError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        logger.error(f"SEO analysis error for {body.url}: {e}")
        raise HTTPException(500, "An error occurred while analyzing the URL. Please try again.")
