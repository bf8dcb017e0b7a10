"""
Page Analysis — fetches one page, scores its tags and builds social previews.
"""
import logging
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from seolens.services.page_fetcher import PageFetcher
from seolens.services.seo_models import (
    FacebookPreview,
    GooglePreview,
    LinkedInPreview,
    SeoAnalysisResult,
    SocialPreviews,
    TwitterPreview,
)
from seolens.services.seo_scoring import PageTags, extract_page_tags, sanitize_text, score_page_tags

logger = logging.getLogger(__name__)

DEFAULT_TWITTER_CARD = "summary"


def normalize_url(url: str) -> str:
    url = url.strip()
    return url if url.startswith("http") else f"https://{url}"


def extract_domain(url: str) -> str:
    return urlparse(url).hostname or url


def build_previews(page: PageTags, url: str, display_url: str) -> SocialPreviews:
    domain = extract_domain(url)

    og_title = page.og_title or page.title
    og_description = page.og_description or page.description
    twitter_title = page.twitter_title or og_title
    twitter_description = page.twitter_description or og_description
    twitter_image = page.twitter_image or page.og_image

    return SocialPreviews(
        google=GooglePreview(
            title=sanitize_text(page.title),
            description=sanitize_text(page.description),
            url=display_url,
        ),
        facebook=FacebookPreview(
            title=sanitize_text(og_title),
            description=sanitize_text(og_description),
            image=page.og_image,
            domain=domain,
        ),
        twitter=TwitterPreview(
            title=sanitize_text(twitter_title),
            description=sanitize_text(twitter_description),
            image=twitter_image,
            card=page.twitter_card or DEFAULT_TWITTER_CARD,
            domain=domain,
        ),
        linkedin=LinkedInPreview(
            title=sanitize_text(og_title),
            description=sanitize_text(og_description),
            image=page.og_image,
            domain=domain,
        ),
    )


def analyze_html(html: str, url: str, display_url: Optional[str] = None) -> SeoAnalysisResult:
    """Score an already-fetched document. `url` is the effective (normalized) URL."""
    soup = BeautifulSoup(html, "html.parser")
    page = extract_page_tags(soup)
    scoring = score_page_tags(page)

    return SeoAnalysisResult(
        url=display_url or url,
        score=scoring.score,
        tags=scoring.tags,
        breakdown=scoring.breakdown,
        previews=build_previews(page, url, display_url or url),
        h1=sanitize_text(page.h1),
        canonical_url=page.canonical,
    )


class SeoAnalyzer:
    def __init__(self, fetcher: PageFetcher):
        self.fetcher = fetcher

    async def analyze(self, url: str) -> SeoAnalysisResult:
        target = normalize_url(url)
        html = await self.fetcher.fetch(target)
        result = analyze_html(html, target, display_url=url)
        logger.debug(f"Analyzed {target}: score={result.score}")
        return result
