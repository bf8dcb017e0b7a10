"""
seo_scoring.py
~~~~~~~~~~~~~~
Deterministic point-deduction rubric for on-page SEO tags.

Every page starts at 100. Missing or badly sized tags deduct points and
produce a breakdown entry; the final score is floored at 0.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from seolens.services.seo_models import ScoreBreakdownEntry, SeoTag

logger = logging.getLogger(__name__)

# ─── Rubric ──────────────────────────────────────────────────────────────────
MAX_SCORE = 100
PLACEHOLDER = "-"

TITLE_MISSING_DEDUCTION = 25
TITLE_LENGTH_DEDUCTION = 10
TITLE_MIN_LENGTH, TITLE_MAX_LENGTH = 30, 60

DESCRIPTION_MISSING_DEDUCTION = 20
DESCRIPTION_LENGTH_DEDUCTION = 10
DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH = 120, 160

PRESENCE_DEDUCTION = 5

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


def sanitize_text(text: str) -> str:
    """Strip script blocks, then any remaining markup, then whitespace."""
    if not text:
        return ""
    text = _SCRIPT_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    return text.strip()


@dataclass
class PageTags:
    """Raw (trimmed, unsanitized) tag values pulled from a page."""
    title: str = ""
    description: str = ""
    robots: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    twitter_card: str = ""
    twitter_title: str = ""
    twitter_description: str = ""
    twitter_image: str = ""
    h1: str = ""
    canonical: str = ""


@dataclass
class ScoringResult:
    tags: list[SeoTag] = field(default_factory=list)
    breakdown: list[ScoreBreakdownEntry] = field(default_factory=list)
    score: int = MAX_SCORE


# ─── Extraction ──────────────────────────────────────────────────────────────

def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return ""
    return (tag.get("content") or "").strip()


def extract_page_tags(soup: BeautifulSoup) -> PageTags:
    title_tag = soup.find("title")
    h1_tag = soup.find("h1")
    canonical_tag = soup.find("link", attrs={"rel": "canonical"})

    return PageTags(
        title=title_tag.get_text().strip() if title_tag else "",
        description=_meta_content(soup, name="description"),
        robots=_meta_content(soup, name="robots"),
        og_title=_meta_content(soup, property="og:title"),
        og_description=_meta_content(soup, property="og:description"),
        og_image=_meta_content(soup, property="og:image"),
        twitter_card=_meta_content(soup, name="twitter:card"),
        twitter_title=_meta_content(soup, name="twitter:title"),
        twitter_description=_meta_content(soup, name="twitter:description"),
        twitter_image=_meta_content(soup, name="twitter:image"),
        h1=h1_tag.get_text(strip=True) if h1_tag else "",
        canonical=(canonical_tag.get("href") or "").strip() if canonical_tag else "",
    )


# ─── Scoring ─────────────────────────────────────────────────────────────────

class _Scorecard:
    def __init__(self) -> None:
        self.result = ScoringResult()

    def good(self, tag: str, content: str, feedback: str) -> None:
        self.result.tags.append(
            SeoTag(tag=tag, content=content, status="good", feedback=feedback, deduction=0)
        )

    def deduct(self, tag: str, content: str, status: str, feedback: str,
               category: str, issue: str, points: int) -> None:
        self.result.tags.append(
            SeoTag(tag=tag, content=content, status=status, feedback=feedback, deduction=points)
        )
        self.result.breakdown.append(ScoreBreakdownEntry(tag=category, issue=issue, deduction=points))
        self.result.score -= points

    def finish(self) -> ScoringResult:
        self.result.score = max(0, self.result.score)
        return self.result


def _score_length(card: _Scorecard, *, tag: str, value: str, label: str,
                  missing_feedback: str, missing_issue: str, missing_points: int,
                  length_points: int, min_length: int, max_length: int,
                  recommended: str) -> None:
    if not value:
        card.deduct(tag, PLACEHOLDER, "missing", missing_feedback,
                    tag, missing_issue, missing_points)
        return

    length = len(value)
    content = sanitize_text(value)
    if length < min_length:
        card.deduct(tag, content, "warning",
                    f"{label} is too short ({length} chars, recommended {recommended})",
                    tag, f"{label} too short", length_points)
    elif length > max_length:
        card.deduct(tag, content, "warning",
                    f"{label} is too long ({length} chars, recommended {recommended})",
                    tag, f"{label} too long", length_points)
    else:
        card.good(tag, content, f"Perfect length ({length} chars)")


def _score_presence(card: _Scorecard, *, tag: str, value: str, category: str,
                    missing_feedback: str, issue: str, good_feedback: str,
                    sanitize: bool = True) -> None:
    if not value:
        card.deduct(tag, PLACEHOLDER, "missing", missing_feedback,
                    category, issue, PRESENCE_DEDUCTION)
    else:
        card.good(tag, sanitize_text(value) if sanitize else value, good_feedback)


def score_page_tags(page: PageTags) -> ScoringResult:
    """Apply the rubric to already-extracted tags. Pure; order of checks is fixed."""
    card = _Scorecard()

    _score_length(
        card, tag="Title", value=page.title, label="Title",
        missing_feedback="Title tag is missing", missing_issue="Missing title tag",
        missing_points=TITLE_MISSING_DEDUCTION, length_points=TITLE_LENGTH_DEDUCTION,
        min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH, recommended="50-60",
    )
    _score_length(
        card, tag="Meta Description", value=page.description, label="Description",
        missing_feedback="Meta description is missing", missing_issue="Missing meta description",
        missing_points=DESCRIPTION_MISSING_DEDUCTION, length_points=DESCRIPTION_LENGTH_DEDUCTION,
        min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH, recommended="150-160",
    )

    _score_presence(card, tag="Meta Robots", value=page.robots, category="Meta Robots",
                    missing_feedback="Meta robots tag is missing",
                    issue="Missing robots tag", good_feedback="Properly configured")

    _score_presence(card, tag="OG Title", value=page.og_title, category="Open Graph",
                    missing_feedback="Open Graph title is missing",
                    issue="Missing OG title", good_feedback="Present and configured")
    _score_presence(card, tag="OG Description", value=page.og_description, category="Open Graph",
                    missing_feedback="Open Graph description is missing",
                    issue="Missing OG description", good_feedback="Good content")
    _score_presence(card, tag="OG Image", value=page.og_image, category="Open Graph",
                    missing_feedback="Open Graph image is missing",
                    issue="Missing OG image", good_feedback="Image present", sanitize=False)

    _score_presence(card, tag="Twitter Card", value=page.twitter_card, category="Twitter Card",
                    missing_feedback="Twitter card type is missing",
                    issue="Missing card type", good_feedback="Card type configured")
    _score_presence(card, tag="Twitter Title", value=page.twitter_title, category="Twitter Card",
                    missing_feedback="Twitter title is missing",
                    issue="Missing Twitter title", good_feedback="Present and configured")
    _score_presence(card, tag="Twitter Description", value=page.twitter_description,
                    category="Twitter Card",
                    missing_feedback="Twitter description is missing",
                    issue="Missing Twitter description", good_feedback="Good content")
    _score_presence(card, tag="Twitter Image", value=page.twitter_image, category="Twitter Card",
                    missing_feedback="Twitter image is missing",
                    issue="Missing Twitter image", good_feedback="Image present", sanitize=False)

    return card.finish()


def analyze_seo_tags(soup: BeautifulSoup) -> ScoringResult:
    return score_page_tags(extract_page_tags(soup))
