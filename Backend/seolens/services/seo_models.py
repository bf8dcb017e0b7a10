"""
seo_models.py
~~~~~~~~~~~~~
Pydantic models shared by the scoring engine, the analyzer and the bulk
pipeline. API payloads serialize with camelCase aliases.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NO_ISSUES_SUMMARY = "No issues found"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Scoring ─────────────────────────────────────────────────────────────────

class SeoTag(CamelModel):
    tag: str
    content: str
    status: Literal["good", "warning", "missing", "error"]
    feedback: str
    deduction: int = Field(default=0, ge=0)


class ScoreBreakdownEntry(CamelModel):
    tag: str
    issue: str
    deduction: int = Field(ge=0)


# ─── Social Previews ─────────────────────────────────────────────────────────

class GooglePreview(CamelModel):
    title: str
    description: str
    url: str


class FacebookPreview(CamelModel):
    title: str
    description: str
    image: Optional[str] = None
    domain: str


class TwitterPreview(CamelModel):
    title: str
    description: str
    image: Optional[str] = None
    card: str
    domain: str


class LinkedInPreview(CamelModel):
    title: str
    description: str
    image: Optional[str] = None
    domain: str


class SocialPreviews(CamelModel):
    google: GooglePreview
    facebook: FacebookPreview
    twitter: TwitterPreview
    linkedin: LinkedInPreview


class SeoAnalysisResult(CamelModel):
    url: str
    score: int = Field(ge=0, le=100)
    tags: list[SeoTag]
    breakdown: list[ScoreBreakdownEntry]
    previews: SocialPreviews
    h1: str = ""
    canonical_url: str = ""


# ─── Bulk Export Row ─────────────────────────────────────────────────────────

class BulkRow(CamelModel):
    """One CSV-ready line of a bulk job's output."""
    url: str
    seo_score: int = 0
    title_tag: str = ""
    title_length: int = 0
    meta_description: str = ""
    meta_description_length: int = 0
    h1_tag: str = ""
    og_title: str = ""
    og_description: str = ""
    og_image: str = ""
    twitter_title: str = ""
    twitter_description: str = ""
    twitter_card: str = ""
    robots_tag: str = ""
    canonical_url: str = ""
    analysis_date: str = ""
    score_breakdown: list[ScoreBreakdownEntry] = Field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def breakdown_summary(self) -> str:
        if self.score_breakdown:
            return "; ".join(
                f"{item.tag}: {item.issue} (-{item.deduction}pts)"
                for item in self.score_breakdown
            )
        # Failed rows carry no analysis, so there is nothing to summarize
        return "" if self.error_message else NO_ISSUES_SUMMARY
