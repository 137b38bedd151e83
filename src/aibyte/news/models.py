"""Data models for sources, feed items and cached articles."""

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class Category(str, Enum):
    """The three editorial buckets every article lands in."""

    CAPABILITIES = "capabilities_and_how"
    IN_ACTION = "in_action_real_world"
    TRENDS = "trends_risks_outlook"


DEFAULT_CATEGORY = Category.CAPABILITIES

Confidence = Literal["high", "medium", "low"]


@dataclass(frozen=True)
class SourceDescriptor:
    """A configured feed source from sources.json."""

    id: str
    name: str
    rss: str
    domain: str  # used by the rule classifier
    enabled: bool = True


@dataclass
class RawFeedItem:
    """Feed entry as received from a source, before any processing."""

    title: str
    link: str
    published_at: str  # ISO-8601 UTC
    lede: str
    body: str
    source: str  # display name, part of the content hash
    domain: str


class Lenses(BaseModel):
    """Audience-specific rewrites of the same summary."""

    eli12: str
    pm: str
    engineer: str


class ArticleSummary(BaseModel):
    """Structured digest returned by the summarizer."""

    speedrun: str
    why_it_matters: list[str]
    lenses: Lenses
    headline: Optional[str] = None

    @field_validator("why_it_matters")
    @classmethod
    def exactly_two_bullets(cls, v: list[str]) -> list[str]:
        if len(v) < 2:
            raise ValueError("why_it_matters needs two bullets")
        return v[:2]

    def as_text(self) -> str:
        """Flatten all summary fields into one string for lexical scoring."""
        parts = [self.headline or "", self.speedrun, *self.why_it_matters]
        parts.extend([self.lenses.eli12, self.lenses.pm, self.lenses.engineer])
        return "\n".join(p for p in parts if p)


class ModelMeta(BaseModel):
    model: str
    prompt_version: str


class ArticleRecord(BaseModel):
    """Public projection of a cached article, as written to the feed files."""

    id: str
    share_id: Optional[str] = None
    category: Category
    category_confidence: Confidence = "low"
    title: str
    headline: Optional[str] = None
    source: str
    url: str
    published_at: str
    speedrun: str
    why_it_matters: list[str]
    lenses: Lenses
    hype_meter: int = Field(ge=1, le=5)
    processing_order: int = Field(default=0, exclude=True)

    def to_public(self) -> dict:
        return self.model_dump(mode="json")


class CachedArticle(BaseModel):
    """Durable cache entry, one file per content hash."""

    content_hash: str
    share_id: Optional[str] = None
    category: Category
    category_confidence: Confidence = "low"
    title: str
    headline: Optional[str] = None
    url: str
    source: str
    published_at: str
    raw_excerpt: str = ""
    raw_body: str = ""
    speedrun: str
    why_it_matters: list[str]
    lenses: Lenses
    hype_meter: int = Field(default=3, ge=1, le=5)
    model_meta: ModelMeta
    created_at: str
    updated_at: str
    processing_order: int = 0

    def to_record(self) -> ArticleRecord:
        return ArticleRecord(
            id=self.content_hash,
            share_id=self.share_id,
            category=self.category,
            category_confidence=self.category_confidence,
            title=self.title,
            headline=self.headline,
            source=self.source,
            url=self.url,
            published_at=self.published_at,
            speedrun=self.speedrun,
            why_it_matters=self.why_it_matters,
            lenses=self.lenses,
            hype_meter=self.hype_meter,
            processing_order=self.processing_order,
        )
