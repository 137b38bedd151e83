"""The Pattern: a weekly synthesis of the past week's cached articles.

Finds the non-obvious thread connecting a week of stories with one LLM call.
If the call or its parsing fails, a fallback pattern flagged with
``error: true`` is produced so the front end always has something to show.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ..news.models import CachedArticle
from ..prompts import render
from ..utils.dates import parse_timestamp, to_iso, utc_now
from .summarizer import strip_code_fence

logger = logging.getLogger(__name__)


@dataclass
class PatternResult:
    pattern: dict
    fallback: bool


def week_id(now: datetime) -> str:
    """ISO week label, e.g. "2024-w47"."""
    year, week, _ = now.isocalendar()
    return f"{year}-w{week:02d}"


def select_week_articles(
    articles: list[CachedArticle], days: int, now: datetime
) -> list[dict]:
    """Articles published in the last ``days`` days, oldest first, trimmed for the prompt."""
    cutoff = now - timedelta(days=days)
    selected = []
    for article in articles:
        published = parse_timestamp(article.published_at)
        if published < cutoff or published > now:
            continue
        selected.append(
            {
                "title": article.title,
                "date": article.published_at,
                "dayOfWeek": published.strftime("%a"),
                "summary": article.speedrun,
                "source": article.source,
                "category": article.category.value,
                "url": article.url,
            }
        )
    return sorted(selected, key=lambda a: parse_timestamp(a["date"]))


def extract_json_object(text: str) -> dict:
    """Parse the outermost {...} of a model response.

    Raises:
        ValueError: If no JSON object can be parsed
    """
    content = strip_code_fence(text)
    start = content.find("{")
    end = content.rfind("}")
    if start != -1 and end != -1:
        content = content[start : end + 1]
    data = json.loads(content)
    if not isinstance(data, dict):
        raise ValueError("pattern response is not a JSON object")
    return data


class PatternGenerator:
    """Builds The Pattern from cached articles."""

    def __init__(
        self,
        llm,
        days: int = 7,
        min_articles: int = 3,
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ):
        self.llm = llm
        self.days = days
        self.min_articles = min_articles
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(
        self, articles: list[CachedArticle], now: Optional[datetime] = None
    ) -> Optional[PatternResult]:
        """
        Generate this week's pattern.

        Returns:
            PatternResult, or None if there are too few articles to analyze
        """
        now = now or utc_now()
        week = select_week_articles(articles, self.days, now)
        logger.info("[PATTERN] Found %d articles from the past %d days", len(week), self.days)

        if len(week) < self.min_articles:
            logger.warning("[PATTERN] Not enough articles for meaningful pattern analysis")
            return None

        articles_text = "\n".join(
            f'{a["dayOfWeek"]}: "{a["title"]}" ({a["source"]})\nSummary: {a["summary"]}\n'
            for a in week
        )
        prompt = render("pattern", article_count=str(len(week)), articles=articles_text)

        try:
            text = await self.llm.complete(
                prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                step="pattern",
            )
            pattern = extract_json_object(text)
        except Exception as e:
            logger.error("[PATTERN] Generation failed: %s", e)
            return PatternResult(pattern=self._fallback(week, now), fallback=True)

        pattern.update(
            {
                "week_id": week_id(now),
                "week_start": to_iso(now - timedelta(days=self.days - 1)),
                "week_end": to_iso(now),
                "generated_at": to_iso(now),
                "article_count": len(week),
                "articles": week,
            }
        )
        logger.info("[PATTERN] Headline: %s", pattern.get("headline"))
        return PatternResult(pattern=pattern, fallback=False)

    def _fallback(self, week: list[dict], now: datetime) -> dict:
        return {
            "headline": "This Week in AI",
            "hook": "Pattern analysis unavailable",
            "story": "We're having trouble analyzing this week's patterns. Check back soon.",
            "timeline": [
                {"day": a["dayOfWeek"], "event": a["title"], "context": "Analysis pending"}
                for a in week[:5]
            ],
            "error": True,
            "week_id": week_id(now),
            "generated_at": to_iso(now),
        }
