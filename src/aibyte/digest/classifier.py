"""Two-phase category classification for news items.

Cheap keyword/domain rules decide most items. Anything the rules leave
undecided goes to a single temperature-0 LLM call constrained to the three
category ids. Classification never blocks the pipeline: invalid model output
or a failed call degrades to the default category.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..news.models import DEFAULT_CATEGORY, Category, Confidence
from ..prompts import render

logger = logging.getLogger(__name__)


def _pattern(terms: tuple[str, ...]) -> re.Pattern:
    # Leading word boundary only, so "launch" also matches "launches"
    return re.compile(r"\b(?:" + "|".join(re.escape(t) for t in terms) + r")")


RESEARCH_DOMAINS = (
    "openai.com",
    "deepmind.google",
    "huggingface.co",
    "towardsdatascience.com",
)

DEPLOYMENT_TERMS = _pattern(
    (
        "launch",
        "rollout",
        "rolls out",
        "rolling out",
        "deploys",
        "deployed",
        "integrates",
        "integration",
        "partners",
        "partnership",
        "available",
        "beta",
        "ships",
    )
)

AUDIENCE_TERMS = _pattern(
    (
        "customers",
        "users",
        "enterprises",
        "businesses",
        "clients",
        "developers",
        "millions",
        "companies",
        "teams",
    )
)

POLICY_TERMS = _pattern(
    (
        "policy",
        "policies",
        "regulation",
        "regulator",
        "ethics",
        "governance",
        "risk",
        "impact",
        "jobs",
        "labor",
        "layoffs",
        "workers",
        "economy",
        "law",
        "copyright",
        "congress",
        "ai act",
    )
)


@dataclass
class ClassificationResult:
    """Chosen category plus how confident the pipeline is in it."""

    category: Category
    confidence: Confidence
    method: str  # "rules" | "llm" | "fallback"


def rule_classify(domain: str, title: str, lede: str) -> Optional[Category]:
    """
    Classify from source domain and keywords alone.

    Args:
        domain: Source domain, e.g. "openai.com"
        title: Item headline
        lede: Lead excerpt

    Returns:
        Category, or None when the rules cannot decide
    """
    text = f"{title} {lede}".lower()
    deploying = bool(DEPLOYMENT_TERMS.search(text))

    # Research sites announcing a launch fall through to the other rules
    if any(d in (domain or "") for d in RESEARCH_DOMAINS) and not deploying:
        return Category.CAPABILITIES

    if deploying and AUDIENCE_TERMS.search(text):
        return Category.IN_ACTION

    if POLICY_TERMS.search(text):
        return Category.TRENDS

    return None


class CategoryClassifier:
    """Rule phase with an LLM tie-break for undecided items."""

    def __init__(self, llm, default: Category = DEFAULT_CATEGORY):
        """
        Initialize classifier.

        Args:
            llm: Client exposing ``async complete(prompt, *, temperature, max_tokens, step)``
            default: Category used when the tie-break fails
        """
        self.llm = llm
        self.default = default

    async def classify(self, domain: str, title: str, lede: str) -> ClassificationResult:
        category = rule_classify(domain, title, lede)
        if category is not None:
            return ClassificationResult(category=category, confidence="high", method="rules")
        return await self.tie_break(title, lede)

    async def tie_break(self, title: str, lede: str) -> ClassificationResult:
        """Ask the model for a category id; never raises."""
        prompt = render("classify", title=title, lede=lede)

        try:
            content = await self.llm.complete(
                prompt, temperature=0, max_tokens=20, step="classify"
            )
        except Exception as e:
            logger.warning("[CLASSIFIER] Tie-break failed for %r: %s", title[:60], e)
            return self._fallback()

        token = (content or "").strip().strip("`'\".").strip()
        try:
            category = Category(token)
        except ValueError:
            logger.warning(
                "[CLASSIFIER] Invalid category returned: %r, defaulting to %s",
                token[:80],
                self.default.value,
            )
            return self._fallback()

        return ClassificationResult(category=category, confidence="medium", method="llm")

    def _fallback(self) -> ClassificationResult:
        return ClassificationResult(category=self.default, confidence="low", method="fallback")
