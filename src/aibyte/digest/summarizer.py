"""Multi-audience article summaries via a single LLM call.

The model is asked for a JSON object with a narrative "speedrun", two
"why it matters" bullets and three lenses (eli12, pm, engineer). Word-count
targets live in the prompt only. Malformed output is replaced with a fixed
placeholder so every article carries a structurally valid summary.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from ..news.models import ArticleSummary, Lenses
from ..prompts import render

logger = logging.getLogger(__name__)

PROMPT_VERSION = "v2.0"

_FENCE_OPEN = re.compile(r"^\s*```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```\s*$")


def placeholder_summary() -> ArticleSummary:
    """Summary used when the model response cannot be parsed."""
    return ArticleSummary(
        speedrun="Unable to summarize article at this time.",
        why_it_matters=[
            "Unable to summarize: summary unavailable.",
            "Unable to summarize: please check the original source.",
        ],
        lenses=Lenses(
            eli12="Unable to summarize: we couldn't process this article right now.",
            pm="Unable to summarize: check the original source for details.",
            engineer="Unable to summarize: the model response was malformed.",
        ),
    )


def strip_code_fence(text: str) -> str:
    """Remove a markdown code-fence wrapper, if any."""
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", text or "", count=1)).strip()


def parse_summary(text: str) -> Optional[ArticleSummary]:
    """Parse a model response into an ArticleSummary, or None if malformed."""
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    try:
        return ArticleSummary.model_validate(data)
    except ValidationError:
        return None


@dataclass
class SummaryResult:
    """Summary plus provenance for the cache entry."""

    summary: ArticleSummary
    model: str
    prompt_version: str
    placeholder: bool = False


class Summarizer:
    """Produces the structured digest for one article."""

    def __init__(self, llm, temperature: float = 0.3, max_tokens: int = 1200):
        """
        Initialize summarizer.

        Args:
            llm: Client exposing ``async complete(...)`` and a ``model`` attribute
            temperature: Sampling temperature for summaries
            max_tokens: Maximum response tokens
        """
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def summarize(self, title: str, lede: str, body: str) -> SummaryResult:
        """
        Summarize one article.

        Raises:
            Exception: If the LLM call itself fails after retries. Malformed
                output does not raise.
        """
        prompt = render("summarize", article=f"{title}\n\n{lede}\n\n{body}")
        text = await self.llm.complete(
            prompt,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            step="summarize",
        )

        summary = parse_summary(text)
        placeholder = summary is None
        if placeholder:
            logger.warning(
                "[SUMMARIZER] Malformed response for %r (%d chars), using placeholder",
                title[:60],
                len(text or ""),
            )
            summary = placeholder_summary()

        return SummaryResult(
            summary=summary,
            model=getattr(self.llm, "model", "unknown"),
            prompt_version=PROMPT_VERSION,
            placeholder=placeholder,
        )
