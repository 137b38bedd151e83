"""Hype meter: a deterministic 1-5 estimate of how inflated an article's claims are.

Weighs hype vocabulary (superlatives, strong claims, novelty words) against
evidence vocabulary (numbers, methodology, hedging), then nudges the result
by source credibility, speculative vs. immediate timeframes and a small
per-category bias. Pure and total: any input yields an int in [1, 5].
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

_DEFAULT_LEXICON = Path(__file__).parent.parent / "config" / "hype_lexicon.yaml"

MIN_SCORE = 1
MAX_SCORE = 5


@dataclass
class _TermGroup:
    weight: float
    patterns: list[re.Pattern]


@dataclass
class HypeBreakdown:
    """Intermediate scores, kept for logging and tests."""

    hype: float
    evidence: float
    delta: float
    score: int


def load_lexicon(path: Optional[Path] = None) -> dict:
    """Load the hype lexicon YAML."""
    with open(path or _DEFAULT_LEXICON) as f:
        return yaml.safe_load(f)


def _compile_group(group: dict) -> _TermGroup:
    patterns = [
        re.compile(rf"(?<!\w){re.escape(term.lower())}(?!\w)")
        for term in group.get("terms", [])
    ]
    patterns.extend(re.compile(p, re.IGNORECASE) for p in group.get("patterns", []))
    return _TermGroup(weight=float(group.get("weight", 1.0)), patterns=patterns)


class HypeScorer:
    """Scores title + summary text on the 1-5 hype meter."""

    def __init__(self, lexicon: Optional[dict] = None):
        """Initialize scorer from a lexicon dict (default: packaged hype_lexicon.yaml)."""
        lexicon = lexicon if lexicon is not None else load_lexicon()

        self.max_hits = int(lexicon.get("max_hits", 3))
        self.hype_groups = [_compile_group(g) for g in lexicon.get("hype", {}).values()]
        self.evidence_groups = [_compile_group(g) for g in lexicon.get("evidence", {}).values()]
        self.not_specified_penalty = float(lexicon.get("not_specified_penalty", 0.0))

        sources = lexicon.get("sources", {})
        credible = sources.get("credible", {})
        low = sources.get("low_credibility", {})
        self.credible_sources = [n.lower() for n in credible.get("names", [])]
        self.credible_bonus = float(credible.get("bonus", 0.0))
        self.low_credibility_sources = [n.lower() for n in low.get("names", [])]
        self.low_credibility_penalty = float(low.get("penalty", 0.0))

        timeframes = lexicon.get("timeframes", {})
        self.speculative = _compile_group(timeframes.get("speculative", {}))
        self.immediate = _compile_group(timeframes.get("immediate", {}))

        self.category_bias = {
            str(k): float(v) for k, v in lexicon.get("category_bias", {}).items()
        }
        self.evidence_weight = float(lexicon.get("evidence_weight", 1.0))
        self.thresholds = [
            (float("inf") if bound is None else float(bound), int(score))
            for bound, score in lexicon.get("thresholds", [])
        ]

    def score(self, title, source, category, summary_text) -> int:
        """Return the hype meter value (1-5) for an article."""
        return self.breakdown(title, source, category, summary_text).score

    def breakdown(self, title, source, category, summary_text) -> HypeBreakdown:
        text = f"{title or ''}\n{summary_text or ''}".lower()
        source_name = str(source or "").lower()
        category_key = str(getattr(category, "value", category) or "")

        hype = sum(self._group_score(g, text) for g in self.hype_groups)
        evidence = sum(self._group_score(g, text) for g in self.evidence_groups)

        evidence -= text.count("not specified") * self.not_specified_penalty

        if any(name in source_name for name in self.credible_sources):
            evidence += self.credible_bonus
        if any(name in source_name for name in self.low_credibility_sources):
            hype += self.low_credibility_penalty

        hype += self._group_score(self.speculative, text)
        evidence += self._group_score(self.immediate, text)

        hype += self.category_bias.get(category_key, 0.0)

        delta = hype - self.evidence_weight * evidence
        return HypeBreakdown(
            hype=hype, evidence=evidence, delta=delta, score=self._to_score(delta)
        )

    def _group_score(self, group: _TermGroup, text: str) -> float:
        hits = sum(min(len(p.findall(text)), self.max_hits) for p in group.patterns)
        return group.weight * hits

    def _to_score(self, delta: float) -> int:
        for bound, score in self.thresholds:
            if delta <= bound:
                return max(MIN_SCORE, min(MAX_SCORE, score))
        # NaN or an incomplete threshold table
        return MAX_SCORE if delta > 0 else MIN_SCORE
