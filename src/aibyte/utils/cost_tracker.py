"""LLM spend accounting for one ingest or pattern run.

Every completion is recorded under the pipeline step that made it
("classify", "summarize", "pattern"); the run totals end up in RunStats.
Prices come from LiteLLM's model pricing table.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import litellm

logger = logging.getLogger(__name__)


@dataclass
class CallUsage:
    """Tokens and price of one completion."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0


@dataclass
class StepTotals:
    """Running totals for one pipeline step."""

    model: str
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0

    def add(self, usage: CallUsage) -> None:
        self.calls += 1
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.cost_usd += usage.cost_usd


@dataclass
class RunCosts:
    """Per-step LLM usage for a single run."""

    by_step: dict[str, StepTotals] = field(default_factory=dict)

    def record(self, step: str, model: str, usage: CallUsage) -> None:
        self.by_step.setdefault(step, StepTotals(model=model)).add(usage)

    @property
    def calls(self) -> int:
        return sum(s.calls for s in self.by_step.values())

    @property
    def cost_usd(self) -> float:
        return sum(s.cost_usd for s in self.by_step.values())

    def summary(self) -> dict:
        """JSON-friendly totals, reported as RunStats.costs."""
        return {
            "calls": self.calls,
            "cost_usd": round(self.cost_usd, 6),
            "input_tokens": sum(s.input_tokens for s in self.by_step.values()),
            "output_tokens": sum(s.output_tokens for s in self.by_step.values()),
            "by_step": {
                step: {
                    "model": totals.model,
                    "calls": totals.calls,
                    "input_tokens": totals.input_tokens,
                    "output_tokens": totals.output_tokens,
                    "cost_usd": round(totals.cost_usd, 6),
                }
                for step, totals in self.by_step.items()
            },
        }


def usage_from_response(response: Any) -> CallUsage:
    """Read token counts and price off a LiteLLM completion response.

    Models missing from the pricing table are recorded at zero cost.
    """
    usage = getattr(response, "usage", None)
    try:
        cost = litellm.completion_cost(completion_response=response) or 0.0
    except Exception as e:
        logger.warning("[LLM] No price for response, recording zero cost: %s", e)
        cost = 0.0

    return CallUsage(
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        cost_usd=float(cost),
    )
