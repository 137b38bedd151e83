"""LLM client using LiteLLM.

One client is built per pipeline run and passed to every component that
talks to the model, so tests can swap in a fake with the same ``complete``
signature.
"""

import logging
from typing import Optional

import litellm

from .cost_tracker import RunCosts, usage_from_response
from .retry import is_retryable_llm_error, retrying

# Suppress verbose LiteLLM logging
litellm.suppress_debug_info = True
logging.getLogger("LiteLLM").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


class LLMClient:
    """Chat-completion client with a per-call timeout, bounded retries and cost tracking."""

    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        max_attempts: int = 3,
        costs: Optional[RunCosts] = None,
    ):
        """
        Initialize the client.

        Args:
            model: LiteLLM model identifier, e.g. "gpt-4o-mini"
            api_key: Provider API key (falls back to LiteLLM's env lookup)
            timeout: Per-call timeout in seconds
            max_attempts: Total attempts per call, including the first
            costs: Accumulator for token usage across the run
        """
        self.model = model
        self.api_key = api_key or None
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.costs = costs if costs is not None else RunCosts()

    async def complete(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 1500,
        step: str = "llm",
    ) -> str:
        """
        Send a single user-role prompt and return the response text.

        Args:
            prompt: Prompt text
            temperature: Sampling temperature
            max_tokens: Maximum response tokens
            step: Pipeline step name used for cost accounting

        Returns:
            Response text content ("" if the model returned none)

        Raises:
            Exception: If the call still fails after all retry attempts
        """
        kwargs = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
            "timeout": self.timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key

        response = await retrying("LLM", self.max_attempts, is_retryable_llm_error)(
            litellm.acompletion, **kwargs
        )
        text = response.choices[0].message.content or ""

        usage = usage_from_response(response)
        self.costs.record(step, self.model, usage)
        logger.debug(
            "[LLM] %s: %d in / %d out tokens (%s)",
            step,
            usage.input_tokens,
            usage.output_tokens,
            self.model,
        )
        return text
