"""Bounded exponential-backoff retry for feed fetches and LLM calls."""

import logging
from typing import Callable

import httpx
import litellm
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter

logger = logging.getLogger(__name__)

_RETRYABLE_LLM_ERRORS = (
    litellm.RateLimitError,
    litellm.APIConnectionError,
    litellm.Timeout,
    litellm.ServiceUnavailableError,
    litellm.InternalServerError,
)


def is_retryable_llm_error(exc: BaseException) -> bool:
    return isinstance(exc, _RETRYABLE_LLM_ERRORS)


def is_retryable_http_error(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status in {408, 429} or status >= 500
    return isinstance(exc, httpx.TransportError)


def retrying(
    label: str,
    max_attempts: int,
    predicate: Callable[[BaseException], bool],
    initial_wait: float = 0.5,
    max_wait: float = 8.0,
) -> AsyncRetrying:
    """Build a retry controller; call it as ``await retrying(...)(fn, *args)``."""

    def _log_retry(retry_state) -> None:
        logger.warning(
            "[%s] Call failed (attempt %d/%d), retrying: %s",
            label,
            retry_state.attempt_number,
            max_attempts,
            retry_state.outcome.exception(),
        )

    return AsyncRetrying(
        retry=retry_if_exception(predicate),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential_jitter(initial=initial_wait, max=max_wait, jitter=1),
        reraise=True,
        before_sleep=_log_retry,
    )
