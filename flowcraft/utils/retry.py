"""
Retry policy for calls to external agent capabilities.

The workflow engine never retries a step; only the capability call inside
an agent step is retried, and only for transient error types. Attempts and
backoff come from FlowcraftSettings at call time.
"""

from typing import Type

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from flowcraft.config import settings
from flowcraft.utils.logging import get_logger

logger = get_logger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "llm_retry",
        attempt=retry_state.attempt_number,
        max_attempts=settings.llm_max_attempts,
        wait_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
        error=str(error) if error else None,
        error_type=type(error).__name__ if error else None,
    )


def llm_retrying(
    exceptions: tuple[Type[BaseException], ...],
    max_attempts: int | None = None,
) -> AsyncRetrying:
    """
    Build a tenacity controller for one capability call.

    Usage:
        async for attempt in llm_retrying(OPENAI_RETRYABLE):
            with attempt:
                response = await client.chat.completions.create(**params)
    """
    return AsyncRetrying(
        reraise=True,
        stop=stop_after_attempt(max_attempts or settings.llm_max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=settings.llm_retry_min_wait,
            max=settings.llm_retry_max_wait,
        ),
        retry=retry_if_exception_type(exceptions),
        before_sleep=_log_retry,
    )


__all__ = ["llm_retrying"]
