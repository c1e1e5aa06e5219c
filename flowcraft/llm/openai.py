"""
OpenAI-backed agent capability.
"""

import os

from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from pydantic import Field, SecretStr

from flowcraft.config import InvalidSettingError, settings
from flowcraft.llm.base import AgentInvoker
from flowcraft.utils.logging import get_logger
from flowcraft.utils.retry import llm_retrying

logger = get_logger(__name__)

# Retryable exceptions for OpenAI
OPENAI_RETRYABLE = (
    APIConnectionError,
    RateLimitError,
    InternalServerError,
    APITimeoutError,
)


class OpenAIInvoker(AgentInvoker):
    """
    Chat-completion invoker for OpenAI and OpenAI-compatible endpoints.

    API key resolution: argument > settings > OPENAI_API_KEY env.
    """

    model_name: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)
    api_key: SecretStr | None = Field(default=None, exclude=True)
    base_url: str | None = None
    client: AsyncOpenAI | None = Field(default=None, exclude=True)

    def model_post_init(self, __context) -> None:
        if self.client is None:
            if self.api_key:
                resolved_api_key = self.api_key.get_secret_value()
            elif settings.openai_api_key:
                resolved_api_key = settings.openai_api_key.get_secret_value()
            else:
                resolved_api_key = os.getenv("OPENAI_API_KEY")

            if not resolved_api_key:
                raise InvalidSettingError(
                    "OpenAI API key is not configured; set FLOWCRAFT_OPENAI_API_KEY "
                    "or OPENAI_API_KEY"
                )

            resolved_base_url = (
                self.base_url or settings.openai_base_url or os.getenv("OPENAI_BASE_URL")
            )
            self.client = AsyncOpenAI(api_key=resolved_api_key, base_url=resolved_base_url)

        super().model_post_init(__context)

    async def invoke(
        self,
        system_prompt: str,
        user_message: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        actual_model = model or self.model_name or settings.default_model
        actual_temperature = (
            temperature
            if temperature is not None
            else self.temperature
            if self.temperature is not None
            else settings.default_temperature
        )

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})

        params = {
            "model": actual_model,
            "messages": messages,
            "temperature": actual_temperature,
        }
        if self.max_tokens:
            params["max_tokens"] = self.max_tokens

        logger.info(
            "llm_request",
            model=actual_model,
            messages_count=len(messages),
            temperature=actual_temperature,
        )

        try:
            async for attempt in llm_retrying(OPENAI_RETRYABLE):
                with attempt:
                    response = await self.client.chat.completions.create(**params)
        except Exception as e:
            logger.error(
                "llm_request_failed",
                model=actual_model,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise

        content = (response.choices[0].message.content or "") if response.choices else ""
        usage = getattr(response, "usage", None)
        logger.info(
            "llm_response",
            model=actual_model,
            content_length=len(content),
            total_tokens=getattr(usage, "total_tokens", None),
        )
        return content


__all__ = ["OpenAIInvoker", "OPENAI_RETRYABLE"]
