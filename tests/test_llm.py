"""
Tests for the agent capability implementations.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from structlog.testing import capture_logs

from flowcraft.config import InvalidSettingError, settings
from flowcraft.llm import CallableInvoker, EchoInvoker, OpenAIInvoker
from flowcraft.utils.retry import llm_retrying


def _completion(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.usage.total_tokens = 42
    return response


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", None)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


def test_missing_api_key_raises(no_api_key):
    with pytest.raises(InvalidSettingError):
        OpenAIInvoker()


def test_api_key_from_environment(no_api_key, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")

    invoker = OpenAIInvoker()

    assert invoker.client is not None


@pytest.mark.asyncio
async def test_openai_invoke_builds_chat_request():
    invoker = OpenAIInvoker(api_key="sk-test", model_name="gpt-test", max_tokens=128)
    invoker.client = MagicMock()
    invoker.client.chat.completions.create = AsyncMock(return_value=_completion("hi there"))

    reply = await invoker.invoke("Be brief", "hello", temperature=0.1)

    assert reply == "hi there"
    kwargs = invoker.client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["temperature"] == 0.1
    assert kwargs["max_tokens"] == 128
    assert kwargs["messages"] == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "hello"},
    ]


@pytest.mark.asyncio
async def test_openai_invoke_defaults_and_empty_prompt():
    invoker = OpenAIInvoker(api_key="sk-test")
    invoker.client = MagicMock()
    invoker.client.chat.completions.create = AsyncMock(return_value=_completion(None))

    reply = await invoker.invoke("", "hello", model="step-model")

    assert reply == ""
    kwargs = invoker.client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "step-model"
    assert kwargs["temperature"] == settings.default_temperature
    assert kwargs["messages"] == [{"role": "user", "content": "hello"}]
    assert "max_tokens" not in kwargs


@pytest.mark.asyncio
async def test_openai_non_retryable_error_propagates():
    invoker = OpenAIInvoker(api_key="sk-test")
    invoker.client = MagicMock()
    invoker.client.chat.completions.create = AsyncMock(side_effect=ValueError("bad request"))

    with pytest.raises(ValueError):
        await invoker.invoke("", "hello")

    assert invoker.client.chat.completions.create.await_count == 1


@pytest.fixture
def fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "llm_max_attempts", 3)
    monkeypatch.setattr(settings, "llm_retry_min_wait", 0.0)
    monkeypatch.setattr(settings, "llm_retry_max_wait", 0.0)


@pytest.mark.asyncio
async def test_openai_transient_error_is_retried(fast_retries, monkeypatch):
    monkeypatch.setattr("flowcraft.llm.openai.OPENAI_RETRYABLE", (ConnectionError,))
    invoker = OpenAIInvoker(api_key="sk-test")
    invoker.client = MagicMock()
    invoker.client.chat.completions.create = AsyncMock(
        side_effect=[ConnectionError("reset"), _completion("second time")]
    )

    with capture_logs() as logs:
        reply = await invoker.invoke("", "hello")

    assert reply == "second time"
    assert invoker.client.chat.completions.create.await_count == 2
    retries = [entry for entry in logs if entry["event"] == "llm_retry"]
    assert len(retries) == 1
    assert retries[0]["attempt"] == 1
    assert retries[0]["error_type"] == "ConnectionError"


@pytest.mark.asyncio
async def test_retry_attempts_come_from_settings(fast_retries, monkeypatch):
    monkeypatch.setattr(settings, "llm_max_attempts", 2)
    calls = []

    with pytest.raises(ConnectionError):
        async for attempt in llm_retrying((ConnectionError,)):
            with attempt:
                calls.append(attempt.retry_state.attempt_number)
                raise ConnectionError("down")

    assert calls == [1, 2]


def test_api_key_is_not_serialized():
    invoker = OpenAIInvoker(api_key="sk-secret", model_name="gpt-test")

    dumped = invoker.model_dump()

    assert "api_key" not in dumped
    assert "client" not in dumped
    assert dumped["model_name"] == "gpt-test"


@pytest.mark.asyncio
async def test_echo_invoker():
    assert await EchoInvoker().invoke("ignored", "ping") == "ping"
    assert await EchoInvoker(prefix="echo: ").invoke("", "ping") == "echo: ping"


@pytest.mark.asyncio
async def test_callable_invoker_handles_none():
    invoker = CallableInvoker(func=lambda system_prompt, user_message: None)
    assert await invoker.invoke("", "x") == ""
