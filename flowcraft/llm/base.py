"""
Agent capability abstraction - the language-model call used by agent steps.

Responsibilities:
- Expose a single ``invoke(system_prompt, user_message) -> text`` call

Does NOT handle:
- Template resolution (done by the workflow handlers)
- Conversation history or tool calling
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict


class AgentInvoker(BaseModel, ABC):
    """
    Unified agent capability base class.

    Implementations turn resolved instructions plus a user message into a
    text reply.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    @abstractmethod
    async def invoke(
        self,
        system_prompt: str,
        user_message: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        """
        Run one agent turn.

        Args:
            system_prompt: Resolved instructions for the agent
            user_message: Resolved user message
            model: Optional per-step model override
            temperature: Optional per-step temperature override

        Returns:
            str: The agent's reply text
        """
        pass


class CallableInvoker(AgentInvoker):
    """Adapt a plain sync or async function ``(system_prompt, user_message)``."""

    func: Callable[..., Any]

    async def invoke(
        self,
        system_prompt: str,
        user_message: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        result = self.func(system_prompt, user_message)
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)


class EchoInvoker(AgentInvoker):
    """Offline stand-in that replies with the user message it was given."""

    prefix: str = ""

    async def invoke(
        self,
        system_prompt: str,
        user_message: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        return f"{self.prefix}{user_message}"


__all__ = ["AgentInvoker", "CallableInvoker", "EchoInvoker"]
