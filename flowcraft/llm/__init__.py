"""
Agent capability implementations.
"""

from .base import AgentInvoker, CallableInvoker, EchoInvoker
from .openai import OpenAIInvoker

__all__ = ["AgentInvoker", "CallableInvoker", "EchoInvoker", "OpenAIInvoker"]
