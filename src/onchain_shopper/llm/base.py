"""Provider-neutral data structures and the provider base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ToolDefinition:
    """A tool as advertised to the model: name, description, JSON Schema."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ToolCall:
    """A single tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class LLMMessage:
    """One entry of the conversation sent to a provider.

    ``tool_calls`` is set on assistant messages that requested tools, as a
    list of ``{"id", "name", "arguments"}`` dicts.  ``tool_call_id`` is set on
    ``tool`` messages carrying a result back.
    """

    role: str  # system | user | assistant | tool
    content: str
    tool_calls: Optional[list[dict[str, Any]]] = None
    tool_call_id: Optional[str] = None


@dataclass
class LLMResponse:
    """Unified response returned by every provider."""

    content: str
    tool_calls: Optional[list[ToolCall]] = None
    usage: Optional[dict[str, int]] = None
    stop_reason: Optional[str] = None


class BaseLLMProvider(ABC):
    """Interface every model backend implements."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 4096,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens

    @abstractmethod
    async def complete(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
    ) -> LLMResponse:
        """Run one completion and return text and/or tool calls."""
