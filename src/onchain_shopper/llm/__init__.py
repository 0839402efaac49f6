"""Model access for Onchain Shopper.

A small provider abstraction (OpenAI and Anthropic behind one interface), a
router that builds the configured provider, and :func:`generate_text`, the
bounded tool-calling loop that drives a single chat turn.
"""

from onchain_shopper.llm.base import (
    BaseLLMProvider,
    LLMMessage,
    LLMResponse,
    ToolCall,
    ToolDefinition,
)
from onchain_shopper.llm.generation import GenerationResult, StepResult, ToolResult, generate_text
from onchain_shopper.llm.router import LLMRouter

__all__ = [
    "BaseLLMProvider",
    "GenerationResult",
    "LLMMessage",
    "LLMResponse",
    "LLMRouter",
    "StepResult",
    "ToolCall",
    "ToolDefinition",
    "ToolResult",
    "generate_text",
]
