"""LLM Provider abstraction layer.

This module provides a unified interface for OpenAI-compatible endpoints
(OpenAI, LM Studio) and Anthropic.
"""

from clinical_agents.llm.base import BaseLLMProvider, LLMResponse
from clinical_agents.llm.anthropic import AnthropicProvider
from clinical_agents.llm.openai_compat import OpenAICompatibleProvider
from clinical_agents.llm.factory import LLMProviderFactory

__all__ = [
    "BaseLLMProvider",
    "LLMResponse",
    "AnthropicProvider",
    "OpenAICompatibleProvider",
    "LLMProviderFactory",
]
