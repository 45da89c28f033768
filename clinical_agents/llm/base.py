"""Chat backend interface.

Agents talk to a model only through ``BaseLLMProvider``: a full completion
(text plus any tool calls) via ``chat`` or text deltas via ``chat_stream``.
Backends translate ChatMessage threads and FunctionTool schemas into their
own wire format.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncGenerator, Sequence

from clinical_agents.models import ChatMessage, ToolCall

if TYPE_CHECKING:
    from clinical_agents.tools import FunctionTool


@dataclass
class LLMResponse:
    """One completed model turn.

    ``usage`` holds ``input_tokens``/``output_tokens`` when the backend
    reports them.
    """

    content: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    raw_response: Any = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class BaseLLMProvider(ABC):
    def __init__(self, api_key: str, **options: Any) -> None:
        self._api_key = api_key
        self._options = options

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @property
    @abstractmethod
    def default_model(self) -> str: ...

    def resolve_model(self, model: str | None) -> str:
        return model or self.default_model

    @abstractmethod
    async def chat(
        self,
        messages: Sequence[ChatMessage],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        system_prompt: str | None = None,
        tools: Sequence[FunctionTool] | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Run one completion.

        Args:
            messages: Thread so far, oldest first.
            model: Overrides ``default_model`` for this call.
            max_tokens: Completion budget.
            temperature: Sampling temperature.
            system_prompt: Agent instructions, sent ahead of the thread.
            tools: Functions the model may call this turn.

        Raises:
            LLMAPIError: The backend rejected or failed the request.
        """

    @abstractmethod
    def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> AsyncGenerator[str, None]:
        """Yield text deltas as the model produces them; no tool calling.

        Raises:
            LLMAPIError: The backend rejected or failed the request.
        """
