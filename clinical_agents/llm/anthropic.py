"""Anthropic LLM Provider implementation.

Translates the OpenAI-style thread (assistant ``tool_calls`` and ``tool``
role results) into Messages API content blocks.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any, AsyncGenerator, Sequence

import anthropic

from clinical_agents.llm.base import BaseLLMProvider, LLMResponse
from clinical_agents.models import ChatMessage, ChatRole, ToolCall
from clinical_agents.utils.exceptions import LLMAPIError

if TYPE_CHECKING:
    from clinical_agents.tools import FunctionTool


def to_anthropic_messages(
    messages: Sequence[ChatMessage],
) -> tuple[list[str], list[dict[str, Any]]]:
    """Split system text out and convert the rest to content-block messages.

    Consecutive messages that map to the same role are merged, since the
    Messages API requires user/assistant alternation.

    Returns:
        (system texts, converted messages)
    """
    system_parts: list[str] = []
    converted: list[dict[str, Any]] = []

    for message in messages:
        if message.role == ChatRole.SYSTEM:
            if message.content:
                system_parts.append(message.content)
            continue

        blocks: list[dict[str, Any]] = []
        if message.role == ChatRole.TOOL:
            role = "user"
            blocks.append(
                {
                    "type": "tool_result",
                    "tool_use_id": message.tool_call_id or "",
                    "content": message.content,
                }
            )
        else:
            role = message.role.value
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            for call in message.tool_calls:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.name,
                        "input": call.arguments,
                    }
                )

        if not blocks:
            continue
        if converted and converted[-1]["role"] == role:
            converted[-1]["content"].extend(blocks)
        else:
            converted.append({"role": role, "content": blocks})

    return system_parts, converted


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude API provider."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the Anthropic provider.

        Args:
            api_key: Anthropic API key. If None, reads from ANTHROPIC_API_KEY env var.
            base_url: Optional custom base URL for the API.
            model: Default model name.
            **kwargs: Additional configuration.
        """
        resolved_api_key = api_key or os.getenv("ANTHROPIC_API_KEY", "")
        super().__init__(api_key=resolved_api_key, **kwargs)

        self._model = model
        self._async_client = anthropic.AsyncAnthropic(
            api_key=resolved_api_key,
            base_url=base_url,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return self._model or "claude-haiku-4-5-20251001"

    def _request_params(
        self,
        messages: Sequence[ChatMessage],
        model: str | None,
        max_tokens: int,
        temperature: float,
        system_prompt: str | None,
    ) -> dict[str, Any]:
        system_parts, converted = to_anthropic_messages(messages)
        if system_prompt:
            system_parts.insert(0, system_prompt)

        request_params: dict[str, Any] = {
            "model": self.resolve_model(model),
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": converted,
        }
        if system_parts:
            request_params["system"] = "\n\n".join(system_parts)
        return request_params

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
        """Send a chat completion request to Anthropic.

        Raises:
            LLMAPIError: If the API call fails.
        """
        request_params = self._request_params(
            messages, model, max_tokens, temperature, system_prompt
        )
        if tools:
            request_params["tools"] = [tool.to_anthropic_schema() for tool in tools]
        request_params.update(kwargs)

        try:
            response = await self._async_client.messages.create(**request_params)
        except anthropic.AnthropicError as e:
            raise LLMAPIError(
                f"Anthropic request failed: {e}",
                provider=self.provider_name,
                model=request_params["model"],
                cause=e,
            ) from e

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(id=block.id, name=block.name, arguments=dict(block.input or {}))
                )

        return LLMResponse(
            content="".join(text_parts),
            model=response.model,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
            finish_reason=response.stop_reason,
            tool_calls=tool_calls,
            raw_response=response,
        )

    async def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> AsyncGenerator[str, None]:
        """Send a streaming chat completion request to Anthropic.

        Yields:
            String chunks of the response as they arrive.
        """
        request_params = self._request_params(
            messages, model, max_tokens, temperature, system_prompt
        )
        request_params.update(kwargs)

        try:
            async with self._async_client.messages.stream(**request_params) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.AnthropicError as e:
            raise LLMAPIError(
                f"Anthropic stream failed: {e}",
                provider=self.provider_name,
                model=request_params["model"],
                cause=e,
            ) from e
