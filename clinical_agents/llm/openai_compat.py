"""OpenAI-compatible LLM Provider implementation.

Works against any chat-completions endpoint that speaks the OpenAI wire
format: OpenAI itself, LM Studio, or a local vLLM / Ollama server.
"""

from __future__ import annotations

import json
import os
from typing import TYPE_CHECKING, Any, AsyncGenerator, Sequence

import httpx
import openai
from openai import AsyncOpenAI

from clinical_agents.llm.base import BaseLLMProvider, LLMResponse
from clinical_agents.models import ChatMessage, ChatRole, ToolCall
from clinical_agents.utils.exceptions import LLMAPIError
from clinical_agents.utils.logging import get_logger

if TYPE_CHECKING:
    from clinical_agents.tools import FunctionTool

logger = get_logger(__name__)


def to_openai_messages(messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
    """Convert thread messages to chat-completions dicts."""
    converted: list[dict[str, Any]] = []
    for message in messages:
        data: dict[str, Any] = {"role": message.role.value, "content": message.content}
        if message.name and message.role in (ChatRole.USER, ChatRole.ASSISTANT):
            data["name"] = message.name
        if message.tool_calls:
            data["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments),
                    },
                }
                for call in message.tool_calls
            ]
        if message.tool_call_id:
            data["tool_call_id"] = message.tool_call_id
        converted.append(data)
    return converted


def parse_tool_arguments(raw: str | None) -> dict[str, Any]:
    """Decode a tool call's JSON arguments; malformed input yields {}."""
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Malformed tool arguments", raw=raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAICompatibleProvider(BaseLLMProvider):
    """Chat completions over the openai SDK with a configurable base URL."""

    LM_STUDIO_URL = "http://localhost:1234/v1"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float = 120.0,
        **kwargs: Any,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: API key. If None, reads OPENAI_API_KEY; local servers
                accept any placeholder.
            base_url: Endpoint URL. Defaults to a local LM Studio server.
            model: Default model name.
            timeout: Request timeout in seconds.
            **kwargs: Additional configuration.
        """
        resolved_api_key = api_key or os.getenv("OPENAI_API_KEY", "") or "lm-studio"
        super().__init__(api_key=resolved_api_key, **kwargs)

        self._base_url = base_url or self.LM_STUDIO_URL
        self._model = model
        self._async_client = AsyncOpenAI(
            api_key=resolved_api_key,
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return self._model or "qwen2.5-7b-instruct"

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _with_system(
        messages: Sequence[ChatMessage], system_prompt: str | None
    ) -> list[dict[str, Any]]:
        full_messages: list[dict[str, Any]] = []
        if system_prompt:
            full_messages.append({"role": "system", "content": system_prompt})
        full_messages.extend(to_openai_messages(messages))
        return full_messages

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
        """Send a chat completion request.

        Returns:
            LLMResponse with content and parsed tool calls.

        Raises:
            LLMAPIError: If the endpoint call fails.
        """
        used_model = self.resolve_model(model)

        request_params: dict[str, Any] = {
            "model": used_model,
            "messages": self._with_system(messages, system_prompt),
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stream": False,
        }
        if tools:
            request_params["tools"] = [tool.to_openai_schema() for tool in tools]
        request_params.update(kwargs)

        try:
            response = await self._async_client.chat.completions.create(**request_params)
        except openai.OpenAIError as e:
            raise LLMAPIError(
                f"Chat completion failed: {e}",
                provider=self.provider_name,
                model=used_model,
                cause=e,
            ) from e

        content = ""
        tool_calls: list[ToolCall] = []
        finish_reason = None
        if response.choices:
            choice = response.choices[0]
            content = choice.message.content or ""
            finish_reason = choice.finish_reason
            for call in choice.message.tool_calls or []:
                tool_calls.append(
                    ToolCall(
                        id=call.id,
                        name=call.function.name,
                        arguments=parse_tool_arguments(call.function.arguments),
                    )
                )

        usage = {}
        if response.usage:
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
            }

        return LLMResponse(
            content=content,
            model=response.model,
            usage=usage,
            finish_reason=finish_reason,
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
        """Send a streaming chat completion request.

        Yields:
            String chunks of the response as they arrive.
        """
        used_model = self.resolve_model(model)

        try:
            stream = await self._async_client.chat.completions.create(
                model=used_model,
                messages=self._with_system(messages, system_prompt),  # type: ignore[arg-type]
                max_tokens=max_tokens,
                temperature=temperature,
                stream=True,
                **kwargs,
            )
            async for chunk in stream:
                if chunk.choices:
                    delta = chunk.choices[0].delta
                    if delta.content:
                        yield delta.content
        except openai.OpenAIError as e:
            raise LLMAPIError(
                f"Streaming chat completion failed: {e}",
                provider=self.provider_name,
                model=used_model,
                cause=e,
            ) from e
