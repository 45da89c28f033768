"""Agent abstraction.

A specialist is a named, instructed unit that streams text for a given
context against a shared ConversationThread. ChatAgent is the concrete
implementation backed by a BaseLLMProvider, with an optional tool loop.
"""

from __future__ import annotations

from contextlib import aclosing
from typing import Any, AsyncGenerator, Protocol, Sequence, runtime_checkable

from clinical_agents.llm import BaseLLMProvider
from clinical_agents.models import ChatMessage, ChatRole, ConversationThread, USER_AUTHOR
from clinical_agents.tools import FunctionTool
from clinical_agents.utils.logging import get_agent_logger


class AgentError(Exception):
    """Base exception for agent-related errors."""

    pass


class ToolNotFoundError(AgentError):
    """Raised when the model calls a tool the agent does not have."""

    def __init__(self, agent_name: str, tool_name: str):
        super().__init__(f"Agent '{agent_name}' has no tool '{tool_name}'")
        self.agent_name = agent_name
        self.tool_name = tool_name


@runtime_checkable
class Specialist(Protocol):
    """What the orchestrator needs from an agent."""

    @property
    def name(self) -> str: ...

    @property
    def instructions(self) -> str: ...

    def run(self, context: str, thread: ConversationThread) -> AsyncGenerator[str, None]:
        """Stream the agent's reply to ``context``, recording both in ``thread``."""
        ...

    def get_new_thread(self) -> ConversationThread: ...

    def deserialize_thread(self, data: dict[str, Any]) -> ConversationThread: ...


class ChatAgent:
    """LLM-backed specialist.

    Without tools the reply is streamed chunk by chunk. With tools, the agent
    runs non-streaming completions, executes requested calls and feeds their
    results back until the model answers with plain text, then yields that
    text as a single chunk.
    """

    def __init__(
        self,
        name: str,
        instructions: str,
        provider: BaseLLMProvider,
        tools: Sequence[FunctionTool] = (),
        description: str = "",
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        max_tool_rounds: int = 8,
    ) -> None:
        """Initialize the agent.

        Args:
            name: Roster key and message author (e.g. "ClinicalDataExtractor")
            instructions: System prompt
            provider: Chat completion backend
            tools: Functions the model may call
            description: Short role description
            model: Model override; provider default when None
            max_tokens: Completion token cap
            temperature: Sampling temperature
            max_tool_rounds: Tool-call round trips before a forced text answer
        """
        self._name = name
        self._instructions = instructions
        self._provider = provider
        self._tools = {tool.name: tool for tool in tools}
        self._description = description
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._max_tool_rounds = max_tool_rounds
        self._logger = get_agent_logger(name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def instructions(self) -> str:
        return self._instructions

    @property
    def description(self) -> str:
        return self._description

    @property
    def tools(self) -> list[FunctionTool]:
        return list(self._tools.values())

    def get_new_thread(self) -> ConversationThread:
        return ConversationThread()

    def deserialize_thread(self, data: dict[str, Any]) -> ConversationThread:
        return ConversationThread.from_dict(data)

    async def run(self, context: str, thread: ConversationThread) -> AsyncGenerator[str, None]:
        """Stream a reply to ``context``.

        The context is appended to the thread as a user message and the final
        reply as an assistant message authored by this agent.

        Raises:
            LLMAPIError: If the provider fails
        """
        thread.add(ChatRole.USER, context, name=USER_AUTHOR)
        self._logger.debug("Agent turn started", tools=list(self._tools))

        if not self._tools:
            parts: list[str] = []
            stream = self._provider.chat_stream(
                thread.messages,
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system_prompt=self._instructions,
            )
            async with aclosing(stream):
                async for chunk in stream:
                    parts.append(chunk)
                    yield chunk
            thread.add(ChatRole.ASSISTANT, "".join(parts), name=self._name)
            return

        text = await self._run_tool_loop(thread)
        thread.add(ChatRole.ASSISTANT, text, name=self._name)
        if text:
            yield text

    async def _run_tool_loop(self, thread: ConversationThread) -> str:
        # Tool traffic lives in a scratch list; only the final answer reaches the thread
        scratch: list[ChatMessage] = list(thread.messages)

        for round_number in range(self._max_tool_rounds):
            response = await self._provider.chat(
                scratch,
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                system_prompt=self._instructions,
                tools=self.tools,
            )
            if not response.has_tool_calls:
                return response.content

            scratch.append(
                ChatMessage(
                    role=ChatRole.ASSISTANT,
                    content=response.content,
                    name=self._name,
                    tool_calls=response.tool_calls,
                )
            )
            for call in response.tool_calls:
                result = await self._invoke_tool(call.name, call.arguments)
                scratch.append(
                    ChatMessage(role=ChatRole.TOOL, content=result, tool_call_id=call.id)
                )
            self._logger.debug(
                "Tool round complete",
                round=round_number + 1,
                calls=[c.name for c in response.tool_calls],
            )

        self._logger.warning("Tool round limit reached", limit=self._max_tool_rounds)
        response = await self._provider.chat(
            scratch,
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system_prompt=self._instructions,
        )
        return response.content

    async def _invoke_tool(self, tool_name: str, arguments: dict[str, Any]) -> str:
        """Run one tool call; failures are reported back to the model as text."""
        try:
            tool = self._tools.get(tool_name)
            if tool is None:
                raise ToolNotFoundError(self._name, tool_name)
            result = await tool.invoke(arguments)
            self._logger.info("Tool invoked", tool=tool_name, arguments=arguments)
            return result
        except Exception as e:
            self._logger.warning("Tool failed", tool=tool_name, error=str(e))
            return f"Error: {e}"
