"""Message models.

AgentMessage is what an orchestration run streams to its caller; ChatMessage
is one entry in a ConversationThread sent to the chat model.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

SYSTEM_AUTHOR = "System"
USER_AUTHOR = "User"


class ChatRole(str, Enum):
    """Chat completion roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class AgentMessage(BaseModel):
    """One unit of orchestrator output.

    An agent turn produces zero or more streaming chunks followed by exactly
    one complete message carrying the whole text. User echoes and system
    notices are neither streaming nor complete.
    """

    author: str = Field(..., description="Agent name, 'User' or 'System'")
    text: str = Field(default="", description="Chunk or complete text")
    is_streaming: bool = Field(default=False, description="Partial chunk")
    is_complete: bool = Field(default=True, description="Final text of the turn")

    model_config = {"frozen": True}

    @classmethod
    def chunk(cls, author: str, text: str) -> "AgentMessage":
        """Streaming chunk helper."""
        return cls(author=author, text=text, is_streaming=True, is_complete=False)

    @classmethod
    def complete(cls, author: str, text: str) -> "AgentMessage":
        """Complete message helper."""
        return cls(author=author, text=text, is_streaming=False, is_complete=True)

    @classmethod
    def system(cls, text: str) -> "AgentMessage":
        """System notice helper."""
        return cls(author=SYSTEM_AUTHOR, text=text, is_streaming=False, is_complete=False)

    @classmethod
    def user(cls, text: str) -> "AgentMessage":
        """Echo of the user's input."""
        return cls(author=USER_AUTHOR, text=text, is_streaming=False, is_complete=False)


class ToolCall(BaseModel):
    """A function call requested by the model."""

    id: str = Field(..., description="Provider call id")
    name: str = Field(..., description="Tool name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Parsed args")


class ChatMessage(BaseModel):
    """One entry in a conversation thread."""

    role: ChatRole
    content: str = ""
    name: str | None = Field(default=None, description="Agent that authored it")
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None
