"""Conversation thread model."""

import uuid
from typing import Any

from pydantic import BaseModel, Field

from .message import ChatMessage, ChatRole


class ConversationThread(BaseModel):
    """Ordered chat history shared by every agent of one orchestrator.

    Serialized form is ``{"storeState": {"messages": [...]}}``.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Thread ID")
    messages: list[ChatMessage] = Field(default_factory=list)

    def add(
        self,
        role: ChatRole,
        content: str,
        name: str | None = None,
        **kwargs: Any,
    ) -> ChatMessage:
        """Append a message and return it."""
        message = ChatMessage(role=role, content=content, name=name, **kwargs)
        self.messages.append(message)
        return message

    def append(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def __len__(self) -> int:
        return len(self.messages)

    def to_dict(self) -> dict[str, Any]:
        """Serializable state blob."""
        return {
            "storeState": {
                "messages": [
                    m.model_dump(mode="json", exclude_none=True)
                    for m in self.messages
                ]
            }
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationThread":
        """Rebuild a thread from a state blob.

        Raises:
            ValueError: If the blob has no ``storeState.messages`` list
        """
        store = data.get("storeState") if isinstance(data, dict) else None
        messages = store.get("messages") if isinstance(store, dict) else None
        if not isinstance(messages, list):
            raise ValueError("Thread state has no storeState.messages list")
        return cls(messages=[ChatMessage.model_validate(m) for m in messages])
