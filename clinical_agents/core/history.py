"""Serialized thread history trimming."""

from __future__ import annotations

import json

from clinical_agents.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_HISTORY_MESSAGES = 50


def trim_history(blob: str, max_messages: int = DEFAULT_MAX_HISTORY_MESSAGES) -> str:
    """Keep only the most recent messages of a serialized thread.

    The cut point starts at ``count - max_messages`` and moves forward to
    the next user message, so a kept history never opens with an orphaned
    assistant reply or tool result. Every other property of the blob is
    preserved.

    Args:
        blob: JSON of the form ``{"storeState": {"messages": [...]}, ...}``
        max_messages: Upper bound on kept messages

    Returns:
        Trimmed JSON, or ``blob`` unchanged when there is nothing to trim or
        the blob cannot be processed
    """
    try:
        root = json.loads(blob)
        store = root.get("storeState") if isinstance(root, dict) else None
        messages = store.get("messages") if isinstance(store, dict) else None
        if not isinstance(messages, list):
            return blob

        if len(messages) <= max_messages:
            return blob

        start = len(messages) - max_messages
        while start < len(messages) and not (
            isinstance(messages[start], dict) and messages[start].get("role") == "user"
        ):
            start += 1

        trimmed = messages[start:]
        store["messages"] = trimmed

        logger.info(
            "History trimmed",
            original_messages=len(messages),
            kept_messages=len(trimmed),
        )
        return json.dumps(root, indent=2, ensure_ascii=False)
    except Exception as e:
        logger.warning("History trim failed, keeping original", error=str(e))
        return blob
