"""Data models package.

This module defines all data models used in the clinical agents system.
"""

from .knowledge import (
    ConfidenceTier,
    IndexedChunk,
    MedicalEntry,
    NoMatchReason,
    PassageHit,
    TermMatch,
)
from .message import (
    SYSTEM_AUTHOR,
    USER_AUTHOR,
    AgentMessage,
    ChatMessage,
    ChatRole,
    ToolCall,
)
from .patient import (
    DIAGNOSIS_FORBIDDEN_ACRONYMS,
    Evolution,
    PatientRecord,
    parse_extraction_block,
    split_items,
)
from .thread import ConversationThread

__all__ = [
    # Message models
    "AgentMessage",
    "ChatMessage",
    "ChatRole",
    "ToolCall",
    "SYSTEM_AUTHOR",
    "USER_AUTHOR",
    # Thread
    "ConversationThread",
    # Knowledge models
    "MedicalEntry",
    "IndexedChunk",
    "ConfidenceTier",
    "NoMatchReason",
    "TermMatch",
    "PassageHit",
    # Patient models
    "PatientRecord",
    "Evolution",
    "DIAGNOSIS_FORBIDDEN_ACRONYMS",
    "parse_extraction_block",
    "split_items",
]
