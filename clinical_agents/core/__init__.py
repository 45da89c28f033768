"""Core orchestration: routing, history, orchestrator, sessions."""

from .history import DEFAULT_MAX_HISTORY_MESSAGES, trim_history
from .orchestrator import (
    ANALYZING_NOTICE,
    DIRECT_QUERY_DIRECTIVE,
    DISCUSSION_PROMPT,
    PERSISTENCE_DIRECTIVE,
    SYNTHESIS_PROMPT,
    SYNTHESIZING_NOTICE,
    CoordinatedOrchestrator,
    EmptyRosterError,
    OrchestratorError,
)
from .routing import (
    DEFAULT_MIN_ALIAS_LENGTH,
    DEFAULT_TERMINATION_PHRASES,
    USER_QUESTION_PHRASES,
    contains_termination_keyword,
    contains_user_question,
    last_capitalized_word,
    resolve_required_specialists,
    specialist_mentioned,
)
from .sessions import SessionManager, new_session_id

__all__ = [
    # Orchestrator
    "CoordinatedOrchestrator",
    "OrchestratorError",
    "EmptyRosterError",
    "PERSISTENCE_DIRECTIVE",
    "DIRECT_QUERY_DIRECTIVE",
    "SYNTHESIS_PROMPT",
    "DISCUSSION_PROMPT",
    "ANALYZING_NOTICE",
    "SYNTHESIZING_NOTICE",
    # Routing
    "DEFAULT_TERMINATION_PHRASES",
    "USER_QUESTION_PHRASES",
    "DEFAULT_MIN_ALIAS_LENGTH",
    "contains_termination_keyword",
    "contains_user_question",
    "last_capitalized_word",
    "resolve_required_specialists",
    "specialist_mentioned",
    # History
    "DEFAULT_MAX_HISTORY_MESSAGES",
    "trim_history",
    # Sessions
    "SessionManager",
    "new_session_id",
]
