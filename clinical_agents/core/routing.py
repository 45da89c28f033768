"""Intent extraction from free-text agent output.

Pure functions that read the coordinator's plan and specialist replies:
which specialists a plan asks for, whether a reply signals completion, and
whether a reply is waiting on the user.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Sequence

AliasFn = Callable[[str], "str | None"]

DEFAULT_TERMINATION_PHRASES: tuple[str, ...] = (
    "task complete",
    "discussion complete",
    "information retrieved",
    "report saved",
    "pdf saved",
    "TASK_COMPLETE",
)

USER_QUESTION_PHRASES: tuple[str, ...] = (
    "please confirm",
    "do you want",
    "would you like",
    "should i",
)

DEFAULT_MIN_ALIAS_LENGTH = 4

_CAPITALIZED_WORD = re.compile(r"[A-Z][a-z]+")


def last_capitalized_word(key: str) -> str | None:
    """Last ``[A-Z][a-z]+`` fragment of a key ("DraCameron" -> "Cameron")."""
    matches = _CAPITALIZED_WORD.findall(key)
    return matches[-1] if matches else None


def specialist_mentioned(
    plan: str,
    key: str,
    alias_fn: AliasFn = last_capitalized_word,
    min_alias_length: int = DEFAULT_MIN_ALIAS_LENGTH,
) -> bool:
    """True if the plan names the specialist by key or by its alias.

    Short aliases (below ``min_alias_length``) are ignored so title prefixes
    such as "Dr" never match.
    """
    plan_lower = plan.lower()
    if key.lower() in plan_lower:
        return True

    alias = alias_fn(key)
    return (
        alias is not None
        and len(alias) >= min_alias_length
        and alias.lower() in plan_lower
    )


def resolve_required_specialists(
    plan: str,
    roster_keys: Iterable[str],
    alias_fn: AliasFn = last_capitalized_word,
    min_alias_length: int = DEFAULT_MIN_ALIAS_LENGTH,
) -> list[str]:
    """Specialists named in the plan, in roster order.

    When the plan names nobody, every roster key is returned in registration
    order so the pipeline still makes progress.

    Args:
        plan: Coordinator plan text
        roster_keys: Specialist names in registration order
        alias_fn: Derives a fuzzy alias from a key
        min_alias_length: Shortest alias that may match

    Returns:
        Ordered list of specialist keys to run
    """
    keys = list(roster_keys)
    required = [
        key
        for key in keys
        if specialist_mentioned(plan, key, alias_fn, min_alias_length)
    ]
    return required or keys


def _contains_any(text: str | None, phrases: Sequence[str]) -> bool:
    if not text or not text.strip():
        return False
    lowered = text.lower()
    return any(phrase.lower() in lowered for phrase in phrases)


def contains_termination_keyword(
    text: str | None,
    phrases: Sequence[str] = DEFAULT_TERMINATION_PHRASES,
) -> bool:
    """True if the text carries an explicit completion phrase (case-insensitive)."""
    return _contains_any(text, phrases)


def contains_user_question(
    text: str | None,
    phrases: Sequence[str] = USER_QUESTION_PHRASES,
) -> bool:
    """True if the text asks the user something and the discussion should pause."""
    return _contains_any(text, phrases)
