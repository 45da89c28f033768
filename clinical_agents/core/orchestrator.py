"""Coordinated orchestrator - coordinator-led specialist workflow.

A run moves through four phases against one shared ConversationThread:

1. Planning: the coordinator reads the request and names the specialists.
2. Specialists: each named specialist runs in roster order, receiving the
   previous specialist's reply as its prompt.
3. Discussion (optional): all specialists take round-robin turns.
4. Synthesis: the coordinator summarizes.

Every outcome, including failures and the turn cap, is reported as an
AgentMessage in the stream; a run never raises into its consumer.
"""

from __future__ import annotations

import json
from contextlib import aclosing
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, AsyncGenerator, Callable, Mapping, Sequence

from clinical_agents.models import AgentMessage, ConversationThread
from clinical_agents.utils.logging import LoggerAdapter

from .history import DEFAULT_MAX_HISTORY_MESSAGES, trim_history
from .routing import (
    DEFAULT_MIN_ALIAS_LENGTH,
    DEFAULT_TERMINATION_PHRASES,
    USER_QUESTION_PHRASES,
    AliasFn,
    contains_termination_keyword,
    contains_user_question,
    last_capitalized_word,
    resolve_required_specialists,
)

if TYPE_CHECKING:
    from clinical_agents.agents.base import Specialist

SpecialistResolver = Callable[[str, Sequence[str]], list[str]]

ANALYZING_NOTICE = "[Coordinator analyzing request...]"
SYNTHESIZING_NOTICE = "[Coordinator synthesizing findings...]"
SYNTHESIS_PROMPT = "Provide a brief summary of the findings and actions taken."
DISCUSSION_PROMPT = "Based on the discussion so far:\n{context}\n\nProvide your input:"

PERSISTENCE_DIRECTIVE = (
    "{extractor} has completed the medical analysis. "
    "You MUST now execute these steps in order:\n"
    "1. Call get_patient_data with the patient's name\n"
    "2. Call upsert_patient_record to save the new findings\n"
    "3. Call save_report to generate the medical report\n\n"
    "{extractor}'s analysis:\n{context}"
)

DIRECT_QUERY_DIRECTIVE = (
    "QUERY: Retrieve and display the complete medical record for patient '{subject}'. "
    "Call get_patient_data and present the information in a clear, readable format. "
    "Do NOT call upsert_patient_record or save_report."
)


class OrchestratorError(Exception):
    """Base exception for orchestrator errors."""

    pass


class EmptyRosterError(OrchestratorError):
    """Raised when an orchestrator is built without specialists."""

    def __init__(self) -> None:
        super().__init__("At least one specialist agent is required")


@dataclass
class _TurnOutcome:
    """Filled in by a turn while its messages are being streamed."""

    text: str = ""
    error: Exception | None = None


class CoordinatedOrchestrator:
    """Runs a coordinator and an ordered roster of specialists over one thread.

    Instances are not safe for concurrent runs; callers serialize access
    (see SessionManager).
    """

    def __init__(
        self,
        coordinator: Specialist,
        specialists: Mapping[str, Specialist],
        max_turns: int = 20,
        discussion_mode: bool = False,
        termination_phrases: Sequence[str] = DEFAULT_TERMINATION_PHRASES,
        user_question_phrases: Sequence[str] = USER_QUESTION_PHRASES,
        alias_fn: AliasFn = last_capitalized_word,
        min_alias_length: int = DEFAULT_MIN_ALIAS_LENGTH,
        resolver: SpecialistResolver | None = None,
        persistence_specialist: str = "MedicalSecretary",
        extraction_specialist: str = "ClinicalDataExtractor",
        persistence_directive: str = PERSISTENCE_DIRECTIVE,
        max_history_messages: int = DEFAULT_MAX_HISTORY_MESSAGES,
        logger: LoggerAdapter | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            coordinator: Agent that plans and synthesizes
            specialists: Roster keyed by routing name; order is the fallback order
            max_turns: Specialist turn budget per run
            discussion_mode: Enable the round-robin discussion phase
            termination_phrases: Phrases that end a run early
            user_question_phrases: Phrases that pause the discussion for the user
            alias_fn: Fuzzy alias derivation for plan matching
            min_alias_length: Shortest alias allowed to match
            resolver: Replaces plan parsing entirely when given
            persistence_specialist: Specialist that stores records
            extraction_specialist: Specialist whose output the persistence
                specialist receives as an explicit tool directive
            persistence_directive: Template with ``{extractor}`` and ``{context}``
            max_history_messages: Cap applied when loading history
            logger: Logger with session context bound

        Raises:
            EmptyRosterError: If ``specialists`` is empty
            ValueError: If ``max_turns`` is not positive
        """
        if not specialists:
            raise EmptyRosterError()
        if max_turns < 1:
            raise ValueError("max_turns must be positive")

        self._coordinator = coordinator
        self._specialists: dict[str, Specialist] = dict(specialists)
        self._max_turns = max_turns
        self._discussion_mode = discussion_mode
        self._termination_phrases = tuple(termination_phrases)
        self._user_question_phrases = tuple(user_question_phrases)
        self._resolver: SpecialistResolver = resolver or partial(
            resolve_required_specialists,
            alias_fn=alias_fn,
            min_alias_length=min_alias_length,
        )
        self._persistence_specialist = persistence_specialist
        self._extraction_specialist = extraction_specialist
        self._persistence_directive = persistence_directive
        self._max_history_messages = max_history_messages
        self._logger = logger or LoggerAdapter("orchestrator")
        self._thread: ConversationThread | None = None

    @property
    def coordinator(self) -> Specialist:
        return self._coordinator

    @property
    def specialist_names(self) -> list[str]:
        return list(self._specialists)

    @property
    def max_turns(self) -> int:
        return self._max_turns

    @property
    def discussion_mode(self) -> bool:
        return self._discussion_mode

    @property
    def thread(self) -> ConversationThread | None:
        return self._thread

    def _ensure_thread(self) -> ConversationThread:
        if self._thread is None:
            self._thread = self._coordinator.get_new_thread()
        return self._thread

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(self, user_input: str) -> AsyncGenerator[AgentMessage, None]:
        """Run the full coordinated workflow for one request.

        Args:
            user_input: Non-empty request text

        Yields:
            AgentMessage events in emission order
        """
        self._ensure_thread()
        coordinator_name = self._coordinator.name or "Coordinator"
        turn_count = 0
        should_terminate = False
        current_context = user_input

        yield AgentMessage.user(user_input)
        yield AgentMessage.system(ANALYZING_NOTICE)

        # Phase 1: planning
        plan = _TurnOutcome()
        async with aclosing(self._stream_turn(self._coordinator, user_input, plan)) as stream:
            async for _ in stream:
                pass
        if plan.error is not None:
            yield self._failure_message(coordinator_name, plan.error)
            return
        yield AgentMessage.complete(coordinator_name, plan.text)

        # Phase 2: specialists named by the plan
        required = self._resolver(plan.text, list(self._specialists))
        self._logger.info("Plan resolved", specialists=required)
        previous: str | None = None

        for name in required:
            specialist = self._specialists.get(name)
            if specialist is None:
                yield AgentMessage.system(
                    f"[Warning: Specialist '{name}' not found, skipping]"
                )
                continue

            context = current_context
            if name == self._persistence_specialist and previous == self._extraction_specialist:
                context = self._persistence_directive.format(
                    extractor=self._extraction_specialist, context=current_context
                )

            turn = _TurnOutcome()
            async with aclosing(self._stream_turn(specialist, context, turn)) as stream:
                async for message in stream:
                    yield message
            if turn.error is not None:
                yield self._failure_message(name, turn.error)
                return

            if turn.text:
                current_context = turn.text
            if contains_termination_keyword(turn.text, self._termination_phrases):
                should_terminate = True

            previous = name
            turn_count += 1
            if should_terminate or turn_count >= self._max_turns:
                break

        # Phase 3: optional round-robin discussion
        if self._discussion_mode and len(required) > 1 and not should_terminate:
            roster = list(self._specialists.items())
            index = 0
            while turn_count < self._max_turns:
                name, specialist = roster[index % len(roster)]
                index += 1

                turn = _TurnOutcome()
                prompt = DISCUSSION_PROMPT.format(context=current_context)
                async with aclosing(self._stream_turn(specialist, prompt, turn)) as stream:
                    async for message in stream:
                        yield message
                if turn.error is not None:
                    yield self._failure_message(name, turn.error)
                    return

                if turn.text:
                    current_context = turn.text
                turn_count += 1

                if contains_termination_keyword(turn.text, self._termination_phrases):
                    should_terminate = True
                    break
                if contains_user_question(turn.text, self._user_question_phrases):
                    self._logger.info("Discussion paused for user question", turns=turn_count)
                    break

        if should_terminate:
            self._logger.info("Run terminated by completion phrase", turns=turn_count)

        # Phase 4: synthesis
        if not should_terminate and turn_count < self._max_turns:
            yield AgentMessage.system(SYNTHESIZING_NOTICE)
            summary = _TurnOutcome()
            async with aclosing(
                self._stream_turn(self._coordinator, SYNTHESIS_PROMPT, summary)
            ) as stream:
                async for _ in stream:
                    pass
            if summary.error is not None:
                yield self._failure_message(coordinator_name, summary.error)
                return
            yield AgentMessage.complete(coordinator_name, summary.text)

        if turn_count >= self._max_turns:
            self._logger.warning("Turn budget exhausted", max_turns=self._max_turns)
            yield AgentMessage.system(
                f"[Discussion terminated: Maximum turns ({self._max_turns}) reached]"
            )

    async def run_direct_query(self, subject: str) -> AsyncGenerator[AgentMessage, None]:
        """Send a read-only record lookup straight to the persistence specialist.

        Args:
            subject: Patient name to look up

        Yields:
            The query echo followed by the specialist's turn
        """
        self._ensure_thread()

        specialist = self._specialists.get(self._persistence_specialist)
        if specialist is None:
            yield AgentMessage.system(
                f"[Error: {self._persistence_specialist} not available]"
            )
            return

        query = DIRECT_QUERY_DIRECTIVE.format(subject=subject)
        yield AgentMessage.user(query)

        turn = _TurnOutcome()
        async with aclosing(self._stream_turn(specialist, query, turn)) as stream:
            async for message in stream:
                yield message
        if turn.error is not None:
            yield self._failure_message(self._persistence_specialist, turn.error)

    def reset(self) -> None:
        """Drop the conversation thread; the next run starts a fresh one."""
        self._thread = None
        self._logger.info("Conversation reset")

    def export_history(self) -> str:
        """Serialize the thread as indented JSON; empty string when there is none."""
        if self._thread is None:
            return ""

        try:
            return json.dumps(self._thread.to_dict(), indent=2, ensure_ascii=False)
        except Exception as e:
            self._logger.error("Error exporting history", error=str(e))
            return ""

    def load_history(self, blob: str, agent: Specialist | None = None) -> None:
        """Replace the thread with a trimmed, deserialized history.

        Failures are logged and leave the current thread untouched.

        Args:
            blob: JSON produced by ``export_history``
            agent: Agent that rebuilds the thread; defaults to the coordinator
        """
        if not blob or not blob.strip():
            return

        try:
            trimmed = trim_history(blob, self._max_history_messages)
            data = json.loads(trimmed)
            self._thread = (agent or self._coordinator).deserialize_thread(data)
            self._logger.info("Loaded conversation history", messages=len(self._thread))
        except Exception as e:
            self._logger.warning("Failed to load history", error=str(e))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _stream_turn(
        self,
        agent: Specialist,
        context: str,
        outcome: _TurnOutcome,
    ) -> AsyncGenerator[AgentMessage, None]:
        """Run one agent turn, yielding chunks and then the complete message.

        Agent failures are recorded on ``outcome`` instead of raised.
        """
        thread = self._ensure_thread()
        author = agent.name or "Specialist"
        parts: list[str] = []

        try:
            async with aclosing(agent.run(context, thread)) as chunks:
                async for chunk in chunks:
                    if chunk:
                        parts.append(chunk)
                        yield AgentMessage.chunk(author, chunk)
        except Exception as e:
            self._logger.error("Agent turn failed", agent_name=author, error=str(e))
            outcome.error = e
            outcome.text = "".join(parts)
            return

        outcome.text = "".join(parts)
        if outcome.text:
            yield AgentMessage.complete(author, outcome.text)

    @staticmethod
    def _failure_message(name: str, error: Exception) -> AgentMessage:
        return AgentMessage.system(f"[Error: {name} failed: {error}]")
