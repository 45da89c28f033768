"""Agent factory - builds one isolated agent team per session."""

from __future__ import annotations

import re
from pathlib import Path

from clinical_agents.core.orchestrator import CoordinatedOrchestrator
from clinical_agents.llm import BaseLLMProvider, LLMProviderFactory
from clinical_agents.records import (
    InMemoryPatientStore,
    MarkdownReportExporter,
    PatientStore,
    build_patient_tools,
)
from clinical_agents.retrieval import GuidelinesIndex, MedicalTermIndex
from clinical_agents.retrieval.passage_index import SEARCH_CLINICAL_GUIDELINES_DESCRIPTION
from clinical_agents.retrieval.term_index import SEARCH_MEDICAL_KNOWLEDGE_DESCRIPTION
from clinical_agents.tools import FunctionTool, object_schema, string_param
from clinical_agents.utils.config import AppConfig
from clinical_agents.utils.logging import get_logger, get_session_logger

from .base import ChatAgent, Specialist
from .instructions import (
    ADVISOR_INSTRUCTIONS,
    ADVISOR_NAME,
    COORDINATOR_NAME,
    EXTRACTOR_INSTRUCTIONS,
    EXTRACTOR_NAME,
    SECRETARY_INSTRUCTIONS,
    SECRETARY_NAME,
    coordinator_instructions,
)

logger = get_logger(__name__)

_SAFE_SESSION_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class AgentFactory:
    """Creates CoordinatedOrchestrator instances for new sessions.

    The chat provider, retrieval indices, patient store and report exporter
    are shared by every session. Each orchestrator gets fresh agents and an
    empty thread.
    """

    def __init__(
        self,
        config: AppConfig,
        provider: BaseLLMProvider,
        term_index: MedicalTermIndex,
        guidelines_index: GuidelinesIndex | None = None,
        store: PatientStore | None = None,
        exporter: MarkdownReportExporter | None = None,
    ):
        """Initialize the factory.

        Args:
            config: Application configuration
            provider: Shared chat completion backend
            term_index: Initialized acronym index
            guidelines_index: Initialized guidelines index; None drops the advisor
            store: Patient record store
            exporter: Report exporter
        """
        self._config = config
        self._provider = provider
        self._term_index = term_index
        self._guidelines_index = guidelines_index
        self._store = store if store is not None else InMemoryPatientStore()
        self._exporter = exporter or MarkdownReportExporter(config.orchestrator.reports_dir)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        term_index: MedicalTermIndex,
        guidelines_index: GuidelinesIndex | None = None,
        store: PatientStore | None = None,
    ) -> "AgentFactory":
        """Build the shared provider from the ``llm`` config section."""
        provider = LLMProviderFactory.from_llm_config(config.llm)
        return cls(config, provider, term_index, guidelines_index, store)

    @property
    def store(self) -> PatientStore:
        return self._store

    @property
    def has_advisor(self) -> bool:
        return self._guidelines_index is not None

    def _agent(self, name: str, instructions: str, tools: list[FunctionTool] | None = None) -> ChatAgent:
        llm = self._config.llm
        return ChatAgent(
            name=name,
            instructions=instructions,
            provider=self._provider,
            tools=tools or [],
            model=llm.model,
            max_tokens=llm.max_tokens,
            temperature=llm.temperature,
            max_tool_rounds=llm.max_tool_rounds,
        )

    def create_agents(self) -> tuple[Specialist, dict[str, Specialist]]:
        """Fresh coordinator and roster, in pipeline order."""
        coordinator = self._agent(
            COORDINATOR_NAME, coordinator_instructions(include_advisor=self.has_advisor)
        )

        specialists: dict[str, Specialist] = {
            EXTRACTOR_NAME: self._agent(
                EXTRACTOR_NAME,
                EXTRACTOR_INSTRUCTIONS,
                [
                    FunctionTool(
                        name="search_medical_knowledge",
                        description=SEARCH_MEDICAL_KNOWLEDGE_DESCRIPTION,
                        func=self._term_index.search_medical_knowledge,
                        parameters=object_schema(
                            {
                                "query": string_param(
                                    "The medical condition or term exactly as the doctor wrote it"
                                )
                            },
                            required=["query"],
                        ),
                    )
                ],
            )
        }

        if self._guidelines_index is not None:
            specialists[ADVISOR_NAME] = self._agent(
                ADVISOR_NAME,
                ADVISOR_INSTRUCTIONS,
                [
                    FunctionTool(
                        name="search_clinical_guidelines",
                        description=SEARCH_CLINICAL_GUIDELINES_DESCRIPTION,
                        func=self._guidelines_index.search_clinical_guidelines,
                        parameters=object_schema(
                            {"query": string_param("A focused clinical question")},
                            required=["query"],
                        ),
                    )
                ],
            )

        specialists[SECRETARY_NAME] = self._agent(
            SECRETARY_NAME,
            SECRETARY_INSTRUCTIONS,
            build_patient_tools(self._store, self._exporter),
        )
        return coordinator, specialists

    def create_orchestrator(self, session_id: str | None = None) -> CoordinatedOrchestrator:
        """Build an orchestrator, restoring saved history for the session if any."""
        coordinator, specialists = self.create_agents()
        settings = self._config.orchestrator

        orchestrator = CoordinatedOrchestrator(
            coordinator=coordinator,
            specialists=specialists,
            max_turns=settings.max_turns,
            discussion_mode=settings.discussion_mode,
            persistence_specialist=SECRETARY_NAME,
            extraction_specialist=EXTRACTOR_NAME,
            max_history_messages=settings.max_history_messages,
            logger=get_session_logger(session_id) if session_id else None,
        )

        path = self.history_path(session_id)
        if path is not None and path.exists():
            orchestrator.load_history(path.read_text(encoding="utf-8"))
        return orchestrator

    def history_path(self, session_id: str | None) -> Path | None:
        """Per-session history file, or None when persistence is off or the id is unsafe."""
        history_dir = self._config.orchestrator.history_dir
        if not history_dir or not session_id or not _SAFE_SESSION_ID.match(session_id):
            return None
        return Path(history_dir) / f"{session_id}.json"

    def save_history(self, session_id: str, orchestrator: CoordinatedOrchestrator) -> bool:
        """Write the session's history file; returns False when nothing was written."""
        path = self.history_path(session_id)
        if path is None:
            return False

        blob = orchestrator.export_history()
        if not blob:
            return False

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(blob, encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to save history", session_id=session_id, error=str(e))
            return False
        return True

    def delete_history(self, session_id: str) -> bool:
        """Remove the session's history file; returns True if one was deleted."""
        path = self.history_path(session_id)
        if path is None:
            return False

        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Failed to delete history", session_id=session_id, error=str(e))
            return False
        logger.info("History deleted", session_id=session_id)
        return True
