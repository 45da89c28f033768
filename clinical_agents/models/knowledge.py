"""Retrieval data models: knowledge entries, chunks and search results."""

from enum import Enum

from pydantic import BaseModel, Field

NO_MATCH_VERBATIM = "[NO MATCH] — Use doctor's original text verbatim."


class MedicalEntry(BaseModel):
    """One line of the acronym knowledge file."""

    main_term: str = Field(..., min_length=1)
    acronym: str = Field(..., min_length=1)
    synonyms: tuple[str, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True}

    @property
    def embedding_text(self) -> str:
        """Text embedded for this entry: main term followed by synonyms."""
        return " ".join([self.main_term, *self.synonyms])


class IndexedChunk(BaseModel):
    """A guideline passage with its vector."""

    text: str
    embedding: tuple[float, ...]

    model_config = {"frozen": True}


class ConfidenceTier(str, Enum):
    """Term match classification."""

    CONFIRMED = "confirmed"
    UNCERTAIN = "uncertain"
    NO_MATCH = "no_match"


class NoMatchReason(str, Enum):
    """Why a term search produced no match."""

    BELOW_THRESHOLD = "below_threshold"
    EMPTY_QUERY = "empty_query"
    NOT_INITIALIZED = "not_initialized"
    ERROR = "error"


class TermMatch(BaseModel):
    """Result of a term search."""

    query: str
    tier: ConfidenceTier
    score: float = 0.0
    entry: MedicalEntry | None = None
    reason: NoMatchReason | None = None
    error: str | None = None

    @property
    def confidence_percent(self) -> int:
        return int(self.score * 100)

    def to_tool_text(self) -> str:
        """Render the agent-facing tool result."""
        if self.tier == ConfidenceTier.CONFIRMED and self.entry is not None:
            return f"[CONFIRMED MATCH]: {self.entry.acronym} (Source: {self.entry.main_term})"
        if self.tier == ConfidenceTier.UNCERTAIN and self.entry is not None:
            return (
                f"[UNCERTAIN]: {self.entry.main_term} "
                f"(Confidence: {self.confidence_percent}%) — "
                "Use doctor's original text verbatim."
            )
        if self.reason == NoMatchReason.EMPTY_QUERY:
            return "[NO MATCH] — Empty query provided."
        if self.reason == NoMatchReason.NOT_INITIALIZED:
            return (
                "[NO MATCH] — Semantic index not initialized. "
                "Contact system administrator."
            )
        if self.reason == NoMatchReason.ERROR:
            return f"[NO MATCH] — Semantic search error: {self.error}"
        return NO_MATCH_VERBATIM


class PassageHit(BaseModel):
    """A guideline passage that scored above the relevance threshold."""

    text: str
    score: float

    model_config = {"frozen": True}

    @property
    def relevance(self) -> int:
        """Score as a truncated integer percent."""
        return int(self.score * 100)
