"""Semantic acronym lookup over the medical knowledge file.

Each line of the knowledge file is ``Main Term | Acronym | Syn1, Syn2``. One
vector is built per entry from the main term plus its synonyms, and a query
is classified against the best-scoring entry:

    score >= confirmed threshold  -> CONFIRMED (safe to use the acronym)
    score >= uncertain threshold  -> UNCERTAIN (keep the doctor's wording)
    otherwise                     -> NO_MATCH
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable

import numpy as np

from clinical_agents.models import (
    ConfidenceTier,
    MedicalEntry,
    NoMatchReason,
    TermMatch,
)
from clinical_agents.retrieval.embeddings import (
    EmbeddingService,
    as_matrix,
    cosine_scores,
)
from clinical_agents.utils.exceptions import KnowledgeBaseNotFoundError
from clinical_agents.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIRMED_THRESHOLD = 0.85
DEFAULT_UNCERTAIN_THRESHOLD = 0.60

SEARCH_MEDICAL_KNOWLEDGE_DESCRIPTION = (
    "Searches the local semantic knowledge base for a standardized medical acronym. "
    "Call this tool for every medical condition in the patient's Medical History (AP) "
    "before writing any acronym. "
    "RESULT HANDLING: "
    "- [CONFIRMED MATCH] → use the returned acronym. "
    "- [UNCERTAIN] → use the doctor's original text verbatim. "
    "- [NO MATCH] → use the doctor's original text verbatim. "
    "NEVER invent acronyms."
)


def parse_knowledge_lines(lines: Iterable[str]) -> list[MedicalEntry]:
    """Parse knowledge file lines into entries.

    Blank lines and ``#`` comments are ignored. Lines with fewer than two
    ``|``-separated fields, or an empty term or acronym, are skipped with a
    warning.
    """
    entries: list[MedicalEntry] = []
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split("|")
        if len(parts) < 2:
            logger.warning(
                f"Line {line_number} skipped (invalid format)", line=line
            )
            continue

        main_term = parts[0].strip()
        acronym = parts[1].strip()
        synonyms = (
            tuple(s.strip() for s in parts[2].split(",") if s.strip())
            if len(parts) > 2
            else ()
        )

        if not main_term or not acronym:
            logger.warning(f"Line {line_number} skipped (empty term or acronym)")
            continue

        entries.append(MedicalEntry(main_term=main_term, acronym=acronym, synonyms=synonyms))
    return entries


def classify_score(
    score: float,
    confirmed_threshold: float = DEFAULT_CONFIRMED_THRESHOLD,
    uncertain_threshold: float = DEFAULT_UNCERTAIN_THRESHOLD,
) -> ConfidenceTier:
    """Map a similarity score to a tier; a score on a boundary takes the higher tier."""
    if score >= confirmed_threshold:
        return ConfidenceTier.CONFIRMED
    if score >= uncertain_threshold:
        return ConfidenceTier.UNCERTAIN
    return ConfidenceTier.NO_MATCH


class MedicalTermIndex:
    """In-memory vector index of medical terms.

    Read-only after ``initialize``; safe to share across sessions.
    """

    def __init__(
        self,
        embedder: EmbeddingService,
        confirmed_threshold: float = DEFAULT_CONFIRMED_THRESHOLD,
        uncertain_threshold: float = DEFAULT_UNCERTAIN_THRESHOLD,
    ) -> None:
        if uncertain_threshold > confirmed_threshold:
            raise ValueError("uncertain_threshold must not exceed confirmed_threshold")
        self._embedder = embedder
        self._confirmed_threshold = confirmed_threshold
        self._uncertain_threshold = uncertain_threshold
        self._entries: list[MedicalEntry] = []
        self._matrix: np.ndarray = as_matrix([])
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def indexed_entry_count(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[MedicalEntry]:
        return list(self._entries)

    async def initialize(self, path: str | Path) -> None:
        """Load and embed the knowledge file. Later calls are no-ops.

        Args:
            path: Path to the pipe-delimited acronym file

        Raises:
            KnowledgeBaseNotFoundError: If the file does not exist
        """
        async with self._init_lock:
            if self._initialized:
                return

            file_path = Path(path)
            if not file_path.is_file():
                raise KnowledgeBaseNotFoundError(str(path), kind="acronyms")

            logger.info("Building term index", path=str(file_path))
            with open(file_path, encoding="utf-8") as f:
                entries = parse_knowledge_lines(f)

            vectors = await self._embedder.embed_batch(
                [entry.embedding_text for entry in entries]
            )

            self._entries = entries
            self._matrix = as_matrix(vectors)
            self._initialized = True

            logger.info("Term index ready", entries=len(entries))

    async def search(self, query: str) -> TermMatch:
        """Find the closest entry for a term and classify it.

        Never raises: embedding failures come back as a NO_MATCH with
        ``reason=ERROR``.
        """
        if not query or not query.strip():
            return TermMatch(
                query=query or "",
                tier=ConfidenceTier.NO_MATCH,
                reason=NoMatchReason.EMPTY_QUERY,
            )

        if not self._initialized or not self._entries:
            return TermMatch(
                query=query,
                tier=ConfidenceTier.NO_MATCH,
                reason=NoMatchReason.NOT_INITIALIZED,
            )

        try:
            query_vector = await self._embedder.embed(query.strip())
            scores = cosine_scores(self._matrix, query_vector)
            # argmax returns the first maximum, so ties keep the earliest entry
            best_index = int(np.argmax(scores))
            best_score = float(scores[best_index])
        except Exception as e:
            logger.error("Semantic search failed", query=query, error=str(e))
            return TermMatch(
                query=query,
                tier=ConfidenceTier.NO_MATCH,
                reason=NoMatchReason.ERROR,
                error=str(e),
            )

        best = self._entries[best_index]
        tier = classify_score(
            best_score, self._confirmed_threshold, self._uncertain_threshold
        )

        logger.debug(
            "Semantic search",
            query=query,
            best_term=best.main_term,
            acronym=best.acronym,
            score=round(best_score, 4),
            tier=tier.value,
        )

        return TermMatch(
            query=query,
            tier=tier,
            score=best_score,
            entry=best,
            reason=NoMatchReason.BELOW_THRESHOLD if tier == ConfidenceTier.NO_MATCH else None,
        )

    async def search_medical_knowledge(self, query: str) -> str:
        """Agent-facing tool: standardize a medical term to an acronym."""
        match = await self.search(query)
        return match.to_tool_text()
