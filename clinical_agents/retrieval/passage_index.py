"""Clinical guidelines retrieval over overlapping word windows.

The guidelines document is flattened to one word stream (markdown headers
and blank lines dropped), cut into windows of ``chunk_size`` words that
advance by ``chunk_size - overlap``, and each window is embedded once.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import numpy as np

from clinical_agents.models import IndexedChunk, PassageHit
from clinical_agents.retrieval.embeddings import EmbeddingService, as_matrix, cosine_scores
from clinical_agents.utils.exceptions import KnowledgeBaseNotFoundError
from clinical_agents.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 80
DEFAULT_CHUNK_OVERLAP = 20
DEFAULT_MIN_CHUNK_WORDS = 10
DEFAULT_RELEVANCE_THRESHOLD = 0.60
DEFAULT_TOP_K = 3

SEARCH_CLINICAL_GUIDELINES_DESCRIPTION = (
    "Searches the clinical guidelines knowledge base for evidence-based treatment "
    "recommendations. Call this tool with the patient's current diagnosis or clinical "
    "question to retrieve relevant guideline passages that should ground your "
    "recommendations. "
    "RESULT HANDLING: "
    "- [CLINICAL GUIDELINES] → cite the retrieved passages to support your recommendations. "
    "- [NO RELEVANT GUIDELINES] → proceed with standard clinical judgment; "
    "do NOT invent guidelines."
)


def chunk_words(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    min_words: int = DEFAULT_MIN_CHUNK_WORDS,
) -> list[str]:
    """Split a document into overlapping word windows.

    Args:
        text: Document text; lines starting with ``#`` are headers and skipped
        chunk_size: Words per window
        overlap: Words shared by consecutive windows
        min_words: The first window shorter than this ends chunking

    Returns:
        Window texts joined with single spaces
    """
    words: list[str] = []
    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        words.extend(stripped.split())

    step = max(1, chunk_size - overlap)
    chunks: list[str] = []
    for start in range(0, len(words), step):
        window = words[start : start + chunk_size]
        if len(window) < min_words:
            break
        chunks.append(" ".join(window))
    return chunks


def render_passages(query: str, hits: list[PassageHit]) -> str:
    """Format hits as the guidelines tool result."""
    if not hits:
        return (
            f"[NO RELEVANT GUIDELINES] — No guidelines found for query: '{query}'. "
            "Proceed with standard clinical judgment."
        )

    lines = [f"[CLINICAL GUIDELINES — {len(hits)} relevant passage(s)]", ""]
    for i, hit in enumerate(hits, start=1):
        lines.append(f"--- Passage {i} (relevance: {hit.relevance}%) ---")
        lines.append(hit.text.strip())
        lines.append("")
    return "\n".join(lines) + "\n"


class GuidelinesIndex:
    """In-memory vector index of guideline passages.

    Read-only after ``initialize``; safe to share across sessions.
    """

    def __init__(
        self,
        embedder: EmbeddingService,
        relevance_threshold: float = DEFAULT_RELEVANCE_THRESHOLD,
        top_k: int = DEFAULT_TOP_K,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        min_chunk_words: int = DEFAULT_MIN_CHUNK_WORDS,
    ) -> None:
        self._embedder = embedder
        self._relevance_threshold = relevance_threshold
        self._top_k = top_k
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._min_chunk_words = min_chunk_words
        self._chunks: list[IndexedChunk] = []
        self._matrix: np.ndarray = as_matrix([])
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def indexed_chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def chunks(self) -> list[IndexedChunk]:
        return list(self._chunks)

    async def initialize(self, path: str | Path) -> None:
        """Chunk and embed the guidelines document. Later calls are no-ops.

        Raises:
            KnowledgeBaseNotFoundError: If the file does not exist
        """
        async with self._init_lock:
            if self._initialized:
                return

            file_path = Path(path)
            if not file_path.is_file():
                raise KnowledgeBaseNotFoundError(str(path), kind="clinical guidelines")

            text = file_path.read_text(encoding="utf-8")
            texts = chunk_words(
                text, self._chunk_size, self._chunk_overlap, self._min_chunk_words
            )
            logger.info("Indexing guideline chunks", path=str(file_path), chunks=len(texts))

            vectors = await self._embedder.embed_batch(texts)
            self._chunks = [
                IndexedChunk(text=t, embedding=tuple(v)) for t, v in zip(texts, vectors)
            ]
            self._matrix = as_matrix(vectors)
            self._initialized = True

            logger.info("Guidelines index ready", chunks=len(self._chunks))

    async def search(self, query: str, top_k: int | None = None) -> list[PassageHit]:
        """Return up to ``top_k`` passages scoring at or above the threshold.

        Raises:
            LLMAPIError: If the query cannot be embedded
        """
        if not query or not query.strip() or not self._initialized or not self._chunks:
            return []

        query_vector = await self._embedder.embed(query.strip())
        scores = cosine_scores(self._matrix, query_vector)
        limit = self._top_k if top_k is None else top_k
        # Stable sort, so equal scores keep document order
        ranked = [int(i) for i in np.argsort(-scores, kind="stable")]
        hits = [
            PassageHit(text=self._chunks[i].text, score=float(scores[i]))
            for i in ranked
            if scores[i] >= self._relevance_threshold
        ][: max(limit, 0)]

        logger.debug("Guidelines search", query=query, hits=len(hits))
        return hits

    async def search_clinical_guidelines(self, query: str) -> str:
        """Agent-facing tool: retrieve guideline passages for a clinical question."""
        if not query or not query.strip():
            return "[NO RELEVANT GUIDELINES] — Empty query provided."
        if not self._initialized or not self._chunks:
            return (
                "[NO RELEVANT GUIDELINES] — Guidelines index not initialized. "
                "Contact system administrator."
            )

        try:
            hits = await self.search(query)
        except Exception as e:
            logger.error("Guidelines search failed", query=query, error=str(e))
            return f"[NO RELEVANT GUIDELINES] — Search error: {e}"

        return render_passages(query, hits)
