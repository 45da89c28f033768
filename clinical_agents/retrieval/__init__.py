"""Retrieval engines: acronym term index and guideline passage index."""

from clinical_agents.retrieval.embeddings import (
    EmbeddingService,
    OpenAIEmbeddingService,
    Vector,
    as_matrix,
    cosine_scores,
    cosine_similarity,
)
from clinical_agents.retrieval.passage_index import (
    GuidelinesIndex,
    chunk_words,
    render_passages,
)
from clinical_agents.retrieval.term_index import (
    MedicalTermIndex,
    classify_score,
    parse_knowledge_lines,
)

__all__ = [
    # Embeddings
    "EmbeddingService",
    "OpenAIEmbeddingService",
    "Vector",
    "cosine_similarity",
    "cosine_scores",
    "as_matrix",
    # Term index
    "MedicalTermIndex",
    "classify_score",
    "parse_knowledge_lines",
    # Passage index
    "GuidelinesIndex",
    "chunk_words",
    "render_passages",
]
