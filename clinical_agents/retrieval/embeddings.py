"""Embedding service interface and the OpenAI-compatible implementation.

Any endpoint that implements the OpenAI ``/embeddings`` route works here:
OpenAI itself or a local LM Studio server with an embedding model loaded.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

import httpx
import numpy as np
import openai
from openai import AsyncOpenAI

from clinical_agents.utils.exceptions import LLMAPIError
from clinical_agents.utils.logging import get_logger

logger = get_logger(__name__)

Vector = list[float]


@runtime_checkable
class EmbeddingService(Protocol):
    """Turns text into vectors."""

    async def embed(self, text: str) -> Vector:
        """Embed one text."""
        ...

    async def embed_batch(self, texts: Sequence[str]) -> list[Vector]:
        """Embed many texts, preserving input order."""
        ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        ValueError: If the vectors differ in length
    """
    if len(a) != len(b):
        raise ValueError(f"Vector length mismatch: {len(a)} != {len(b)}")
    return float(cosine_scores(np.asarray([a], dtype=np.float64), b)[0])


def as_matrix(vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """Stack vectors into an ``(n, dim)`` float matrix; empty input gives shape ``(0, 0)``."""
    if not vectors:
        return np.zeros((0, 0), dtype=np.float64)
    return np.asarray(vectors, dtype=np.float64)


def cosine_scores(matrix: np.ndarray, query: Sequence[float]) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``.

    Rows with zero magnitude, or a zero query, score 0.0.

    Raises:
        ValueError: If the query length differs from the row length
    """
    q = np.asarray(query, dtype=np.float64)
    if matrix.shape[1] != q.shape[0]:
        raise ValueError(f"Vector length mismatch: {matrix.shape[1]} != {q.shape[0]}")
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    return np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)


class OpenAIEmbeddingService:
    """Embeddings over the openai SDK with a configurable base URL."""

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        batch_size: int = 32,
        timeout: float = 60.0,
    ) -> None:
        self._model = model
        self._batch_size = batch_size
        self._client = AsyncOpenAI(
            api_key=api_key or "lm-studio",
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=10.0),
        )
        logger.info(
            "Initialized embedding client",
            model=model,
            base_url=base_url or "https://api.openai.com/v1",
        )

    @property
    def model(self) -> str:
        return self._model

    async def embed(self, text: str) -> Vector:
        result = await self.embed_batch([text])
        return result[0]

    async def embed_batch(self, texts: Sequence[str]) -> list[Vector]:
        """Embed texts in sub-batches.

        Raises:
            LLMAPIError: If the embeddings endpoint fails
        """
        if not texts:
            return []

        vectors: list[Vector] = [[] for _ in texts]
        for start in range(0, len(texts), self._batch_size):
            batch = list(texts[start : start + self._batch_size])
            try:
                response = await self._client.embeddings.create(
                    model=self._model, input=batch
                )
            except openai.OpenAIError as e:
                raise LLMAPIError(
                    f"Embedding request failed: {e}",
                    provider="openai",
                    model=self._model,
                    cause=e,
                ) from e

            # Items carry their input index; order is not assumed
            for item in sorted(response.data, key=lambda d: d.index):
                vectors[start + item.index] = list(item.embedding)

            logger.debug(
                "Embedded batch",
                start=start,
                size=len(batch),
                model=self._model,
            )

        return vectors
