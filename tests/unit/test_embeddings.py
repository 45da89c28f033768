"""Unit tests for embedding helpers and the OpenAI-compatible client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import numpy as np
import openai
import pytest

from clinical_agents.retrieval import (
    EmbeddingService,
    OpenAIEmbeddingService,
    as_matrix,
    cosine_scores,
    cosine_similarity,
)
from clinical_agents.utils.exceptions import LLMAPIError
from tests.conftest import FakeEmbeddingService


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite(self):
        assert cosine_similarity([1.0, 0.0], [-2.0, 0.0]) == pytest.approx(-1.0)

    def test_zero_magnitude(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="length mismatch"):
            cosine_similarity([1.0], [1.0, 0.0])


class TestCosineScores:
    """Tests for scoring a query against a whole matrix."""

    def test_scores_every_row(self):
        matrix = as_matrix([[1.0, 0.0], [0.0, 2.0], [3.0, 3.0]])

        scores = cosine_scores(matrix, [1.0, 0.0])

        assert scores.shape == (3,)
        assert scores.tolist() == pytest.approx([1.0, 0.0, 2**-0.5])

    def test_zero_rows_and_zero_query_score_zero(self):
        matrix = as_matrix([[0.0, 0.0], [1.0, 1.0]])

        assert cosine_scores(matrix, [1.0, 0.0])[0] == 0.0
        assert np.all(cosine_scores(matrix, [0.0, 0.0]) == 0.0)

    def test_first_maximum_wins_ties(self):
        scores = cosine_scores(as_matrix([[0.0, 1.0], [1.0, 0.0], [1.0, 0.0]]), [1.0, 0.0])

        assert int(np.argmax(scores)) == 1

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="length mismatch"):
            cosine_scores(as_matrix([[1.0, 0.0]]), [1.0])

    def test_empty_matrix(self):
        assert as_matrix([]).shape == (0, 0)


class TestOpenAIEmbeddingService:
    """Tests for OpenAIEmbeddingService with the SDK call mocked."""

    @pytest.fixture
    def service(self):
        return OpenAIEmbeddingService(
            model="text-embedding-test",
            base_url="http://localhost:1234/v1",
            batch_size=2,
        )

    @staticmethod
    def response(*vectors_by_index):
        # Reversed so ordering by index is exercised
        data = [
            SimpleNamespace(index=i, embedding=v) for i, v in enumerate(vectors_by_index)
        ]
        return SimpleNamespace(data=list(reversed(data)))

    def test_satisfies_protocol(self, service):
        assert isinstance(service, EmbeddingService)
        assert isinstance(FakeEmbeddingService(), EmbeddingService)
        assert service.model == "text-embedding-test"

    async def test_batches_preserve_input_order(self, service):
        create = AsyncMock(
            side_effect=[
                self.response([1.0, 0.0], [2.0, 0.0]),
                self.response([3.0, 0.0]),
            ]
        )
        service._client.embeddings.create = create

        vectors = await service.embed_batch(["a", "b", "c"])

        assert vectors == [[1.0, 0.0], [2.0, 0.0], [3.0, 0.0]]
        assert create.await_count == 2
        assert create.await_args_list[0].kwargs == {
            "model": "text-embedding-test",
            "input": ["a", "b"],
        }
        assert create.await_args_list[1].kwargs["input"] == ["c"]

    async def test_embed_single(self, service):
        service._client.embeddings.create = AsyncMock(return_value=self.response([0.5, 0.5]))

        assert await service.embed("hello") == [0.5, 0.5]

    async def test_empty_batch_makes_no_request(self, service):
        create = AsyncMock()
        service._client.embeddings.create = create

        assert await service.embed_batch([]) == []
        create.assert_not_awaited()

    async def test_sdk_error_wrapped(self, service):
        service._client.embeddings.create = AsyncMock(side_effect=openai.OpenAIError("down"))

        with pytest.raises(LLMAPIError) as exc_info:
            await service.embed("hello")

        assert exc_info.value.details["model"] == "text-embedding-test"
        assert "Embedding request failed" in exc_info.value.message
