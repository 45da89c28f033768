"""Shared test fixtures."""

import math
import re
import zlib
from collections.abc import AsyncGenerator, Sequence
from pathlib import Path
from typing import Any

import pytest

from clinical_agents.llm import BaseLLMProvider, LLMResponse
from clinical_agents.models import ChatMessage, ChatRole, ConversationThread, USER_AUTHOR
from clinical_agents.utils.config import reset_config

EMBEDDING_DIM = 1024

_TOKEN = re.compile(r"[a-z0-9]+")


class FakeEmbeddingService:
    """Deterministic bag-of-words embeddings.

    Each lowercase token is hashed into one of ``EMBEDDING_DIM`` buckets, so
    texts sharing words have positive cosine similarity and texts with no
    shared words score 0.
    """

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.batch_calls: list[list[str]] = []
        self.queries: list[str] = []

    @staticmethod
    def vectorize(text: str) -> list[float]:
        vector = [0.0] * EMBEDDING_DIM
        for token in _TOKEN.findall(text.lower()):
            vector[zlib.crc32(token.encode()) % EMBEDDING_DIM] += 1.0
        return vector

    async def embed(self, text: str) -> list[float]:
        if self.fail:
            raise RuntimeError("embedding backend unavailable")
        self.queries.append(text)
        return self.vectorize(text)

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        if self.fail:
            raise RuntimeError("embedding backend unavailable")
        self.batch_calls.append(list(texts))
        return [self.vectorize(t) for t in texts]


class ScriptedEmbeddingService:
    """Returns fixed vectors per text; unknown texts map to ``default``."""

    def __init__(self, vectors: dict[str, list[float]], default: list[float] | None = None):
        self.vectors = vectors
        self.default = default

    async def embed(self, text: str) -> list[float]:
        if text in self.vectors:
            return self.vectors[text]
        if self.default is None:
            raise KeyError(text)
        return self.default

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        return [await self.embed(t) for t in texts]


def unit_vector_at(score: float) -> list[float]:
    """2-D unit vector whose cosine with (1, 0) is ``score``."""
    return [score, math.sqrt(max(0.0, 1.0 - score * score))]


class ScriptedAgent:
    """Specialist double that replays canned replies.

    Each reply is either a string, streamed in two chunks, or an exception
    raised when the turn starts. The last reply repeats once the script runs
    out.
    """

    def __init__(self, name: str, replies: Sequence[Any] | str = ""):
        self._name = name
        self._replies = [replies] if isinstance(replies, str) else list(replies)
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def instructions(self) -> str:
        return f"You are {self._name}."

    def _next_reply(self) -> Any:
        index = min(len(self.calls) - 1, len(self._replies) - 1)
        return self._replies[index] if self._replies else ""

    async def run(self, context: str, thread: ConversationThread) -> AsyncGenerator[str, None]:
        self.calls.append(context)
        reply = self._next_reply()
        if isinstance(reply, Exception):
            raise reply

        thread.add(ChatRole.USER, context, name=USER_AUTHOR)
        middle = len(reply) // 2
        for chunk in (reply[:middle], reply[middle:]):
            if chunk:
                yield chunk
        thread.add(ChatRole.ASSISTANT, reply, name=self._name)

    def get_new_thread(self) -> ConversationThread:
        return ConversationThread()

    def deserialize_thread(self, data: dict[str, Any]) -> ConversationThread:
        return ConversationThread.from_dict(data)


class ScriptedProvider(BaseLLMProvider):
    """Chat backend double.

    ``chat`` pops queued LLMResponse objects (repeating the last one);
    ``chat_stream`` yields ``stream_chunks``. Every call is recorded with a
    snapshot of the messages it received.
    """

    def __init__(
        self,
        responses: Sequence[LLMResponse] = (),
        stream_chunks: Sequence[str] = (),
        error: Exception | None = None,
    ):
        super().__init__(api_key="test-key")
        self.responses = list(responses)
        self.stream_chunks = list(stream_chunks)
        self.error = error
        self.chat_calls: list[dict[str, Any]] = []
        self.stream_calls: list[dict[str, Any]] = []

    @property
    def provider_name(self) -> str:
        return "scripted"

    @property
    def default_model(self) -> str:
        return "scripted-model"

    async def chat(
        self,
        messages: Sequence[ChatMessage],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        system_prompt: str | None = None,
        tools: Sequence[Any] | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.chat_calls.append(
            {
                "messages": list(messages),
                "model": model,
                "system_prompt": system_prompt,
                "tools": [t.name for t in tools or []],
            }
        )
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0] if self.responses else LLMResponse(content="", model=self.default_model)

    async def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.2,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> AsyncGenerator[str, None]:
        self.stream_calls.append(
            {"messages": list(messages), "model": model, "system_prompt": system_prompt}
        )
        if self.error is not None:
            raise self.error
        for chunk in self.stream_chunks:
            yield chunk


@pytest.fixture
def fake_embedder() -> FakeEmbeddingService:
    """Bag-of-words embedding service."""
    return FakeEmbeddingService()


@pytest.fixture
def acronyms_file(tmp_path: Path) -> Path:
    """Small knowledge file with one malformed line."""
    path = tmp_path / "acronyms.txt"
    path.write_text(
        "# Main Term | Acronym | Synonyms\n"
        "Hypertension | HTA | Arterial Hypertension, High Blood Pressure\n"
        "Dyslipidemia | DL | Hyperlipidemia, High Cholesterol\n"
        "\n"
        "this line has no separator\n"
        "Atrial Fibrillation | FA | AFib, Irregular Heartbeat\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def guidelines_file(tmp_path: Path) -> Path:
    """Guidelines document with three clearly separated topics."""
    heart = " ".join(
        ["heart failure reduced ejection fraction SGLT2 inhibitor ACE inhibitor beta blocker"] * 10
    )
    pneumonia = " ".join(
        ["community acquired pneumonia ceftriaxone macrolide antibiotic culture"] * 10
    )
    diabetes = " ".join(["diabetes insulin glucose hemoglobin metformin target"] * 10)
    path = tmp_path / "guidelines.md"
    path.write_text(
        f"# Guidelines\n\n## Heart Failure\n{heart}\n\n"
        f"## Pneumonia\n{pneumonia}\n\n## Diabetes\n{diabetes}\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def _reset_global_config():
    """Keep the global configuration from leaking between tests."""
    reset_config()
    yield
    reset_config()
