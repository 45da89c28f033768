"""Unit tests for the medical term index."""

import pytest

from clinical_agents.models import ConfidenceTier, NoMatchReason
from clinical_agents.retrieval import (
    MedicalTermIndex,
    classify_score,
    parse_knowledge_lines,
)
from clinical_agents.utils.exceptions import KnowledgeBaseNotFoundError
from tests.conftest import FakeEmbeddingService, ScriptedEmbeddingService

# One axis per entry; the fourth axis lets queries lean away from every entry
ENTRY_VECTORS = {
    "HTA": [1.0, 0.0, 0.0, 0.0],
    "DL": [0.0, 1.0, 0.0, 0.0],
    "FA": [0.0, 0.0, 1.0, 0.0],
}


def scripted_embedder(acronyms_file, queries, overrides=None) -> ScriptedEmbeddingService:
    vectors = {**ENTRY_VECTORS, **(overrides or {})}
    entries = parse_knowledge_lines(acronyms_file.read_text(encoding="utf-8").splitlines())
    by_text = {entry.embedding_text: vectors[entry.acronym] for entry in entries}
    return ScriptedEmbeddingService({**by_text, **queries})


class TestParseKnowledgeLines:
    """Tests for knowledge file parsing."""

    def test_full_line(self):
        entries = parse_knowledge_lines(
            ["Hypertension | HTA | Arterial Hypertension, High Blood Pressure"]
        )

        assert len(entries) == 1
        assert entries[0].main_term == "Hypertension"
        assert entries[0].acronym == "HTA"
        assert entries[0].synonyms == ("Arterial Hypertension", "High Blood Pressure")
        assert entries[0].embedding_text == (
            "Hypertension Arterial Hypertension High Blood Pressure"
        )

    def test_synonyms_optional(self):
        entries = parse_knowledge_lines(["Diabetes Mellitus | DM"])

        assert entries[0].synonyms == ()
        assert entries[0].embedding_text == "Diabetes Mellitus"

    def test_comments_blank_and_invalid_lines_skipped(self):
        entries = parse_knowledge_lines(
            [
                "# header",
                "",
                "   ",
                "no separator here",
                " | EMPTY | term",
                "Heart Failure |  | missing acronym",
                "Atrial Fibrillation | FA | AFib,, ",
            ]
        )

        assert [e.acronym for e in entries] == ["FA"]
        assert entries[0].synonyms == ("AFib",)


class TestClassifyScore:
    """Tier boundaries."""

    def test_boundaries_take_higher_tier(self):
        assert classify_score(0.85) == ConfidenceTier.CONFIRMED
        assert classify_score(0.60) == ConfidenceTier.UNCERTAIN

    def test_tiers(self):
        assert classify_score(0.99) == ConfidenceTier.CONFIRMED
        assert classify_score(0.84) == ConfidenceTier.UNCERTAIN
        assert classify_score(0.59) == ConfidenceTier.NO_MATCH
        assert classify_score(-0.5) == ConfidenceTier.NO_MATCH

    def test_custom_thresholds(self):
        assert classify_score(0.7, confirmed_threshold=0.7) == ConfidenceTier.CONFIRMED
        assert classify_score(0.3, uncertain_threshold=0.3) == ConfidenceTier.UNCERTAIN


class TestMedicalTermIndex:
    """Tests for MedicalTermIndex."""

    async def test_initialize_skips_invalid_lines(self, acronyms_file, fake_embedder):
        index = MedicalTermIndex(fake_embedder)

        await index.initialize(acronyms_file)

        assert index.is_initialized
        assert index.indexed_entry_count == 3
        assert [e.acronym for e in index.entries] == ["HTA", "DL", "FA"]

    async def test_initialize_is_idempotent(self, acronyms_file, fake_embedder):
        index = MedicalTermIndex(fake_embedder)

        await index.initialize(acronyms_file)
        await index.initialize(acronyms_file)

        assert len(fake_embedder.batch_calls) == 1

    async def test_missing_file(self, tmp_path, fake_embedder):
        index = MedicalTermIndex(fake_embedder)

        with pytest.raises(KnowledgeBaseNotFoundError):
            await index.initialize(tmp_path / "missing.txt")
        assert not index.is_initialized

    def test_threshold_order_validated(self, fake_embedder):
        with pytest.raises(ValueError):
            MedicalTermIndex(fake_embedder, confirmed_threshold=0.5, uncertain_threshold=0.6)

    async def test_confirmed_match(self, acronyms_file):
        embedder = scripted_embedder(acronyms_file, {"high blood pressure": [1.0, 0.0, 0.0, 0.0]})
        index = MedicalTermIndex(embedder)
        await index.initialize(acronyms_file)

        match = await index.search("high blood pressure")

        assert match.tier == ConfidenceTier.CONFIRMED
        assert match.entry.acronym == "HTA"
        assert match.score == pytest.approx(1.0)
        assert await index.search_medical_knowledge("high blood pressure") == (
            "[CONFIRMED MATCH]: HTA (Source: Hypertension)"
        )

    async def test_uncertain_match(self, acronyms_file):
        embedder = scripted_embedder(acronyms_file, {"raised lipids": [0.0, 4.0, 0.0, 3.0]})
        index = MedicalTermIndex(embedder)
        await index.initialize(acronyms_file)

        match = await index.search("raised lipids")

        assert match.tier == ConfidenceTier.UNCERTAIN
        assert match.entry.acronym == "DL"
        assert match.confidence_percent == 80
        assert match.to_tool_text() == (
            "[UNCERTAIN]: Dyslipidemia (Confidence: 80%) — "
            "Use doctor's original text verbatim."
        )

    async def test_below_threshold(self, acronyms_file):
        embedder = scripted_embedder(acronyms_file, {"fracture": [0.0, 0.0, 1.0, 2.0]})
        index = MedicalTermIndex(embedder)
        await index.initialize(acronyms_file)

        match = await index.search("fracture")

        assert match.tier == ConfidenceTier.NO_MATCH
        assert match.reason == NoMatchReason.BELOW_THRESHOLD
        assert match.entry.acronym == "FA"
        assert match.to_tool_text() == "[NO MATCH] — Use doctor's original text verbatim."

    async def test_tie_keeps_earliest_entry(self, acronyms_file):
        embedder = scripted_embedder(
            acronyms_file,
            {"pressure": [1.0, 0.0, 0.0, 0.0]},
            overrides={"DL": [1.0, 0.0, 0.0, 0.0]},
        )
        index = MedicalTermIndex(embedder)
        await index.initialize(acronyms_file)

        match = await index.search("pressure")

        assert match.entry.acronym == "HTA"

    async def test_query_is_stripped_before_embedding(self, acronyms_file):
        embedder = scripted_embedder(acronyms_file, {"AFib": [0.0, 0.0, 1.0, 0.0]})
        index = MedicalTermIndex(embedder)
        await index.initialize(acronyms_file)

        match = await index.search("  AFib \n")

        assert match.entry.acronym == "FA"
        assert match.query == "  AFib \n"

    async def test_empty_query(self, acronyms_file, fake_embedder):
        index = MedicalTermIndex(fake_embedder)
        await index.initialize(acronyms_file)

        match = await index.search("   ")

        assert match.reason == NoMatchReason.EMPTY_QUERY
        assert match.to_tool_text() == "[NO MATCH] — Empty query provided."
        assert fake_embedder.queries == []

    async def test_not_initialized(self, fake_embedder):
        index = MedicalTermIndex(fake_embedder)

        result = await index.search_medical_knowledge("hypertension")

        assert result == (
            "[NO MATCH] — Semantic index not initialized. Contact system administrator."
        )

    async def test_embedding_failure_is_reported(self, acronyms_file):
        index = MedicalTermIndex(scripted_embedder(acronyms_file, {}))
        await index.initialize(acronyms_file)

        match = await index.search("unknown")

        assert match.tier == ConfidenceTier.NO_MATCH
        assert match.reason == NoMatchReason.ERROR
        assert match.to_tool_text() == "[NO MATCH] — Semantic search error: 'unknown'"

    async def test_failing_backend_does_not_raise(self, acronyms_file):
        healthy = FakeEmbeddingService()
        index = MedicalTermIndex(healthy)
        await index.initialize(acronyms_file)
        healthy.fail = True

        result = await index.search_medical_knowledge("hypertension")

        assert result == "[NO MATCH] — Semantic search error: embedding backend unavailable"
