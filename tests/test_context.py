"""Tests for result filtering and context assembly."""

from dataroom_ai.rag.context import (
    assemble_context,
    build_sources,
    filter_low_value_results,
    merge_unique,
    prioritize_exact_matches,
    sort_by_similarity,
    truncate_context,
    validate_context,
)
from dataroom_ai.services.vector_store import RetrievedChunk


def _r(chunk_id: str, content: str, similarity: float = 0.5) -> RetrievedChunk:
    return RetrievedChunk(id=chunk_id, content=content, similarity=similarity, file_id="f1")


class TestFilterLowValue:
    def test_drops_dictionary_rows(self):
        results = [
            _r("1", "Sheet: Meta | Field: revenue"),
            _r("2", "Data Dictionary | revenue means sales"),
            _r("3", "Field: amount, Type: number, Description: invoice amount"),
            _r("4", "Sheet: AR | Invoice: INV-1, Amount: 100"),
        ]

        assert [r.id for r in filter_low_value_results(results)] == ["4"]

    def test_keeps_everything_when_all_low_value(self):
        results = [_r("1", "Sheet: Meta | Field: revenue")]

        assert filter_low_value_results(results) == results


class TestPrioritizeExactMatches:
    def test_keyword_hits_first_with_boosted_similarity(self):
        keyword = [_r("k1", "INV-1 row", similarity=1.0)]
        vector = [_r("v1", "other", 0.8), _r("k1", "INV-1 row", 0.4)]

        merged = prioritize_exact_matches(keyword, vector)

        assert [r.id for r in merged] == ["k1", "v1"]
        assert merged[0].similarity == 0.99
        assert keyword[0].similarity == 1.0

    def test_no_keyword_hits(self):
        vector = [_r("v1", "other")]
        assert prioritize_exact_matches([], vector) is vector


def test_merge_unique_appends_unseen_ids():
    existing = [_r("a", "x")]

    added = merge_unique(existing, [_r("a", "x"), _r("b", "y"), _r("b", "y")])

    assert [r.id for r in added] == ["b"]
    assert [r.id for r in existing] == ["a", "b"]


def test_sort_by_similarity():
    results = [_r("a", "x", 0.2), _r("b", "y", 0.9), _r("c", "z", 0.5)]
    assert [r.id for r in sort_by_similarity(results)] == ["b", "c", "a"]


class TestAssembleContext:
    def test_respects_budget_and_stops_at_first_overflow(self):
        results = [_r("1", "a" * 40), _r("2", "b" * 40), _r("3", "c" * 5)]

        context = assemble_context(results, [], max_chars=60)

        assert context == "a" * 40

    def test_keyword_rows_placed_first(self):
        results = [_r("1", "revenue row"), _r("2", "Invoice inv-7 row")]

        context = assemble_context(results, ["INV-7"], max_chars=1000)

        assert context == "Invoice inv-7 row\n\nrevenue row"

    def test_duplicate_content_skipped(self):
        results = [_r("1", "same row"), _r("2", "same row"), _r("3", "other row")]

        assert assemble_context(results, [], max_chars=1000) == "same row\n\nother row"

    def test_empty(self):
        assert assemble_context([], [], max_chars=100) == ""


class TestTruncateContext:
    def test_short_context_unchanged(self):
        assert truncate_context("One. Two.", 100) == "One. Two."

    def test_cut_back_to_last_sentence(self):
        assert truncate_context("First sentence. Second sentence is long.", 25) == "First sentence."


def test_validate_context_prefers_text():
    chunks = [
        RetrievedChunk(id="1", content="content", similarity=1.0, text="  text  "),
        RetrievedChunk(id="2", content="   ", similarity=1.0),
        RetrievedChunk(id="3", content=" body ", similarity=1.0),
    ]

    assert validate_context(chunks) == ["text", "body"]
    assert validate_context(None) == []


def test_build_sources_previews_content():
    results = [_r("1", "x" * 250, 0.7), _r("2", "short", 0.6)]

    sources = build_sources(results, 200)

    assert sources[0].content == "x" * 200 + "..."
    assert sources[0].similarity == 0.7
    assert sources[0].file_id == "f1"
    assert sources[1].content == "short"
