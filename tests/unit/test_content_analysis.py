"""Unit tests for the pure passage-analysis helpers."""

from __future__ import annotations

import pytest

from textbook_rag.models.rag import ContentType
from textbook_rag.services.ingestion.content_analysis import (
    content_density,
    detect_math,
    determine_content_type,
    extract_keywords,
    find_semantic_boundaries,
    make_chunk_id,
    merge_keywords,
    split_at_midpoint_sentence,
    split_sentences,
)


class TestSplitSentences:
    def test_basic_split(self) -> None:
        assert split_sentences("Water moves. Salt stays! Why?") == [
            "Water moves.",
            "Salt stays!",
            "Why?",
        ]

    def test_abbreviations_do_not_split(self) -> None:
        text = "See Fig. 3 for details, e.g. osmosis in cells. The next topic is diffusion."

        assert split_sentences(text) == [
            "See Fig. 3 for details, e.g. osmosis in cells.",
            "The next topic is diffusion.",
        ]

    def test_trailing_text_without_terminator(self) -> None:
        assert split_sentences("First sentence. trailing words") == [
            "First sentence.",
            "trailing words",
        ]

    def test_abbreviation_inside_word_still_splits(self) -> None:
        # "al" only counts as an abbreviation as a whole word.
        assert len(split_sentences("It was normal. Then it changed.")) == 2


class TestSplitAtMidpoint:
    def test_split_near_middle(self) -> None:
        text = "One short sentence. Two short sentence. Three short sentence. Four short sentence."

        first, second = split_at_midpoint_sentence(text)

        assert first == "One short sentence. Two short sentence."
        assert second == "Three short sentence. Four short sentence."

    def test_single_sentence_returns_none(self) -> None:
        assert split_at_midpoint_sentence("Only one sentence here.") is None

    def test_preserves_paragraph_breaks(self) -> None:
        text = "Alpha beta.\n\nGamma delta. Epsilon zeta eta theta iota kappa lambda."

        first, second = split_at_midpoint_sentence(text)

        assert first == "Alpha beta.\n\nGamma delta."
        assert second == "Epsilon zeta eta theta iota kappa lambda."


class TestDetectMath:
    def test_latex_integral(self) -> None:
        result = detect_math(r"The area is $$\int_0^1 x^2 dx$$ exactly.")

        assert result.detected is True
        assert "integral" in result.keywords

    def test_keyword_only(self) -> None:
        result = detect_math("The quadratic equation has two roots.")

        assert result.detected is True
        assert result.keywords == ("equation",)

    def test_unicode_symbol(self) -> None:
        assert detect_math("The sum ∑ of the terms converges.").detected is True

    def test_simple_arithmetic(self) -> None:
        assert detect_math("Adding 2 + 3 gives five.").detected is True

    def test_plain_prose(self) -> None:
        result = detect_math("Water moves across the membrane.")

        assert result.detected is False
        assert result.keywords == ()

    def test_keywords_not_duplicated(self) -> None:
        result = detect_math(r"An integral such as \int f(x) dx.")

        assert result.keywords.count("integral") == 1


class TestDetermineContentType:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("We define osmosis as the movement of water.", ContentType.DEFINITION),
            ("For instance, a red blood cell swells in water.", ContentType.EXAMPLE),
            ("Solve each problem at the end of the chapter.", ContentType.EXERCISE),
            ("Water moves across the membrane.", ContentType.TEXT),
        ],
    )
    def test_keyword_sniffing(self, text, expected) -> None:
        assert determine_content_type(text) == expected

    def test_formula_takes_precedence(self) -> None:
        text = "For example, the equation shows the rate."

        assert determine_content_type(text, detect_math(text)) == ContentType.FORMULA
        assert determine_content_type(text) == ContentType.EXAMPLE


class TestKeywords:
    def test_most_frequent_content_words(self) -> None:
        text = "Osmosis moves water. Osmosis depends on solute. Water and solute balance."

        keywords = extract_keywords(text)

        assert keywords[:3] == ["osmosis", "water", "solute"]
        assert "moves" in keywords
        assert "and" not in keywords

    def test_stop_words_and_short_words_excluded(self) -> None:
        assert extract_keywords("however there their which cells") == ["cells"]

    def test_limit(self) -> None:
        text = " ".join(f"word{chr(97 + i)}xyz" for i in range(5)) + " " + " ".join(
            ["alpha", "bravo", "charlie", "delta", "echoes", "foxtrot", "golfer", "hotel", "india",
             "juliet", "kilos", "limas"]
        )

        assert len(extract_keywords(text, limit=10)) == 10

    def test_merge_keeps_order_and_dedupes(self) -> None:
        assert merge_keywords(["osmosis", "integral"], ("integral", "limit")) == [
            "osmosis",
            "integral",
            "limit",
        ]


class TestContentDensity:
    def test_empty(self) -> None:
        assert content_density("") == 0.0

    def test_repetitive_text_is_sparse(self) -> None:
        assert content_density("water " * 50) < 0.1

    def test_technical_text_is_dense(self) -> None:
        text = "Mitochondria Chloroplasts Endoplasmic Reticulum Ribosomes Lysosomes Peroxisomes"

        assert content_density(text) == pytest.approx(1.0)


class TestSemanticBoundaries:
    def test_transition_sentences(self) -> None:
        text = "Water moves inward. However, salt stays out. Finally, the cell swells."

        boundaries = find_semantic_boundaries(text)

        assert [b.marker for b in boundaries] == ["however", "finally"]
        assert boundaries[0].position == text.index("However")
        assert all(b.confidence == pytest.approx(0.7) for b in boundaries)

    def test_first_sentence_never_a_boundary(self) -> None:
        assert find_semantic_boundaries("However, water moves. Salt stays.") == []

    def test_multiword_marker(self) -> None:
        text = "Cells need water. In conclusion, osmosis matters."

        boundaries = find_semantic_boundaries(text)

        assert [b.marker for b in boundaries] == ["in conclusion"]


class TestChunkId:
    def test_deterministic(self) -> None:
        assert make_chunk_id("bio", 3, "text") == make_chunk_id("bio", 3, "text")

    def test_format(self) -> None:
        chunk_id = make_chunk_id("bio", 3, "text")

        book, index, digest = chunk_id.rsplit("_", 2)
        assert (book, index) == ("bio", "3")
        assert len(digest) == 8

    def test_changes_with_text(self) -> None:
        assert make_chunk_id("bio", 0, "a") != make_chunk_id("bio", 0, "b")
