"""Tests for annotation word extraction."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from core.words import DEFAULT_STOP_WORDS, MIN_WORD_LENGTH, accept_word, extract_from_lines, extract_words


def test_ocr_sentence_keeps_long_non_stop_words() -> None:
    assert extract_words("Hi the CAT sat", {"the"}) == {"cat", "sat"}


def test_words_must_start_with_a_letter() -> None:
    assert extract_words("3rd floor 42nd street") == {"floor", "street"}


def test_punctuation_splits_tokens() -> None:
    assert extract_words("invoice#2041, total: seventy-five") == {"invoice", "total", "seventy", "five"}


def test_default_stop_words_apply_when_none_given() -> None:
    assert "the" in DEFAULT_STOP_WORDS
    assert extract_words("the and dog") == {"dog"}


def test_explicit_empty_stop_words_keep_everything() -> None:
    assert extract_words("the and dog", set()) == {"the", "and", "dog"}


def test_extract_from_lines_merges() -> None:
    assert extract_from_lines(["Receipt", "Coffee shop"]) == {"receipt", "coffee", "shop"}


def test_accept_word_rules() -> None:
    assert accept_word("Cat")
    assert not accept_word("hi")
    assert not accept_word("_abc")
    assert not accept_word("The")


@given(st.text())
def test_extracted_words_are_normalised(text: str) -> None:
    for word in extract_words(text):
        assert len(word) >= MIN_WORD_LENGTH
        assert word == word.lower()
        assert word[0].isascii() and word[0].isalpha()
        assert word not in DEFAULT_STOP_WORDS


@given(st.text(), st.text())
def test_extraction_is_union_over_lines(first: str, second: str) -> None:
    assert extract_from_lines([first, second]) == extract_words(first) | extract_words(second)
