"""Rules turning raw backend text into searchable annotation words."""

from __future__ import annotations

import re
from typing import AbstractSet, Iterable, Iterator

MIN_WORD_LENGTH = 3

_TOKEN_RE = re.compile(r"[^\W_]+")

DEFAULT_STOP_WORDS: frozenset[str] = frozenset(
    {
        "about",
        "after",
        "all",
        "and",
        "any",
        "are",
        "but",
        "can",
        "did",
        "does",
        "for",
        "from",
        "had",
        "has",
        "have",
        "her",
        "hers",
        "him",
        "his",
        "how",
        "into",
        "its",
        "just",
        "not",
        "now",
        "off",
        "once",
        "only",
        "other",
        "our",
        "out",
        "over",
        "own",
        "same",
        "she",
        "should",
        "some",
        "such",
        "than",
        "that",
        "the",
        "their",
        "them",
        "then",
        "there",
        "these",
        "they",
        "this",
        "those",
        "too",
        "under",
        "until",
        "very",
        "was",
        "were",
        "what",
        "when",
        "where",
        "which",
        "while",
        "who",
        "whom",
        "why",
        "will",
        "with",
        "you",
        "your",
    }
)


def tokenize(text: str) -> Iterator[str]:
    """Yield word tokens from ``text``, splitting on anything but letters and digits."""
    for match in _TOKEN_RE.finditer(text or ""):
        yield match.group(0)


def is_stop_word(word: str, stop_words: AbstractSet[str] | None = None) -> bool:
    words = DEFAULT_STOP_WORDS if stop_words is None else stop_words
    return word.lower() in words


def accept_word(word: str, stop_words: AbstractSet[str] | None = None) -> bool:
    """Return whether ``word`` is worth indexing.

    A word is kept when it has at least three characters, starts with an
    ASCII letter and is not a stop word.
    """
    if len(word) < MIN_WORD_LENGTH:
        return False
    first = word[0]
    if not (first.isascii() and first.isalpha()):
        return False
    return not is_stop_word(word, stop_words)


def extract_words(text: str, stop_words: AbstractSet[str] | None = None) -> set[str]:
    """Return the lower-cased accepted words found in ``text``."""
    return {token.lower() for token in tokenize(text) if accept_word(token, stop_words)}


def extract_from_lines(lines: Iterable[str], stop_words: AbstractSet[str] | None = None) -> set[str]:
    words: set[str] = set()
    for line in lines:
        words |= extract_words(line, stop_words)
    return words


__all__ = [
    "DEFAULT_STOP_WORDS",
    "MIN_WORD_LENGTH",
    "accept_word",
    "extract_from_lines",
    "extract_words",
    "is_stop_word",
    "tokenize",
]
