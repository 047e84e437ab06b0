"""Text normalization and light stemming shared by search and embeddings."""

from __future__ import annotations

import re
import unicodedata
from typing import List, Set

_WORD_PATTERN = re.compile(r"[a-z0-9]+")
_CAMEL_PATTERN = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_MIN_STEM = 3

# Ordered: the first matching suffix wins.
_SUFFIX_RULES = (
    ("aciones", "acion"),
    ("iciones", "icion"),
    ("ciones", "cion"),
    ("siones", "sion"),
    ("dades", "dad"),
    ("mente", ""),
    ("sses", "ss"),
    ("ies", "y"),
    ("ing", ""),
)


def normalize_text(text: str) -> str:
    """Lower-case ``text`` and strip accents (NFKD, combining marks removed)."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char)).lower()


def stem(word: str) -> str:
    for suffix, replacement in _SUFFIX_RULES:
        if word.endswith(suffix) and len(word) - len(suffix) + len(replacement) >= _MIN_STEM:
            return word[: len(word) - len(suffix)] + replacement
    if word.endswith("s") and not word.endswith(("ss", "us", "is")) and len(word) - 1 >= _MIN_STEM:
        return word[:-1]
    return word


def tokenize(text: str) -> List[str]:
    """Split camelCase, normalize and return the words of ``text`` in order."""
    spaced = _CAMEL_PATTERN.sub(" ", text)
    return _WORD_PATTERN.findall(normalize_text(spaced))


def stem_tokens(text: str) -> Set[str]:
    """Return the distinct stems of every word longer than two characters."""
    return {stem(word) for word in tokenize(text) if len(word) > 2}


__all__ = ["normalize_text", "stem", "stem_tokens", "tokenize"]
