"""
Default text processor for the perceptron intent classifier.

Normalises case and strips diacritics, then splits text into word-level
feature tokens. Any callable mapping ``str`` to a sequence of strings can
replace :func:`process` as the encoder processor.
"""

from __future__ import annotations

import re
import unicodedata

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def normalize(text: str) -> str:
    """Lower-case *text* and remove combining diacritical marks."""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.lower()


def tokenize(text: str) -> list[str]:
    """Split *text* into word tokens, dropping punctuation and whitespace."""
    return _WORD_RE.findall(text)


def process(text: str) -> list[str]:
    """Normalise then tokenize *text*."""
    return tokenize(normalize(text))
