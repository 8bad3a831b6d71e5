"""Shared tokenizer used at both training and inference time.

A model is only as good as the agreement between the tokens it was trained
on and the tokens it is asked to score. Any change to the splitting rules
below must bump ``TOKENIZER_VERSION``.

Rules (``SimpleTokenizer``):

1. Apply NFC Unicode normalization.
2. Classify each character as a letter, a digit, whitespace, or other.
3. A token is a maximal run of letters or of digits. Whitespace separates
   tokens and is dropped. Symbols group only with identical neighbours, so
   ``"..."`` is one token and ``"?!"`` is two.

Case is preserved. No locale-dependent behaviour is involved.
"""

from __future__ import annotations

import unicodedata
from abc import ABC, abstractmethod

TOKENIZER_VERSION = 1

_ALPHABETIC = 1
_NUMERIC = 2
_WHITESPACE = 3
_OTHER = 4


def _char_class(ch: str) -> int:
    if ch.isspace():
        return _WHITESPACE
    if ch.isalpha():
        return _ALPHABETIC
    if ch.isdigit():
        return _NUMERIC
    return _OTHER


class Tokenizer(ABC):
    """Splits document text into an ordered list of tokens."""

    version: int = TOKENIZER_VERSION

    @abstractmethod
    def tokenize(self, text: str) -> list[str]:
        ...


class SimpleTokenizer(Tokenizer):
    """Character-class tokenizer for English text.

    Example::

        >>> SimpleTokenizer().tokenize("Pay $500 now...")
        ['Pay', '$', '500', 'now', '...']
    """

    def tokenize(self, text: str) -> list[str]:
        if not text:
            return []

        text = unicodedata.normalize("NFC", text)
        tokens: list[str] = []
        start = 0
        previous = _WHITESPACE

        for i, ch in enumerate(text):
            current = _char_class(ch)
            if current == previous and (current != _OTHER or ch == text[i - 1]):
                continue
            if previous != _WHITESPACE:
                tokens.append(text[start:i])
            start = i
            previous = current

        if previous != _WHITESPACE:
            tokens.append(text[start:])
        return tokens


DEFAULT_TOKENIZER = SimpleTokenizer()
