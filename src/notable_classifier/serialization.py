"""Plain-text reader and writer for Naive Bayes models.

The model file is the interchange between training and inference, which may
run in different processes, so the layout is fixed and versioned::

    NaiveBayes                          model kind
    1                                   format version
    <alpha>
    <L>                                 number of labels
    <label>                             L lines, in label order
    <count>                             L lines, documents per label
    <V>                                 vocabulary size
    <token>\\t<count_1>...\\t<count_L>    V lines, sorted by token

Labels and tokens escape backslash, tab, newline and carriage return, so any
string survives a round trip. Numbers are written with ``repr`` and read back
with ``float``, which reproduces them exactly.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Iterator, TextIO

from .classifier import NaiveBayesModel
from .config import ALGORITHM
from .exceptions import CorruptModelError

FORMAT_VERSION = 1
SUPPORTED_VERSIONS = frozenset({FORMAT_VERSION})

# Model files are always UTF-8 with "\n" line endings; surrogatepass lets
# tokens carrying lone surrogates round-trip.
ENCODING = "utf-8"
ENCODING_ERRORS = "surrogatepass"
NEWLINE = "\n"

_ESCAPES = {"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "t": "\t", "n": "\n", "r": "\r"}


def escape(value: str) -> str:
    """Escape a label or token for a single model-file field."""
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def unescape(value: str) -> str:
    """Reverse ``escape``.

    Raises:
        CorruptModelError: On a dangling or unknown escape sequence.
    """
    if "\\" not in value:
        return value

    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, None)
        if nxt is None or nxt not in _UNESCAPES:
            raise CorruptModelError(f"Invalid escape sequence in {value!r}")
        out.append(_UNESCAPES[nxt])
    return "".join(out)


def format_number(value: float) -> str:
    return repr(float(value))


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


class ModelReader(ABC):
    """Reads a model from a text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    @abstractmethod
    def check_model_type(self) -> None:
        """Validate the file header.

        Raises:
            CorruptModelError: If the header does not name the expected
                model kind and a supported version.
        """

    @abstractmethod
    def construct_model(self) -> NaiveBayesModel:
        """Parse the body into a model. Call ``check_model_type`` first."""


class ModelWriter(ABC):
    """Writes a model to a text stream."""

    def __init__(self, model: NaiveBayesModel, stream: TextIO) -> None:
        self.model = model
        self._stream = stream

    @abstractmethod
    def persist(self) -> None:
        """Write the whole model and flush the stream."""


# ---------------------------------------------------------------------------
# Plain-text implementation
# ---------------------------------------------------------------------------


class PlainTextModelReader(ModelReader):
    """Reader for the line-oriented model format."""

    def __init__(self, stream: TextIO, model_type: str = ALGORITHM) -> None:
        super().__init__(stream)
        self.model_type = model_type
        self._line_number = 0
        self._header_checked = False
        self._version = 0

    def check_model_type(self) -> None:
        kind = self._read_line()
        if kind != self.model_type:
            raise CorruptModelError(
                f"Model type {kind!r} does not match expected {self.model_type!r}"
            )
        version = self._read_int()
        if version not in SUPPORTED_VERSIONS:
            raise CorruptModelError(f"Unsupported model format version {version}")
        self._version = version
        self._header_checked = True

    def construct_model(self) -> NaiveBayesModel:
        if not self._header_checked:
            self.check_model_type()

        alpha = self._read_number()
        if alpha <= 0:
            raise CorruptModelError(f"Line {self._line_number}: alpha must be positive")

        n_labels = self._read_int()
        if n_labels < 2:
            raise CorruptModelError(f"Line {self._line_number}: expected at least 2 labels")
        labels = tuple(unescape(self._read_line()) for _ in range(n_labels))
        if len(set(labels)) != n_labels:
            raise CorruptModelError(f"Duplicate labels in model: {list(labels)}")
        label_counts = tuple(self._read_number() for _ in range(n_labels))

        vocab_size = self._read_int()
        token_counts: dict[str, tuple[float, ...]] = {}
        previous = None
        for _ in range(vocab_size):
            fields = self._read_line().split("\t")
            if len(fields) != n_labels + 1:
                raise CorruptModelError(
                    f"Line {self._line_number}: expected {n_labels + 1} fields, got {len(fields)}"
                )
            token = unescape(fields[0])
            if previous is not None and token <= previous:
                raise CorruptModelError(
                    f"Line {self._line_number}: token {token!r} is duplicated or out of order"
                )
            token_counts[token] = tuple(self._parse_number(f) for f in fields[1:])
            previous = token

        trailing = self._readline()
        if trailing:
            raise CorruptModelError(f"Line {self._line_number + 1}: unexpected data after model")

        try:
            return NaiveBayesModel(
                labels=labels,
                label_counts=label_counts,
                token_counts=token_counts,
                alpha=alpha,
            )
        except ValueError as exc:
            raise CorruptModelError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Line helpers
    # ------------------------------------------------------------------

    def _readline(self) -> str:
        try:
            return self._stream.readline()
        except UnicodeDecodeError as exc:
            raise CorruptModelError(
                f"Line {self._line_number + 1}: model file is not valid UTF-8"
            ) from exc

    def _read_line(self) -> str:
        line = self._readline()
        self._line_number += 1
        if not line:
            raise CorruptModelError(f"Line {self._line_number}: unexpected end of model file")
        if not line.endswith("\n"):
            raise CorruptModelError(f"Line {self._line_number}: truncated line")
        return line[:-1]

    def _read_int(self) -> int:
        text = self._read_line()
        try:
            value = int(text)
        except ValueError as exc:
            raise CorruptModelError(
                f"Line {self._line_number}: expected an integer, got {text!r}"
            ) from exc
        if value < 0:
            raise CorruptModelError(f"Line {self._line_number}: negative count {value}")
        return value

    def _read_number(self) -> float:
        return self._parse_number(self._read_line())

    def _parse_number(self, text: str) -> float:
        try:
            value = float(text)
        except ValueError as exc:
            raise CorruptModelError(
                f"Line {self._line_number}: expected a number, got {text!r}"
            ) from exc
        if not math.isfinite(value) or value < 0:
            raise CorruptModelError(f"Line {self._line_number}: invalid value {text!r}")
        return value


class PlainTextModelWriter(ModelWriter):
    """Writer for the line-oriented model format."""

    def __init__(self, model: NaiveBayesModel, stream: TextIO, model_type: str = ALGORITHM) -> None:
        super().__init__(model, stream)
        self.model_type = model_type

    def lines(self) -> Iterator[str]:
        """Yield every line of the serialized model, without newlines."""
        model = self.model
        yield self.model_type
        yield str(FORMAT_VERSION)
        yield format_number(model.alpha)
        yield str(len(model.labels))
        for label in model.labels:
            yield escape(label)
        for count in model.label_counts:
            yield format_number(count)
        yield str(model.vocabulary_size)
        for token in model.vocabulary:
            counts = model.token_counts[token]
            yield "\t".join([escape(token)] + [format_number(c) for c in counts])

    def persist(self) -> None:
        for line in self.lines():
            self._stream.write(line)
            self._stream.write(NEWLINE)
        self._stream.flush()
