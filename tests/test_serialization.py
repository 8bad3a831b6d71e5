"""Tests for the plain-text model reader and writer."""

from __future__ import annotations

import io

import pytest

from notable_classifier.classifier import NaiveBayesModel
from notable_classifier.exceptions import CorruptModelError
from notable_classifier.serialization import (
    FORMAT_VERSION,
    PlainTextModelReader,
    PlainTextModelWriter,
    escape,
    unescape,
)


def _write(model: NaiveBayesModel) -> str:
    stream = io.StringIO()
    PlainTextModelWriter(model, stream).persist()
    return stream.getvalue()


def _read(text: str) -> NaiveBayesModel:
    reader = PlainTextModelReader(io.StringIO(text))
    reader.check_model_type()
    return reader.construct_model()


VALID = (
    "NaiveBayes\n"
    "1\n"
    "1.0\n"
    "2\n"
    "notable\n"
    "nonnotable\n"
    "2.0\n"
    "1.0\n"
    "2\n"
    "account\t3.0\t0.0\n"
    "lunch\t0.0\t1.0\n"
)


class TestEscaping:
    @pytest.mark.parametrize("value", [
        "plain",
        "tab\there",
        "line\nbreak",
        "carriage\rreturn",
        "back\\slash",
        "\\t literal",
        "",
    ])
    def test_round_trip(self, value):
        assert unescape(escape(value)) == value

    def test_escaped_has_no_separators(self):
        escaped = escape("a\tb\nc\rd")
        assert "\t" not in escaped
        assert "\n" not in escaped
        assert "\r" not in escaped

    @pytest.mark.parametrize("value", ["dangling\\", "bad\\x"])
    def test_invalid_escape(self, value):
        with pytest.raises(CorruptModelError):
            unescape(value)


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class TestPlainTextModelWriter:
    def test_layout(self):
        model = NaiveBayesModel(
            label_counts=(2, 1),
            token_counts={"lunch": (0, 1), "account": (3, 0)},
        )
        assert _write(model) == VALID

    def test_header(self, trained_model):
        lines = _write(trained_model).split("\n")
        assert lines[0] == "NaiveBayes"
        assert lines[1] == str(FORMAT_VERSION)

    def test_rows_sorted(self, trained_model):
        lines = _write(trained_model).rstrip("\n").split("\n")
        rows = lines[-trained_model.vocabulary_size:]
        tokens = [unescape(row.split("\t")[0]) for row in rows]
        assert tokens == sorted(tokens)

    def test_deterministic(self, trained_model):
        assert _write(trained_model) == _write(trained_model)


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------


class TestPlainTextModelReader:
    def test_read_valid(self):
        model = _read(VALID)
        assert model.labels == ("notable", "nonnotable")
        assert model.label_counts == (2.0, 1.0)
        assert model.token_counts["account"] == (3.0, 0.0)
        assert model.alpha == 1.0

    def test_round_trip(self, trained_model):
        assert _read(_write(trained_model)) == trained_model

    def test_round_trip_awkward_tokens(self):
        model = NaiveBayesModel(
            label_counts=(1, 1),
            token_counts={
                "tab\tinside": (1, 0),
                "new\nline": (0, 2),
                "\\": (1, 1),
                "café": (0.5, 0.25),
                "lone\ud800surrogate": (1, 0),
            },
            alpha=0.1,
        )
        assert _read(_write(model)) == model

    def test_round_trip_scores_identically(self, trained_model, tokenizer):
        restored = _read(_write(trained_model))
        sample = tokenizer.tokenize("wire payment for the office picnic")
        assert restored.eval(sample) == trained_model.eval(sample)

    def test_construct_checks_header_if_needed(self):
        reader = PlainTextModelReader(io.StringIO(VALID))
        assert reader.construct_model().vocabulary_size == 2

    @pytest.mark.parametrize("text", [
        "",
        "MaxEnt\n1\n",
        "NaiveBayes\n2\n",
        "NaiveBayes\nx\n",
    ])
    def test_bad_header(self, text):
        reader = PlainTextModelReader(io.StringIO(text))
        with pytest.raises(CorruptModelError):
            reader.check_model_type()

    @pytest.mark.parametrize("text", [
        # truncated before the vocabulary
        VALID.split("2\naccount")[0],
        # last line missing its newline
        VALID[:-1],
        # trailing garbage
        VALID + "extra\n",
        # wrong field count
        VALID.replace("lunch\t0.0\t1.0", "lunch\t0.0"),
        # unsorted rows
        VALID.replace("account", "zebra"),
        # non-numeric count
        VALID.replace("3.0", "three"),
        # negative count
        VALID.replace("3.0", "-3.0"),
        # non-finite count
        VALID.replace("3.0", "inf"),
        # zero alpha
        VALID.replace("NaiveBayes\n1\n1.0\n", "NaiveBayes\n1\n0.0\n"),
        # single label
        VALID.replace("\n2\nnotable\nnonnotable\n2.0\n1.0\n", "\n1\nnotable\n2.0\n"),
        # duplicate labels
        VALID.replace("nonnotable\n", "notable\n", 1),
        # bad escape in token
        VALID.replace("lunch", "lu\\qnch"),
    ])
    def test_corrupt_body(self, text):
        with pytest.raises(CorruptModelError):
            _read(text)

    def test_corrupt_model_is_value_error(self):
        with pytest.raises(ValueError):
            _read("NaiveBayes\n1\n")
