"""Tests for the per-file NotabilityAnalyzer."""

from __future__ import annotations

import logging

import pytest

from notable_classifier.analyzer import NotabilityAnalyzer
from notable_classifier.classifier import Categorizer
from notable_classifier.exceptions import CorruptModelError, InitializationError, ModelNotFoundError
from notable_classifier.formats import FormatGate
from notable_classifier.models import SourceFile
from notable_classifier.store import ModelStore


class SelectiveFailingGate(FormatGate):
    """Gate that raises for one path and defers to the real gate otherwise."""

    def __init__(self, config, failing_path):
        super().__init__(config)
        self.failing_path = failing_path

    def effective_mime_type(self, file):
        if file.path == self.failing_path:
            raise RuntimeError("unreadable container")
        return super().effective_mime_type(file)


@pytest.fixture
def analyzer(config, trained_model) -> NotabilityAnalyzer:
    ModelStore(config).persist(trained_model)
    return NotabilityAnalyzer(config)


class TestConstruction:
    def test_missing_model(self, config):
        with pytest.raises(ModelNotFoundError):
            NotabilityAnalyzer(config)

    def test_corrupt_model(self, config):
        store = ModelStore(config)
        store.ensure_root()
        store.model_path.write_text("garbage\n", encoding="utf-8")
        with pytest.raises(CorruptModelError):
            NotabilityAnalyzer(config)

    def test_bad_detector_config(self, tmp_path, trained_model):
        from notable_classifier.config import ClassifierConfig

        bad = tmp_path / "types.json"
        bad.write_text("[{]")
        config = ClassifierConfig.for_root(tmp_path, custom_file_types=bad)
        with pytest.raises(InitializationError):
            NotabilityAnalyzer(config, categorizer=Categorizer(trained_model))

    def test_injected_categorizer(self, config, trained_model):
        categorizer = Categorizer(trained_model)
        analyzer = NotabilityAnalyzer(config, categorizer=categorizer)
        assert analyzer.categorizer is categorizer


class TestClassifyFile:
    def test_notable_text(self, analyzer, tmp_path):
        path = tmp_path / "memo.txt"
        path.write_text("Wire the payment to the offshore account before the auditors arrive.")
        result = analyzer.classify_path(path)
        assert result is not None
        assert result.label == "notable"
        assert result.confidence > 0.5

    def test_nonnotable_text(self, analyzer, tmp_path):
        path = tmp_path / "notice.txt"
        path.write_text("The office picnic and the lunch menu are in the newsletter.")
        result = analyzer.classify_path(path)
        assert result is not None
        assert result.label == "nonnotable"

    def test_html_file(self, analyzer, html_file):
        result = analyzer.classify_file(SourceFile(html_file.path))
        assert result is not None
        assert result.token_count == 6

    def test_unsupported_file(self, analyzer, tmp_path):
        path = tmp_path / "image.png"
        path.write_bytes(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64)
        assert analyzer.classify_path(path) is None
        assert not analyzer.is_supported(SourceFile(path))

    def test_metadata_type_used_when_undetectable(self, analyzer, tmp_path):
        path = tmp_path / "blob"
        path.write_bytes(b"\x00\x01")
        result = analyzer.classify_file(SourceFile(path, mime_type="text/plain; charset=utf-8"))
        assert result is not None
        assert result.token_count == 2

    def test_unknown_words_yield_priors(self, analyzer, tmp_path):
        path = tmp_path / "unknown.txt"
        path.write_text("nothing known here zzz", encoding="utf-8")
        result = analyzer.classify_path(path)
        assert result is not None
        assert result.probabilities["notable"] == pytest.approx(0.5)

    def test_classify_files(self, analyzer, text_file, tmp_path):
        png = tmp_path / "x.png"
        png.write_bytes(b"\x89PNG\r\n\x1a\n\x00")
        files = [text_file, SourceFile(png)]
        results = list(analyzer.classify_files(files))
        assert [f for f, _ in results] == files
        assert results[0][1] is not None
        assert results[1][1] is None

    def test_classify_files_continues_after_failure(self, config, trained_model, text_file, tmp_path, caplog):
        broken = SourceFile(tmp_path / "broken.txt", mime_type="text/plain")
        gate = SelectiveFailingGate(config, broken.path)
        analyzer = NotabilityAnalyzer(config, gate=gate, categorizer=Categorizer(trained_model))
        with caplog.at_level(logging.ERROR, logger="notable_classifier.analyzer"):
            results = list(analyzer.classify_files([broken, text_file]))
        assert [f for f, _ in results] == [broken, text_file]
        assert results[0][1] is None
        assert results[1][1] is not None
        assert "broken.txt" in caplog.text
