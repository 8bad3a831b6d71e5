"""Tests for configuration and data models."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from notable_classifier.config import (
    ALGORITHM,
    HOME_ENV_VAR,
    LABELS,
    MAX_FILE_SIZE,
    ClassifierConfig,
    get_text_classifier_path,
    get_user_config_root,
)
from notable_classifier.models import ClassificationResult, Label, SourceFile


class TestConfigRoot:
    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path / "home"))
        assert get_user_config_root() == tmp_path / "home"

    def test_xdg_config_home(self, monkeypatch, tmp_path):
        monkeypatch.delenv(HOME_ENV_VAR, raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_user_config_root() == tmp_path / "notable-classifier"

    def test_text_classifier_path(self, tmp_path):
        assert get_text_classifier_path(tmp_path) == tmp_path / "text_classifiers"


class TestClassifierConfig:
    def test_defaults(self, tmp_path):
        config = ClassifierConfig.for_root(tmp_path)
        assert config.labels == LABELS == ("notable", "nonnotable")
        assert config.language == "en"
        assert config.algorithm == ALGORITHM == "NaiveBayes"
        assert config.max_file_size == MAX_FILE_SIZE == 100_000_000
        assert config.model_path == tmp_path / "text_classifiers" / "model.txt"

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path))
        config = ClassifierConfig.from_env()
        assert config.root_dir == tmp_path / "text_classifiers"
        assert config.custom_file_types is None

    def test_from_env_picks_up_user_file_types(self, monkeypatch, tmp_path):
        types = tmp_path / "user_file_types.json"
        types.write_text(json.dumps([]))
        monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path))
        assert ClassifierConfig.from_env().custom_file_types == types

    def test_with_overrides(self, config):
        smaller = config.with_overrides(max_file_size=10)
        assert smaller.max_file_size == 10
        assert config.max_file_size == MAX_FILE_SIZE

    def test_frozen(self, config):
        with pytest.raises(AttributeError):
            config.alpha = 2.0

    @pytest.mark.parametrize("overrides", [
        {"labels": ("notable",)},
        {"labels": ("a", "a")},
        {"max_file_size": 0},
        {"alpha": -1.0},
    ])
    def test_invalid(self, tmp_path, overrides):
        with pytest.raises(ValueError):
            ClassifierConfig.for_root(tmp_path, **overrides)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestSourceFile:
    def test_path_coerced(self, tmp_path):
        file = SourceFile(str(tmp_path / "a.txt"))
        assert isinstance(file.path, Path)

    def test_name(self, tmp_path):
        assert SourceFile(tmp_path / "a.txt").name == "a.txt"
        assert SourceFile(tmp_path / "a.txt", display_name="evidence-1").name == "evidence-1"

    def test_read(self, text_file):
        assert text_file.size == 17
        assert text_file.read_bytes(5) == b"hello"
        assert text_file.read_bytes() == b"hello world hello"


class TestClassificationResult:
    def test_confidence(self):
        result = ClassificationResult(
            label="notable", probabilities={"notable": 0.8, "nonnotable": 0.2}, token_count=3,
        )
        assert result.confidence == 0.8
        assert result.is_notable

    def test_to_dict(self):
        result = ClassificationResult(
            label="nonnotable", probabilities={"notable": 1 / 3, "nonnotable": 2 / 3},
        )
        d = result.to_dict()
        assert d["label"] == "nonnotable"
        assert d["confidence"] == 0.6667
        assert d["probabilities"]["notable"] == 0.3333
        assert not result.is_notable

    def test_label_values(self):
        assert [label.value for label in Label] == list(LABELS)
