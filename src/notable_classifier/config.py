"""Configuration for the notable text classifier.

All fixed values the pipeline needs (model location, label order, language
code, size cap) live in a single frozen ``ClassifierConfig`` that is passed
to each component at construction. Nothing here is process-wide mutable
state, so tests can point a component at a temporary root.

Directory layout::

    <user-config-root>/text_classifiers/model.txt

The user config root resolves in this order:

1. ``$NOTABLE_CLASSIFIER_HOME``
2. ``$XDG_CONFIG_HOME/notable-classifier``
3. ``~/.config/notable-classifier``
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

APP_NAME = "notable-classifier"
HOME_ENV_VAR = "NOTABLE_CLASSIFIER_HOME"

TEXT_CLASSIFIERS_SUBDIRECTORY = "text_classifiers"
MODEL_FILENAME = "model.txt"

NOTABLE_LABEL = "notable"
NONNOTABLE_LABEL = "nonnotable"
LABELS: tuple[str, ...] = (NOTABLE_LABEL, NONNOTABLE_LABEL)

LANGUAGE_CODE = "en"
ALGORITHM = "NaiveBayes"
MAX_FILE_SIZE = 100_000_000


def get_user_config_root() -> Path:
    """Return the user-scoped configuration root.

    Respects ``$NOTABLE_CLASSIFIER_HOME`` and ``$XDG_CONFIG_HOME``; falls back
    to ``~/.config/notable-classifier``.
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


def get_text_classifier_path(config_root: Optional[Path] = None) -> Path:
    """Return the directory where trained text classifiers are stored."""
    root = config_root if config_root is not None else get_user_config_root()
    return root / TEXT_CLASSIFIERS_SUBDIRECTORY


@dataclass(frozen=True)
class ClassifierConfig:
    """Immutable settings shared by the gate, pipeline, store and categorizer.

    Attributes:
        root_dir: Directory holding the model file.
        model_filename: Name of the model file inside ``root_dir``.
        labels: Ordered label set. Order determines output indexing.
        language: Language code the categorizer is configured for.
        algorithm: Model kind written in the model file header.
        max_file_size: Largest file (bytes) the extraction layer will read.
        custom_file_types: Optional JSON file with user-defined signatures
            for the file type detector.
        alpha: Laplace smoothing used when training new models.
    """

    root_dir: Path = field(default_factory=get_text_classifier_path)
    model_filename: str = MODEL_FILENAME
    labels: tuple[str, ...] = LABELS
    language: str = LANGUAGE_CODE
    algorithm: str = ALGORITHM
    max_file_size: int = MAX_FILE_SIZE
    custom_file_types: Optional[Path] = None
    alpha: float = 1.0

    def __post_init__(self) -> None:
        if len(self.labels) < 2:
            raise ValueError("At least two labels are required")
        if len(set(self.labels)) != len(self.labels):
            raise ValueError(f"Labels must be unique, got {self.labels}")
        if self.max_file_size <= 0:
            raise ValueError("max_file_size must be positive")
        if self.alpha <= 0:
            raise ValueError("alpha must be positive")

    @property
    def model_path(self) -> Path:
        """Absolute path of the well-known model file."""
        return self.root_dir / self.model_filename

    @classmethod
    def from_env(cls) -> "ClassifierConfig":
        """Build a config rooted at the current user's config directory."""
        root = get_user_config_root()
        custom = root / "user_file_types.json"
        return cls(
            root_dir=get_text_classifier_path(root),
            custom_file_types=custom if custom.is_file() else None,
        )

    @classmethod
    def for_root(cls, config_root: str | Path, **overrides) -> "ClassifierConfig":
        """Build a config for an explicit user config root."""
        return cls(root_dir=get_text_classifier_path(Path(config_root)), **overrides)

    def with_overrides(self, **changes) -> "ClassifierConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)
