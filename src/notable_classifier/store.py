"""Durable storage for the trained Naive Bayes model.

The store owns ``<root>/model.txt``. ``load`` and ``persist`` both create
the root directory first. ``persist`` writes to a temporary file next to
the target and renames it into place, so readers never observe a partial
model. The store assumes a single writer: concurrent ``persist`` calls for
the same root must be serialized by the caller.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional, TextIO

from .classifier import NaiveBayesModel
from .config import ClassifierConfig
from .exceptions import ModelNotFoundError
from .serialization import (
    ENCODING,
    ENCODING_ERRORS,
    NEWLINE,
    ModelReader,
    ModelWriter,
    PlainTextModelReader,
    PlainTextModelWriter,
)

logger = logging.getLogger(__name__)

ReaderFactory = Callable[[TextIO], ModelReader]
WriterFactory = Callable[[NaiveBayesModel, TextIO], ModelWriter]


class ModelStore:
    """Loads and persists the classifier model at a well-known path.

    Args:
        config: Classifier configuration (root directory, file name).
        reader_factory: Builds a ``ModelReader`` over an open text stream.
        writer_factory: Builds a ``ModelWriter`` for a model and stream.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        reader_factory: ReaderFactory = PlainTextModelReader,
        writer_factory: WriterFactory = PlainTextModelWriter,
    ) -> None:
        self.config = config or ClassifierConfig.from_env()
        self._reader_factory = reader_factory
        self._writer_factory = writer_factory

    @property
    def model_path(self) -> Path:
        return self.config.model_path

    def ensure_root(self) -> Path:
        """Create the model directory if it does not exist."""
        root = self.config.root_dir
        root.mkdir(parents=True, exist_ok=True)
        return root

    def exists(self) -> bool:
        return self.model_path.is_file()

    def load(self) -> NaiveBayesModel:
        """Read the model from disk.

        Raises:
            ModelNotFoundError: If the model file does not exist.
            CorruptModelError: If the header or body is malformed.
            OSError: If the file exists but cannot be read.
        """
        self.ensure_root()
        path = self.model_path
        try:
            stream = open(path, "r", encoding=ENCODING, errors=ENCODING_ERRORS, newline=NEWLINE)
        except FileNotFoundError as exc:
            raise ModelNotFoundError(f"No text classifier model found at {path}") from exc

        with stream:
            reader = self._reader_factory(stream)
            reader.check_model_type()
            model = reader.construct_model()

        logger.info(
            "Loaded text classifier model from %s (%d tokens, %d documents)",
            path, model.vocabulary_size, int(model.document_count),
        )
        return model

    def persist(self, model: NaiveBayesModel) -> None:
        """Write the model to disk, replacing any existing file.

        Raises:
            OSError: If the model cannot be written. No partial file is left
                behind.
        """
        root = self.ensure_root()
        path = self.model_path

        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=root)
        try:
            with os.fdopen(fd, "w", encoding=ENCODING, errors=ENCODING_ERRORS, newline=NEWLINE) as stream:
                self._writer_factory(model, stream).persist()
                stream.flush()
                os.fsync(stream.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            logger.error("Failed to write text classifier model to %s", path)
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        logger.info(
            "Wrote text classifier model to %s (%d tokens)", path, model.vocabulary_size
        )
