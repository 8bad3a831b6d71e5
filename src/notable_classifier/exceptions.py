"""Exception hierarchy for the notable text classifier.

Per-file problems (``ExtractionError`` subclasses) are caught inside the
token pipeline and degrade to an empty token list. Model problems
(``ModelError`` subclasses) and ``InitializationError`` are always raised to
the caller.
"""

from __future__ import annotations


class NotableClassifierError(Exception):
    """Base class for all errors raised by this package."""


class InitializationError(NotableClassifierError):
    """A pipeline component could not be constructed."""


class FileTypeDetectorInitError(NotableClassifierError):
    """The file type detector failed to load its signatures."""


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class ExtractionError(NotableClassifierError):
    """Base class for per-file text extraction failures."""


class NoTextExtractorFound(ExtractionError):
    """No format-specific extractor is registered for a MIME type."""


class InitReaderError(ExtractionError):
    """A text reader could not be opened for a file."""


# ---------------------------------------------------------------------------
# Model persistence
# ---------------------------------------------------------------------------


class ModelError(NotableClassifierError):
    """Base class for model load/persist failures."""


class ModelNotFoundError(ModelError, FileNotFoundError):
    """No model file exists at the expected path."""


class CorruptModelError(ModelError, ValueError):
    """The model file header or body does not match the expected format."""
