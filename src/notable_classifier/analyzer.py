"""Per-file notability analysis for the ingest pipeline.

``NotabilityAnalyzer`` is the entry point an ingest module holds for the
length of a session. It is built once (loading the model and the file type
detector), then called for each file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .classifier import Categorizer, load_categorizer
from .config import ClassifierConfig
from .formats import FormatGate, is_supported_mime_type
from .models import ClassificationResult, SourceFile
from .pipeline import TokenPipeline
from .store import ModelStore

logger = logging.getLogger(__name__)


class NotabilityAnalyzer:
    """Classifies files as notable or non-notable.

    Example::

        analyzer = NotabilityAnalyzer()
        result = analyzer.classify_file(SourceFile(Path("memo.docx")))
        if result and result.is_notable:
            print(f"Notable ({result.confidence:.0%})")

    Args:
        config: Classifier configuration. Read from the environment when
            omitted.
        gate: Custom FormatGate (optional).
        pipeline: Custom TokenPipeline (optional).
        categorizer: Pre-loaded Categorizer (optional). Loaded from the
            model store when omitted.

    Raises:
        InitializationError: If the file type detector cannot be built.
        ModelNotFoundError: If no model has been trained yet.
        CorruptModelError: If the stored model is unreadable.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        gate: Optional[FormatGate] = None,
        pipeline: Optional[TokenPipeline] = None,
        categorizer: Optional[Categorizer] = None,
    ) -> None:
        self.config = config or ClassifierConfig.from_env()
        self._gate = gate or FormatGate(self.config)
        self._pipeline = pipeline or TokenPipeline(self.config, detector=self._gate.detector)
        self._categorizer = categorizer or load_categorizer(ModelStore(self.config))

    @property
    def gate(self) -> FormatGate:
        return self._gate

    @property
    def pipeline(self) -> TokenPipeline:
        return self._pipeline

    @property
    def categorizer(self) -> Categorizer:
        return self._categorizer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_supported(self, file: SourceFile) -> bool:
        return self._gate.is_supported(file)

    def classify_file(self, file: SourceFile) -> Optional[ClassificationResult]:
        """Classify one file.

        Returns:
            The classification, or ``None`` if the file's type is not a
            supported document type.
        """
        mime_type = self._gate.effective_mime_type(file)
        if not is_supported_mime_type(mime_type):
            logger.debug("Skipping unsupported file \"%s\" of type %s", file.name, mime_type or "unknown")
            return None

        tokens = self._pipeline.extract_tokens(file, mime_type)
        result = self._categorizer.classify(tokens)
        logger.debug(
            "Classified \"%s\" as %s (%.3f, %d tokens)",
            file.name, result.label, result.confidence, len(tokens),
        )
        return result

    def classify_path(self, path: str | Path) -> Optional[ClassificationResult]:
        """Classify a file on disk that carries no type metadata."""
        return self.classify_file(SourceFile(Path(path)))

    def classify_files(
        self, files: Iterable[SourceFile]
    ) -> Iterator[tuple[SourceFile, Optional[ClassificationResult]]]:
        """Classify many files, yielding ``(file, result)`` pairs in order.

        A file that fails to classify is logged and reported with a ``None``
        result; the rest of the batch carries on.
        """
        for file in files:
            try:
                result = self.classify_file(file)
            except Exception:
                logger.exception("Cannot classify \"%s\"", file.name)
                result = None
            yield file, result
