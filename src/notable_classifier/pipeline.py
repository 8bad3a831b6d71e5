"""Token pipeline: file in, token list out.

Extraction is tried as an ordered list of strategies. The first strategy
asks the registry for a format-specific extractor; the second falls back to
printable strings, so every file produces some signal. A strategy that has
no extractor for the file's type passes to the next one.

Nothing in this module raises for a bad file. Reader initialization and
read failures are logged and produce an empty token list, so one corrupt
file cannot stop a batch.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, TextIO

from .config import ClassifierConfig
from .exceptions import InitReaderError, NoTextExtractorFound
from .formats import FileTypeDetector, detect_or_none
from .models import SourceFile
from .parsers import ExtractorRegistry
from .tokenizer import DEFAULT_TOKENIZER, Tokenizer

logger = logging.getLogger(__name__)

ExtractionStrategy = Callable[[SourceFile, Optional[str]], TextIO]


class TokenPipeline:
    """Extracts and tokenizes file content.

    Example::

        pipeline = TokenPipeline(config)
        tokens = pipeline.extract_tokens(SourceFile(Path("memo.txt")))

    Args:
        config: Classifier configuration (provides the size cap).
        registry: Extractor registry. Built from ``config`` when omitted.
        tokenizer: Tokenizer shared with training. Defaults to
            ``SimpleTokenizer``.
        detector: Optional file type detector. Its answer takes precedence
            over the type declared on the file, as in ``FormatGate``.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        registry: Optional[ExtractorRegistry] = None,
        tokenizer: Optional[Tokenizer] = None,
        detector: Optional[FileTypeDetector] = None,
    ) -> None:
        self._config = config or ClassifierConfig.from_env()
        self._registry = registry or ExtractorRegistry(max_file_size=self._config.max_file_size)
        self._tokenizer = tokenizer or DEFAULT_TOKENIZER
        self._detector = detector
        self._strategies: list[ExtractionStrategy] = [
            self._format_specific_reader,
            self._strings_reader,
        ]

    @property
    def tokenizer(self) -> Tokenizer:
        return self._tokenizer

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract_tokens(self, file: SourceFile, mime_type: Optional[str] = None) -> list[str]:
        """Divide a file into tokens.

        Args:
            file: The file to read.
            mime_type: Effective MIME type when the caller already knows it.

        Returns:
            All tokens in the file, in order. Empty if the file cannot be
            read.
        """
        text = self.extract_text(file, mime_type)
        if text is None:
            return []
        return self.tokenize(text, file)

    def extract_text(self, file: SourceFile, mime_type: Optional[str] = None) -> Optional[str]:
        """Read the file's full text, or ``None`` on a per-file failure."""
        if mime_type is None:
            mime_type = self._mime_type(file)
        try:
            reader = self._open_reader(file, mime_type)
        except InitReaderError as exc:
            logger.warning(
                "Cannot initialize reader for file \"%s\" of type %s: %s",
                file.name, mime_type, exc,
            )
            return None

        try:
            with reader:
                return reader.read()
        except (OSError, UnicodeError, ValueError) as exc:
            logger.warning("Cannot extract tokens from file \"%s\": %s", file.name, exc)
            return None

    def tokenize(self, text: str, file: Optional[SourceFile] = None) -> list[str]:
        """Tokenize text with the shared tokenizer, logging failures."""
        try:
            return self._tokenizer.tokenize(text)
        except (UnicodeError, ValueError) as exc:
            name = file.name if file is not None else "<text>"
            logger.warning("Cannot tokenize \"%s\": %s", name, exc)
            return []

    # ------------------------------------------------------------------
    # Extraction strategies
    # ------------------------------------------------------------------

    def _open_reader(self, file: SourceFile, mime_type: Optional[str]) -> TextIO:
        for strategy in self._strategies:
            try:
                return strategy(file, mime_type)
            except NoTextExtractorFound:
                continue
        raise InitReaderError(f"No extraction strategy could read \"{file.name}\"")

    def _format_specific_reader(self, file: SourceFile, mime_type: Optional[str]) -> TextIO:
        return self._registry.get_extractor(file, mime_type).get_reader()

    def _strings_reader(self, file: SourceFile, mime_type: Optional[str]) -> TextIO:
        logger.info("Using StringsExtractor for file \"%s\" of type %s", file.name, mime_type)
        return self._registry.get_strings_extractor(file).get_reader()

    def _mime_type(self, file: SourceFile) -> Optional[str]:
        return detect_or_none(self._detector, file) or file.mime_type
