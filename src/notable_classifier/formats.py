"""File type detection and the supported-format gate.

The gate admits only document-like files to text classification. The
effective MIME type comes from ``FileTypeDetector`` (libmagic first, file
extension second) and falls back to whatever type the ingest pipeline
already attached to the file.
"""

from __future__ import annotations

import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import ClassifierConfig
from .exceptions import FileTypeDetectorInitError, InitializationError
from .models import SourceFile

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Supported formats
# ---------------------------------------------------------------------------

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
ODT_MIME = "application/vnd.oasis.opendocument.text"
ODS_MIME = "application/vnd.oasis.opendocument.spreadsheet"
ODP_MIME = "application/vnd.oasis.opendocument.presentation"

SUPPORTED_FORMATS: frozenset[str] = frozenset({
    "text/plain",
    "text/html",
    "text/rtf",
    "text/csv",
    "text/xml",
    "application/xhtml+xml",
    "application/xml",
    "application/pdf",
    "application/rtf",
    "application/msword",
    DOCX_MIME,
    "application/vnd.ms-excel",
    XLSX_MIME,
    "application/vnd.ms-powerpoint",
    PPTX_MIME,
    ODT_MIME,
    ODS_MIME,
    ODP_MIME,
    "message/rfc822",
})


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Lower-case a MIME type and drop any parameters.

    ``"Text/HTML; charset=UTF-8"`` becomes ``"text/html"``. ``None`` becomes
    the empty string.
    """
    if not mime_type:
        return ""
    return mime_type.split(";", 1)[0].strip().lower()


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    """Whether a MIME type is in the supported document set."""
    normalized = normalize_mime_type(mime_type)
    return bool(normalized) and normalized in SUPPORTED_FORMATS


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

_HEAD_BYTES = 8192

# libmagic answers that carry no document type of their own.
_GENERIC_TYPES = frozenset({
    "application/octet-stream",
    "application/x-empty",
    "inode/x-empty",
})

# Compound (OLE2) documents libmagic cannot always tell apart; the extension
# decides.
_OLE2_TYPES = frozenset({
    "application/x-ole-storage",
    "application/cdfv2",
    "application/cdfv2-corrupt",
    "application/vnd.ms-office",
})

_OLE2_BY_EXTENSION = {
    "doc": "application/msword",
    "dot": "application/msword",
    "xls": "application/vnd.ms-excel",
    "xlt": "application/vnd.ms-excel",
    "ppt": "application/vnd.ms-powerpoint",
    "pps": "application/vnd.ms-powerpoint",
    "msg": "application/vnd.ms-outlook",
}

# Office Open XML and OpenDocument files are zip archives underneath; older
# libmagic databases report them as plain zip.
_ZIP_BY_EXTENSION = {
    "docx": DOCX_MIME,
    "xlsx": XLSX_MIME,
    "pptx": PPTX_MIME,
    "odt": ODT_MIME,
    "ods": ODS_MIME,
    "odp": ODP_MIME,
}


@dataclass(frozen=True)
class Signature:
    """A user-defined magic-byte signature."""

    mime_type: str
    signature: bytes
    offset: int = 0

    def matches(self, head: bytes) -> bool:
        end = self.offset + len(self.signature)
        return len(head) >= end and head[self.offset:end] == self.signature


class FileTypeDetector:
    """Identify a file's MIME type from its content with libmagic.

    Detection order: user-defined signatures, libmagic, then the file
    extension when libmagic only reports a generic type. Instances are
    read-only after construction and can be shared between threads.

    Args:
        custom_signatures: Optional JSON file listing user-defined
            signatures as ``{"mime_type", "signature" (hex), "offset"}``
            objects.
        mime_magic: Pre-built ``magic.Magic(mime=True)`` instance (optional).

    Raises:
        FileTypeDetectorInitError: If libmagic cannot be loaded, or the
            custom signature file cannot be read or parsed.
    """

    def __init__(self, custom_signatures: Optional[Path] = None, mime_magic=None) -> None:
        self._magic = mime_magic if mime_magic is not None else self._load_magic()
        self._custom: tuple[Signature, ...] = ()
        if custom_signatures is not None:
            self._custom = self._load_signatures(Path(custom_signatures))

    @property
    def custom_signatures(self) -> tuple[Signature, ...]:
        return self._custom

    @staticmethod
    def _load_magic():
        try:
            import magic
        except ImportError as exc:
            raise FileTypeDetectorInitError(f"Cannot load libmagic: {exc}") from exc
        try:
            return magic.Magic(mime=True)
        except magic.MagicException as exc:
            raise FileTypeDetectorInitError(f"Cannot open the libmagic database: {exc}") from exc

    @staticmethod
    def _load_signatures(path: Path) -> tuple[Signature, ...]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise FileTypeDetectorInitError(
                f"Cannot read user-defined file types from {path}: {exc}"
            ) from exc

        if not isinstance(raw, list):
            raise FileTypeDetectorInitError(
                f"User-defined file types in {path} must be a JSON list"
            )

        signatures = []
        for i, entry in enumerate(raw):
            try:
                signatures.append(Signature(
                    mime_type=normalize_mime_type(entry["mime_type"]),
                    signature=bytes.fromhex(entry["signature"]),
                    offset=int(entry.get("offset", 0)),
                ))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                raise FileTypeDetectorInitError(
                    f"Invalid file type entry #{i} in {path}: {exc}"
                ) from exc
        return tuple(signatures)

    def get_mime_type(self, file: SourceFile) -> Optional[str]:
        """Detect the MIME type of a file.

        Never raises: a file that cannot be read or inspected is reported as
        unknown.

        Returns:
            The detected MIME type, or ``None`` if nothing matched.
        """
        try:
            head = file.read_bytes(_HEAD_BYTES)
            custom = self._match_custom(head)
            if custom:
                return custom
            return self._refine(self._magic.from_file(str(file.path)), file.path)
        except Exception as exc:
            logger.warning("Cannot detect the type of \"%s\": %s", file.name, exc)
            return None

    def detect(self, head: bytes, path: Optional[Path] = None) -> Optional[str]:
        """Detect a MIME type from the leading bytes of a file.

        ``path`` is only used for its extension.
        """
        custom = self._match_custom(head)
        if custom:
            return custom
        if not head:
            return self._refine(None, path)
        return self._refine(self._magic.from_buffer(head), path)

    def _match_custom(self, head: bytes) -> Optional[str]:
        for signature in self._custom:
            if signature.matches(head):
                return signature.mime_type
        return None

    @staticmethod
    def _refine(detected: Optional[str], path: Optional[Path]) -> Optional[str]:
        mime_type = normalize_mime_type(detected)
        extension = path.suffix[1:].lower() if path is not None else ""

        if mime_type in _OLE2_TYPES:
            return _OLE2_BY_EXTENSION.get(extension, mime_type)
        if mime_type == "application/zip":
            return _ZIP_BY_EXTENSION.get(extension, mime_type)

        if mime_type and mime_type not in _GENERIC_TYPES:
            return mime_type

        if path is not None:
            guessed, _ = mimetypes.guess_type(path.name, strict=False)
            if guessed:
                return guessed
        return None


def detect_or_none(detector: Optional[FileTypeDetector], file: SourceFile) -> Optional[str]:
    """Ask a detector for a file's type, treating any failure as unknown."""
    if detector is None:
        return None
    try:
        return detector.get_mime_type(file)
    except Exception as exc:
        logger.warning("File type detection failed for \"%s\": %s", file.name, exc)
        return None


# ---------------------------------------------------------------------------
# Format gate
# ---------------------------------------------------------------------------


class FormatGate:
    """Decide whether a file is eligible for text classification.

    Args:
        config: Classifier configuration (for custom file type signatures).
        detector: File type detector to use. One is built from ``config``
            when omitted.

    Raises:
        InitializationError: If the file type detector cannot be built.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        detector: Optional[FileTypeDetector] = None,
    ) -> None:
        self._config = config or ClassifierConfig.from_env()
        if detector is None:
            try:
                detector = FileTypeDetector(self._config.custom_file_types)
            except FileTypeDetectorInitError as exc:
                raise InitializationError("Exception while constructing FileTypeDetector.") from exc
        self._detector = detector

    @property
    def detector(self) -> FileTypeDetector:
        return self._detector

    def effective_mime_type(self, file: SourceFile) -> str:
        """Detected MIME type, else the file's own type, normalized."""
        return normalize_mime_type(detect_or_none(self._detector, file) or file.mime_type)

    def is_supported(self, file: SourceFile) -> bool:
        """Whether the file's MIME type is a supported document type."""
        return is_supported_mime_type(self.effective_mime_type(file))
