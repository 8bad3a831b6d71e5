"""Text extractors for the file formats the classifier reads.

Each extractor turns a ``SourceFile`` into a readable text stream. The
``ExtractorRegistry`` picks a format-specific extractor by MIME type and
offers a printable-strings extractor that works on any file. The registry
also enforces the maximum file size: files over the cap are refused with
``InitReaderError`` before any content is read.
"""

from __future__ import annotations

import email
import io
import re
from abc import ABC, abstractmethod
from email.header import decode_header
from typing import Optional, TextIO

from .config import MAX_FILE_SIZE
from .exceptions import InitReaderError, NoTextExtractorFound
from .formats import (
    DOCX_MIME,
    ODP_MIME,
    ODS_MIME,
    ODT_MIME,
    PPTX_MIME,
    XLSX_MIME,
    normalize_mime_type,
)
from .models import SourceFile


class TextExtractor(ABC):
    """Abstract base class for text extractors.

    Subclasses implement ``extract_text``; callers use ``get_reader``, which
    wraps the result in a text stream and converts failures into
    ``InitReaderError``.
    """

    supported_mime_types: tuple[str, ...] = ()

    def __init__(self, file: SourceFile) -> None:
        self.file = file

    @classmethod
    def can_handle(cls, mime_type: str) -> bool:
        """Check if this extractor handles the given (normalized) MIME type."""
        return mime_type in cls.supported_mime_types

    @abstractmethod
    def extract_text(self) -> str:
        """Extract the document text.

        Raises:
            Exception: Any library-specific error for unreadable content.
        """
        ...

    def get_reader(self) -> TextIO:
        """Return a text stream over the extracted content.

        Raises:
            InitReaderError: If the file cannot be opened or parsed.
        """
        try:
            text = self.extract_text()
        except InitReaderError:
            raise
        except Exception as exc:
            raise InitReaderError(
                f"{self.__class__.__name__} cannot read \"{self.file.name}\": {exc}"
            ) from exc
        return io.StringIO(text)


class PlainTextExtractor(TextExtractor):
    """Reads text files, trying UTF-8 before single-byte encodings."""

    supported_mime_types = ("text/plain", "text/csv", "text/xml", "application/xml")

    _ENCODINGS = ("utf-8-sig", "cp1252")

    def extract_text(self) -> str:
        raw = self.file.read_bytes()
        for encoding in self._ENCODINGS:
            try:
                return raw.decode(encoding)
            except UnicodeDecodeError:
                continue
        return raw.decode("latin-1")


class HTMLExtractor(TextExtractor):
    """Strips tags from HTML documents using the stdlib ``html.parser``."""

    supported_mime_types = ("text/html", "application/xhtml+xml")

    def extract_text(self) -> str:
        raw = self.file.read_bytes().decode("utf-8", errors="replace")
        return self._strip_html(raw)

    @staticmethod
    def _strip_html(html: str) -> str:
        """Remove HTML tags and decode entities to produce plain text."""
        import html as html_module
        from html.parser import HTMLParser as StdHTMLParser

        class _TextCollector(StdHTMLParser):
            def __init__(self) -> None:
                super().__init__()
                self.parts: list[str] = []
                self._skip = 0

            def handle_starttag(self, tag: str, attrs: list) -> None:
                if tag in ("script", "style", "head"):
                    self._skip += 1

            def handle_endtag(self, tag: str) -> None:
                if tag in ("script", "style", "head"):
                    self._skip = max(0, self._skip - 1)
                if tag in ("p", "div", "br", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "td"):
                    self.parts.append("\n")

            def handle_data(self, data: str) -> None:
                if not self._skip:
                    self.parts.append(data)

        collector = _TextCollector()
        collector.feed(html)
        collector.close()
        text = html_module.unescape("".join(collector.parts))
        return re.sub(r"\n{3,}", "\n\n", text)


class PDFExtractor(TextExtractor):
    """Extracts page text from PDF files with pdfplumber."""

    supported_mime_types = ("application/pdf",)

    def extract_text(self) -> str:
        try:
            import pdfplumber
        except ImportError as exc:
            raise ImportError(
                "pdfplumber is required for PDF extraction. Install it with: pip install pdfplumber"
            ) from exc

        parts = []
        with pdfplumber.open(str(self.file.path)) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    parts.append(page_text)
        return "\n\n".join(parts)


class DOCXExtractor(TextExtractor):
    """Extracts paragraphs and table cells from DOCX files with python-docx."""

    supported_mime_types = (DOCX_MIME,)

    def extract_text(self) -> str:
        try:
            from docx import Document
        except ImportError as exc:
            raise ImportError(
                "python-docx is required for DOCX extraction. Install it with: pip install python-docx"
            ) from exc

        doc = Document(str(self.file.path))
        parts = [p.text for p in doc.paragraphs if p.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                row_text = " | ".join(cell.text.strip() for cell in row.cells if cell.text.strip())
                if row_text:
                    parts.append(row_text)

        return "\n\n".join(parts)


class XLSXExtractor(TextExtractor):
    """Extracts cell values from XLSX workbooks with openpyxl, one row per line."""

    supported_mime_types = (XLSX_MIME,)

    def extract_text(self) -> str:
        try:
            from openpyxl import load_workbook
        except ImportError as exc:
            raise ImportError(
                "openpyxl is required for XLSX extraction. Install it with: pip install openpyxl"
            ) from exc

        workbook = load_workbook(str(self.file.path), read_only=True, data_only=True)
        parts = []
        try:
            for sheet in workbook.worksheets:
                for row in sheet.iter_rows(values_only=True):
                    cells = [str(value).strip() for value in row if value is not None]
                    row_text = " | ".join(cell for cell in cells if cell)
                    if row_text:
                        parts.append(row_text)
        finally:
            workbook.close()
        return "\n".join(parts)


class PPTXExtractor(TextExtractor):
    """Extracts slide text, tables and speaker notes with python-pptx."""

    supported_mime_types = (PPTX_MIME,)

    def extract_text(self) -> str:
        try:
            from pptx import Presentation
        except ImportError as exc:
            raise ImportError(
                "python-pptx is required for PPTX extraction. Install it with: pip install python-pptx"
            ) from exc

        presentation = Presentation(str(self.file.path))
        parts: list[str] = []
        for slide in presentation.slides:
            self._collect_shapes(slide.shapes, parts)
            if slide.has_notes_slide:
                notes = slide.notes_slide.notes_text_frame
                if notes is not None and notes.text.strip():
                    parts.append(notes.text)
        return "\n\n".join(parts)

    @classmethod
    def _collect_shapes(cls, shapes, parts: list[str]) -> None:
        from pptx.shapes.group import GroupShape

        for shape in shapes:
            if isinstance(shape, GroupShape):
                cls._collect_shapes(shape.shapes, parts)
            elif shape.has_text_frame:
                if shape.text_frame.text.strip():
                    parts.append(shape.text_frame.text)
            elif shape.has_table:
                for row in shape.table.rows:
                    row_text = " | ".join(
                        cell.text.strip() for cell in row.cells if cell.text.strip()
                    )
                    if row_text:
                        parts.append(row_text)


class ODFExtractor(TextExtractor):
    """Extracts headings and paragraphs from OpenDocument files with odfpy.

    Text, spreadsheet and presentation documents all keep their visible text
    in ``text:h`` and ``text:p`` elements, so one extractor covers all three.
    """

    supported_mime_types = (ODT_MIME, ODS_MIME, ODP_MIME)

    def extract_text(self) -> str:
        try:
            from odf import opendocument, teletype
            from odf import text as odf_text
        except ImportError as exc:
            raise ImportError(
                "odfpy is required for OpenDocument extraction. Install it with: pip install odfpy"
            ) from exc

        doc = opendocument.load(str(self.file.path))
        parts = []
        for element_type in (odf_text.H, odf_text.P):
            for element in doc.getElementsByType(element_type):
                element_text = teletype.extractText(element)
                if element_text.strip():
                    parts.append(element_text)
        return "\n\n".join(parts)


class EmailExtractor(TextExtractor):
    """Extracts headers and body text from RFC 822 messages.

    The plain-text parts are preferred; HTML parts are only used, stripped of
    markup, when a message has no plain-text body. Attachments are skipped.
    """

    supported_mime_types = ("message/rfc822",)

    HEADERS = ("Subject", "From", "To", "Cc")

    def extract_text(self) -> str:
        msg = email.message_from_bytes(self.file.read_bytes())
        parts = []
        for name in self.HEADERS:
            value = self._decode_header_value(msg.get(name))
            if value:
                parts.append(value)

        text_bodies, html_bodies = [], []
        for part in msg.walk():
            if part.is_multipart():
                continue
            if "attachment" in str(part.get("Content-Disposition", "")):
                continue
            content_type = part.get_content_type()
            if content_type == "text/plain":
                text_bodies.append(self._decode_payload(part))
            elif content_type == "text/html":
                html_bodies.append(self._decode_payload(part))

        if text_bodies:
            parts.extend(text_bodies)
        else:
            parts.extend(HTMLExtractor._strip_html(body) for body in html_bodies)
        return "\n\n".join(part for part in parts if part.strip())

    @staticmethod
    def _decode_header_value(value) -> str:
        if not value:
            return ""
        decoded = []
        for chunk, charset in decode_header(str(value)):
            if isinstance(chunk, bytes):
                try:
                    decoded.append(chunk.decode(charset or "utf-8", errors="replace"))
                except LookupError:
                    decoded.append(chunk.decode("utf-8", errors="replace"))
            else:
                decoded.append(chunk)
        return " ".join(decoded)

    @staticmethod
    def _decode_payload(part) -> str:
        payload = part.get_payload(decode=True) or b""
        charset = part.get_content_charset() or "utf-8"
        try:
            return payload.decode(charset, errors="replace")
        except LookupError:
            return payload.decode("utf-8", errors="replace")


class StringsExtractor(TextExtractor):
    """Pulls runs of printable ASCII out of arbitrary binary content.

    The fallback for every file type without a dedicated extractor, in the
    spirit of the Unix ``strings`` utility.
    """

    MIN_RUN_LENGTH = 4

    _RUN_RE = re.compile(rb"[\x20-\x7E\t]{%d,}" % MIN_RUN_LENGTH)

    def extract_text(self) -> str:
        raw = self.file.read_bytes()
        return "\n".join(m.group().decode("ascii") for m in self._RUN_RE.finditer(raw))


DEFAULT_EXTRACTORS: tuple[type[TextExtractor], ...] = (
    PlainTextExtractor,
    HTMLExtractor,
    PDFExtractor,
    DOCXExtractor,
    XLSXExtractor,
    PPTXExtractor,
    ODFExtractor,
    EmailExtractor,
)


class ExtractorRegistry:
    """Looks up the text extractor for a file.

    Args:
        extractors: Format-specific extractor classes, checked in order.
        max_file_size: Files larger than this many bytes are refused.
    """

    def __init__(
        self,
        extractors: Optional[tuple[type[TextExtractor], ...]] = None,
        max_file_size: int = MAX_FILE_SIZE,
    ) -> None:
        self._extractors = extractors if extractors is not None else DEFAULT_EXTRACTORS
        self.max_file_size = max_file_size

    @property
    def supported_mime_types(self) -> list[str]:
        types: set[str] = set()
        for extractor in self._extractors:
            types.update(extractor.supported_mime_types)
        return sorted(types)

    def get_extractor(self, file: SourceFile, mime_type: Optional[str] = None) -> TextExtractor:
        """Return the format-specific extractor for a file.

        Args:
            file: The file to read.
            mime_type: Effective MIME type; defaults to ``file.mime_type``.

        Raises:
            NoTextExtractorFound: If no extractor handles the MIME type.
            InitReaderError: If the file is missing or over the size cap.
        """
        normalized = normalize_mime_type(mime_type or file.mime_type)
        for extractor_cls in self._extractors:
            if extractor_cls.can_handle(normalized):
                self._check_size(file)
                return extractor_cls(file)
        raise NoTextExtractorFound(
            f"No text extractor for \"{file.name}\" of type {normalized or 'unknown'}"
        )

    def get_strings_extractor(self, file: SourceFile) -> TextExtractor:
        """Return the printable-strings extractor for any file.

        Raises:
            InitReaderError: If the file is missing or over the size cap.
        """
        self._check_size(file)
        return StringsExtractor(file)

    def _check_size(self, file: SourceFile) -> None:
        try:
            size = file.size
        except OSError as exc:
            raise InitReaderError(f"Cannot stat \"{file.name}\": {exc}") from exc
        if size > self.max_file_size:
            raise InitReaderError(
                f"\"{file.name}\" is {size} bytes, over the {self.max_file_size} byte limit"
            )
