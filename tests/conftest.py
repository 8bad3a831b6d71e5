"""Shared test fixtures for notable-classifier tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from notable_classifier.classifier import NaiveBayesModel, NaiveBayesTrainer
from notable_classifier.config import ClassifierConfig
from notable_classifier.models import SourceFile
from notable_classifier.tokenizer import SimpleTokenizer

NOTABLE_DOCS = [
    "Wire the ransom payment to the offshore account before the deadline.",
    "Delete the ledger and shred the invoices before the auditors arrive.",
    "The shipment of stolen credentials is ready; wire payment to the account.",
    "Use the burner phone and never mention the offshore account again.",
]

NONNOTABLE_DOCS = [
    "The quarterly newsletter covers the company picnic and volunteer day.",
    "Please remember to water the office plants over the holiday weekend.",
    "Lunch menu for Friday: soup, salad, and sandwiches in the break room.",
    "The team meeting moved to Thursday afternoon in conference room B.",
]


@pytest.fixture
def config(tmp_path: Path) -> ClassifierConfig:
    """Configuration rooted in a temporary user config directory."""
    return ClassifierConfig.for_root(tmp_path / "config")


@pytest.fixture
def tokenizer() -> SimpleTokenizer:
    return SimpleTokenizer()


@pytest.fixture
def corpus_texts() -> tuple[list[str], list[str]]:
    """Raw notable and non-notable training texts."""
    return NOTABLE_DOCS, NONNOTABLE_DOCS


@pytest.fixture
def labelled_corpus(tokenizer: SimpleTokenizer) -> list[tuple[list[str], str]]:
    """Tokenized training documents with labels."""
    return (
        [(tokenizer.tokenize(doc), "notable") for doc in NOTABLE_DOCS]
        + [(tokenizer.tokenize(doc), "nonnotable") for doc in NONNOTABLE_DOCS]
    )


@pytest.fixture
def trained_model(labelled_corpus) -> NaiveBayesModel:
    """Model trained on the synthetic corpus."""
    return NaiveBayesTrainer().train(labelled_corpus)


@pytest.fixture
def text_file(tmp_path: Path) -> SourceFile:
    """A plain-text file containing "hello world hello"."""
    path = tmp_path / "greeting.txt"
    path.write_text("hello world hello", encoding="utf-8")
    return SourceFile(path, mime_type="text/plain")


@pytest.fixture
def html_file(tmp_path: Path) -> SourceFile:
    path = tmp_path / "page.html"
    path.write_text(
        "<!DOCTYPE html><html><head><title>Ignored</title>"
        "<style>body { color: red; }</style></head>"
        "<body><p>Wire the payment</p><script>var x = 1;</script>"
        "<p>Offshore &amp; hidden</p></body></html>",
        encoding="utf-8",
    )
    return SourceFile(path, mime_type="text/html")


@pytest.fixture
def docx_file(tmp_path: Path) -> SourceFile:
    """A small DOCX document with one paragraph and one table."""
    from docx import Document

    doc = Document()
    doc.add_paragraph("Shred the invoices tonight.")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "account"
    table.rows[0].cells[1].text = "offshore"
    path = tmp_path / "memo.docx"
    doc.save(str(path))
    return SourceFile(path)


@pytest.fixture
def binary_file(tmp_path: Path) -> SourceFile:
    """Binary content with embedded printable strings."""
    path = tmp_path / "blob.bin"
    path.write_bytes(b"\x00\x01\x02secret ledger\x00\xff\xfeab\x00offshore account\x03")
    return SourceFile(path, mime_type="application/octet-stream")


@pytest.fixture
def xlsx_file(tmp_path: Path) -> SourceFile:
    """A workbook with two rows on its only sheet."""
    from openpyxl import Workbook

    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["account", "offshore"])
    sheet.append(["total", 42])
    path = tmp_path / "ledger.xlsx"
    workbook.save(str(path))
    return SourceFile(path)


@pytest.fixture
def pptx_file(tmp_path: Path) -> SourceFile:
    """A one-slide deck with a title, a text box, a table and speaker notes."""
    from pptx import Presentation
    from pptx.util import Inches

    presentation = Presentation()
    slide = presentation.slides.add_slide(presentation.slide_layouts[5])
    slide.shapes.title.text = "Burner phones"
    box = slide.shapes.add_textbox(Inches(1), Inches(2), Inches(4), Inches(1))
    box.text_frame.text = "Wire the payment"
    table = slide.shapes.add_table(1, 2, Inches(1), Inches(4), Inches(4), Inches(1)).table
    table.cell(0, 0).text = "account"
    table.cell(0, 1).text = "offshore"
    slide.notes_slide.notes_text_frame.text = "Never mention the ledger"
    path = tmp_path / "deck.pptx"
    presentation.save(str(path))
    return SourceFile(path)


@pytest.fixture
def odt_file(tmp_path: Path) -> SourceFile:
    """An OpenDocument text with a heading and a paragraph."""
    from odf.opendocument import OpenDocumentText
    from odf.text import H, P

    doc = OpenDocumentText()
    doc.text.addElement(H(outlinelevel=1, text="Ledger"))
    doc.text.addElement(P(text="Shred the invoices tonight."))
    path = tmp_path / "memo.odt"
    doc.save(str(path))
    return SourceFile(path)


@pytest.fixture
def eml_file(tmp_path: Path) -> SourceFile:
    """A multipart message with a plain-text body and a text attachment."""
    path = tmp_path / "message.eml"
    path.write_bytes(
        b"From: Alice <alice@example.com>\r\n"
        b"To: bob@example.com\r\n"
        b"Subject: =?utf-8?q?Offshore_account?=\r\n"
        b"MIME-Version: 1.0\r\n"
        b"Content-Type: multipart/mixed; boundary=\"XYZ\"\r\n"
        b"\r\n"
        b"--XYZ\r\n"
        b"Content-Type: text/plain; charset=utf-8\r\n"
        b"\r\n"
        b"Wire the payment tonight.\r\n"
        b"--XYZ\r\n"
        b"Content-Type: text/plain\r\n"
        b"Content-Disposition: attachment; filename=\"notes.txt\"\r\n"
        b"\r\n"
        b"attached secret\r\n"
        b"--XYZ--\r\n"
    )
    return SourceFile(path, mime_type="message/rfc822")
