"""Shared fixtures: sample documents are generated in memory."""

import io
from typing import Callable, List, Optional

import fitz  # PyMuPDF
import pytesseract
import pytest
from docx import Document
from PIL import Image, ImageDraw

SAMPLE_PHRASE = "MyCustodyCoach Test PDF"
OCR_PHRASE = "MyCustodyCoach OCR Output"

LONG_PARAGRAPH = (
    "The parenting plan provides that the children reside with each parent on "
    "alternating weeks, with exchanges taking place at school on Friday afternoons. "
    "Holidays alternate between parents in even and odd years."
)


def make_pdf(pages: List[str], **save_kwargs) -> bytes:
    """Build a PDF whose pages carry the given text (empty string = blank page)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_textbox(fitz.Rect(72, 72, 540, 770), text, fontsize=11)
    data = doc.tobytes(**save_kwargs)
    doc.close()
    return data


def make_docx(paragraphs: List[str], table: Optional[List[List[str]]] = None) -> bytes:
    doc = Document()
    for text in paragraphs:
        doc.add_paragraph(text)
    if table:
        docx_table = doc.add_table(rows=len(table), cols=len(table[0]))
        for row_index, row in enumerate(table):
            for col_index, value in enumerate(row):
                docx_table.cell(row_index, col_index).text = value
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def make_image(image_format: str = "PNG", text: str = "Exchange at 5pm") -> bytes:
    image = Image.new("RGB", (320, 80), "white")
    ImageDraw.Draw(image).text((10, 30), text, fill="black")
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def sample_pdf() -> bytes:
    return make_pdf([f"{SAMPLE_PHRASE}. {LONG_PARAGRAPH}"])


@pytest.fixture
def sparse_pdf() -> bytes:
    return make_pdf(["Hi"])


@pytest.fixture
def sample_docx() -> bytes:
    return make_docx(
        ["MyCustodyCoach Test DOCX", LONG_PARAGRAPH],
        table=[["Day", "Parent"], ["Monday", "Mother"]],
    )


@pytest.fixture
def sample_png() -> bytes:
    return make_image("PNG")


@pytest.fixture
def fake_tesseract(monkeypatch) -> List[tuple]:
    """Replace the tesseract binary; returns the list of OCR calls made."""
    calls: List[tuple] = []

    def image_to_string(image, lang=None, config="", timeout=0):
        calls.append((image.size, lang, config))
        return f"  {OCR_PHRASE}: the children are picked up every other Friday at 5pm "

    monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")
    monkeypatch.setattr(pytesseract, "image_to_string", image_to_string)
    return calls


@pytest.fixture
def missing_tesseract(monkeypatch) -> Callable:
    """Make every OCR engine fail to open."""

    def get_tesseract_version():
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(pytesseract, "get_tesseract_version", get_tesseract_version)
    return get_tesseract_version
