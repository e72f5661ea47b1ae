"""Tests for the per-format extractor variants."""

import io
import zipfile

import pytest

from tests.conftest import LONG_PARAGRAPH, OCR_PHRASE, SAMPLE_PHRASE, make_docx, make_pdf
from upload_extractor.config import ExtractorConfig
from upload_extractor.detector import Sentinels
from upload_extractor.exceptions import (
    EncryptedDocumentError,
    ExtractionError,
    InvalidDocumentError,
)
from upload_extractor.extractor import (
    DocxExtractor,
    ImageOcrExtractor,
    PdfExtractor,
    PlainTextExtractor,
)
from upload_extractor.models import ExtractionMethod
from upload_extractor.ocr import OCREngine


class TestPdfExtractor:
    """Text layer extraction, page limits and the OCR fallback."""

    def test_text_layer_contains_phrase(self, sample_pdf):
        outcome = PdfExtractor().extract(sample_pdf)

        assert SAMPLE_PHRASE in outcome.text
        assert outcome.method is ExtractionMethod.TEXT_LAYER
        assert not outcome.ocr_used
        assert outcome.pages_processed == 1
        assert outcome.total_pages == 1

    def test_pages_joined_with_newlines_in_order(self):
        pdf = make_pdf([f"First page. {LONG_PARAGRAPH}", f"Second page. {LONG_PARAGRAPH}"])

        text = PdfExtractor().extract(pdf).text

        first, second = text.split("\n")
        assert first.startswith("First page.")
        assert second.startswith("Second page.")

    def test_max_pages_bounds_pages_read(self):
        pdf = make_pdf(
            [
                f"Page one. {LONG_PARAGRAPH}",
                f"Page two. {LONG_PARAGRAPH}",
                f"Page three. {LONG_PARAGRAPH}",
            ]
        )

        outcome = PdfExtractor(ExtractorConfig(max_pages=2)).extract(pdf)

        assert "Page two." in outcome.text
        assert "Page three." not in outcome.text
        assert outcome.pages_processed == 2
        assert outcome.total_pages == 3

    def test_failing_page_is_skipped(self, monkeypatch):
        pdf = make_pdf(
            [
                f"Page one. {LONG_PARAGRAPH}",
                f"Page two. {LONG_PARAGRAPH}",
                f"Page three. {LONG_PARAGRAPH}",
            ]
        )
        original = PdfExtractor._page_text

        def flaky(page):
            if page.number == 1:
                raise RuntimeError("broken content stream")
            return original(page)

        monkeypatch.setattr(PdfExtractor, "_page_text", staticmethod(flaky))

        text = PdfExtractor().extract(pdf).text

        assert "Page one." in text
        assert "Page two." not in text
        assert "Page three." in text

    def test_sparse_text_layer_triggers_ocr(self, sparse_pdf, fake_tesseract):
        outcome = PdfExtractor().extract(sparse_pdf)

        assert len(fake_tesseract) == 1
        assert outcome.method is ExtractionMethod.OCR
        assert outcome.ocr_used
        assert outcome.ocr_attempted
        assert OCR_PHRASE in outcome.text

    def test_confident_text_layer_skips_ocr(self, sample_pdf, fake_tesseract):
        outcome = PdfExtractor().extract(sample_pdf)

        assert fake_tesseract == []
        assert not outcome.ocr_attempted

    def test_threshold_is_configurable(self, sample_pdf, fake_tesseract):
        config = ExtractorConfig(min_confidence_chars=10_000)

        outcome = PdfExtractor(config).extract(sample_pdf)

        assert len(fake_tesseract) == 1
        # OCR output replaces the text layer even when it is shorter
        assert outcome.method is ExtractionMethod.OCR
        assert outcome.ocr_attempted
        assert OCR_PHRASE in outcome.text
        assert SAMPLE_PHRASE + "." not in outcome.text

    def test_text_layer_at_threshold_skips_ocr(self, sample_pdf, fake_tesseract):
        layer = PdfExtractor(ExtractorConfig(min_confidence_chars=0)).extract(sample_pdf)
        config = ExtractorConfig(min_confidence_chars=len(layer.text))

        outcome = PdfExtractor(config).extract(sample_pdf)

        assert fake_tesseract == []
        assert outcome.method is ExtractionMethod.TEXT_LAYER
        assert not outcome.ocr_attempted
        assert outcome.text == layer.text

    def test_text_layer_one_below_threshold_triggers_ocr(self, sample_pdf, fake_tesseract):
        layer = PdfExtractor(ExtractorConfig(min_confidence_chars=0)).extract(sample_pdf)
        config = ExtractorConfig(min_confidence_chars=len(layer.text) + 1)

        outcome = PdfExtractor(config).extract(sample_pdf)

        assert len(fake_tesseract) == 1
        assert outcome.method is ExtractionMethod.OCR
        assert outcome.ocr_attempted

    def test_ocr_renders_only_bounded_pages(self, fake_tesseract):
        pdf = make_pdf(["", "", "", ""])

        PdfExtractor(ExtractorConfig(max_pages=2)).extract(pdf)

        assert len(fake_tesseract) == 2

    def test_ocr_unavailable_discards_sparse_text(self, sparse_pdf, missing_tesseract):
        outcome = PdfExtractor().extract(sparse_pdf)

        assert outcome.text == ""
        assert outcome.method is ExtractionMethod.OCR
        assert outcome.ocr_attempted
        assert not outcome.is_sentinel

    def test_blank_pdf_without_ocr_returns_empty(self, missing_tesseract):
        outcome = PdfExtractor().extract(make_pdf([""]))

        assert outcome.text == ""
        assert outcome.ocr_attempted
        assert not outcome.is_sentinel

    def test_missing_header(self):
        with pytest.raises(InvalidDocumentError) as exc_info:
            PdfExtractor().extract(b"this is not a pdf at all")

        assert exc_info.value.sentinel == Sentinels.INVALID_PDF

    def test_empty_buffer(self):
        with pytest.raises(InvalidDocumentError) as exc_info:
            PdfExtractor().extract(b"")

        assert exc_info.value.sentinel == Sentinels.EMPTY_FILE

    def test_password_protected(self):
        import fitz

        pdf = make_pdf(
            [SAMPLE_PHRASE],
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw="owner-secret",
            user_pw="user-secret",
        )

        with pytest.raises(EncryptedDocumentError) as exc_info:
            PdfExtractor().extract(pdf)

        assert exc_info.value.sentinel == Sentinels.PASSWORD_PROTECTED_PDF

    def test_read_metadata(self):
        import fitz

        doc = fitz.open()
        doc.new_page()
        doc.new_page()
        doc.set_metadata({"title": "Parenting Plan", "author": "Family Court"})
        pdf = doc.tobytes()
        doc.close()

        info = PdfExtractor().read_metadata(pdf)

        assert info.page_count == 2
        assert info.title == "Parenting Plan"
        assert info.author == "Family Court"
        assert info.encrypted is False

    def test_read_metadata_failure(self):
        assert PdfExtractor().read_metadata(b"garbage").page_count == 0


class TestDocxExtractor:
    def test_paragraphs_and_tables(self, sample_docx):
        outcome = DocxExtractor().extract(sample_docx)

        assert "MyCustodyCoach Test DOCX" in outcome.text
        assert "Monday | Mother" in outcome.text
        assert outcome.method is ExtractionMethod.DOCX

    def test_empty_document(self):
        outcome = DocxExtractor().extract(make_docx([]))

        assert outcome.text == Sentinels.NO_TEXT_DOCX
        assert outcome.is_sentinel

    def test_zip_that_is_not_docx(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("notes.txt", "hello")

        with pytest.raises(ExtractionError) as exc_info:
            DocxExtractor().extract(buffer.getvalue())

        assert exc_info.value.sentinel == Sentinels.FAILED_DOCX


class TestPlainTextExtractor:
    def test_utf8_trimmed(self):
        outcome = PlainTextExtractor().extract("  Pickup moved to 6pm ✓ \n".encode("utf-8"))

        assert outcome.text == "Pickup moved to 6pm ✓"
        assert outcome.method is ExtractionMethod.PLAIN_TEXT

    def test_byte_order_mark_removed(self):
        outcome = PlainTextExtractor().extract(b"\xef\xbb\xbfHello")

        assert outcome.text == "Hello"

    def test_latin1_fallback(self):
        outcome = PlainTextExtractor().extract(b"Caf\xe9 meeting")

        assert outcome.text == "Café meeting"

    def test_size_limit(self):
        config = ExtractorConfig(max_text_file_bytes=10)

        with pytest.raises(InvalidDocumentError) as exc_info:
            PlainTextExtractor(config).extract(b"x" * 11)

        assert exc_info.value.sentinel == Sentinels.TEXT_TOO_LARGE


class TestImageOcrExtractor:
    def test_ocr_on_image(self, sample_png, fake_tesseract):
        outcome = ImageOcrExtractor().extract(sample_png)

        assert OCR_PHRASE in outcome.text
        assert outcome.ocr_used
        assert outcome.ocr_attempted
        assert fake_tesseract[0][1] == "eng"

    def test_ocr_failure_returns_empty_and_releases_engine(
        self, sample_png, fake_tesseract, monkeypatch
    ):
        import pytesseract

        closed = []
        original_close = OCREngine.close

        def tracking_close(self):
            closed.append(self)
            original_close(self)

        def broken(*args, **kwargs):
            raise RuntimeError("Tesseract process timeout")

        monkeypatch.setattr(OCREngine, "close", tracking_close)
        monkeypatch.setattr(pytesseract, "image_to_string", broken)

        outcome = ImageOcrExtractor().extract(sample_png)

        assert outcome.text == ""
        assert len(closed) == 1
        assert not closed[0].is_open

    def test_undecodable_image(self, fake_tesseract):
        with pytest.raises(InvalidDocumentError) as exc_info:
            ImageOcrExtractor().extract(b"\x89PNG\r\n\x1a\n" + b"\x00" * 32)

        assert exc_info.value.sentinel == Sentinels.FAILED_IMAGE
        assert fake_tesseract == []
