"""Per-format text extractors.

Each variant turns the raw bytes of one upload into text. PDFs read the
embedded text layer page by page and fall back to OCR of rendered pages when
the text layer is too thin; DOCX and plain text have no fallback; images go
straight to OCR.
"""

import io
from abc import ABC, abstractmethod
from typing import Optional

import fitz  # PyMuPDF
from docx import Document
from PIL import Image

from upload_extractor.config import ExtractorConfig
from upload_extractor.detector import PDF_SIGNATURE, Sentinels
from upload_extractor.exceptions import (
    EncryptedDocumentError,
    ExtractionError,
    InvalidDocumentError,
)
from upload_extractor.logger import Timer, get_logger
from upload_extractor.models import (
    ExtractionMethod,
    ExtractionOutcome,
    PageText,
    PdfMetadata,
)
from upload_extractor.ocr import ocr_engine

logger = get_logger(__name__)


class BaseExtractor(ABC):
    """Common interface of the extractor variants."""

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()

    @abstractmethod
    def extract(self, file_bytes: bytes) -> ExtractionOutcome:
        """Extract text from raw file bytes.

        Raises:
            DocumentParserError: Structural problems, mapped to a sentinel by
                the caller
        """


class PdfExtractor(BaseExtractor):
    """Text layer extraction with OCR fallback for scanned PDFs."""

    def extract(self, file_bytes: bytes) -> ExtractionOutcome:
        if not file_bytes:
            raise InvalidDocumentError("PDF buffer is empty", Sentinels.EMPTY_FILE)
        if not file_bytes.startswith(PDF_SIGNATURE):
            raise InvalidDocumentError("Missing PDF header", Sentinels.INVALID_PDF)

        with self._open(file_bytes) as doc:
            if doc.needs_pass:
                logger.warning(
                    "PDF is password protected",
                    extra_data={"file_size_bytes": len(file_bytes)},
                )
                raise EncryptedDocumentError("PDF requires a password")

            total_pages = doc.page_count
            page_limit = min(total_pages, self.config.max_pages)

            with Timer("pdf_text_layer") as native_timer:
                pages = self.extract_pages(doc, page_limit)
            text = "\n".join(page.text for page in pages).strip()

            logger.debug(
                "PDF text layer extraction completed",
                extra_data={
                    "characters_extracted": len(text),
                    "pages_with_text": len(pages),
                    "pages_processed": page_limit,
                    "total_pages": total_pages,
                    "extraction_time_ms": native_timer.get_elapsed_ms(),
                },
            )

            outcome = ExtractionOutcome(
                text=text,
                method=ExtractionMethod.TEXT_LAYER,
                pages_processed=page_limit,
                total_pages=total_pages,
            )
            if not self._should_ocr(text):
                return outcome

            logger.info(
                "Triggering OCR fallback for PDF",
                extra_data={
                    "native_characters": len(text),
                    "min_confidence_chars": self.config.min_confidence_chars,
                    "page_count": page_limit,
                },
            )

            with Timer("pdf_ocr") as ocr_timer:
                ocr_text = self.ocr_pages(doc, page_limit)

            logger.info(
                "PDF OCR fallback completed",
                extra_data={
                    "characters_extracted": len(ocr_text),
                    "ocr_time_ms": ocr_timer.get_elapsed_ms(),
                },
            )

            # The sparse text layer is discarded even when OCR finds nothing
            outcome.text = ocr_text
            outcome.method = ExtractionMethod.OCR
            outcome.ocr_attempted = True
            return outcome

    def _should_ocr(self, text: str) -> bool:
        return len(text) < self.config.min_confidence_chars

    @staticmethod
    def _open(file_bytes: bytes) -> fitz.Document:
        try:
            return fitz.open(stream=file_bytes, filetype="pdf")
        except Exception as exc:
            logger.warning(
                "PDF could not be opened",
                extra_data={
                    "file_size_bytes": len(file_bytes),
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            raise InvalidDocumentError(
                f"Corrupted PDF: {exc}", Sentinels.CORRUPTED_PDF
            ) from exc

    def extract_pages(self, doc: fitz.Document, page_limit: int) -> list[PageText]:
        """Read the text layer of the first ``page_limit`` pages, in order.

        A page that fails is logged and contributes nothing.
        """
        pages = []
        for index in range(page_limit):
            try:
                page_text = self._page_text(doc[index])
            except Exception as exc:
                logger.warning(
                    f"Failed to extract text from page {index + 1}",
                    extra_data={
                        "page_number": index + 1,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                )
                continue
            if page_text:
                pages.append(PageText(page_number=index + 1, text=page_text))
        return pages

    @staticmethod
    def _page_text(page: fitz.Page) -> str:
        words = page.get_text("words", sort=True)
        return " ".join(word[4] for word in words).strip()

    def ocr_pages(self, doc: fitz.Document, page_limit: int) -> str:
        """OCR rendered pages in order; any engine failure yields ``""``."""
        dpi = self.config.ocr_config.dpi
        try:
            with ocr_engine(self.config.ocr_config) as engine:
                parts = []
                for index in range(page_limit):
                    try:
                        pix = doc[index].get_pixmap(dpi=dpi)
                        image = engine.load_image(pix.tobytes("png"))
                        page_text = engine.recognize(image)
                    except Exception as exc:
                        logger.error(
                            f"OCR failed for page {index + 1}",
                            extra_data={
                                "page_number": index + 1,
                                "error_type": type(exc).__name__,
                                "error": str(exc),
                            },
                            exc_info=True,
                        )
                        continue
                    if page_text:
                        parts.append(page_text)
                return "\n".join(parts).strip()
        except Exception as exc:
            logger.error(
                "OCR failed for PDF",
                extra_data={"error_type": type(exc).__name__, "error": str(exc)},
            )
            return ""

    def read_metadata(self, file_bytes: bytes) -> PdfMetadata:
        """Document info without extracting text. Failures give ``page_count=0``."""
        try:
            with fitz.open(stream=file_bytes, filetype="pdf") as doc:
                info = doc.metadata or {}
                return PdfMetadata(
                    page_count=doc.page_count,
                    title=info.get("title") or None,
                    author=info.get("author") or None,
                    subject=info.get("subject") or None,
                    creator=info.get("creator") or None,
                    producer=info.get("producer") or None,
                    creation_date=info.get("creationDate") or None,
                    modification_date=info.get("modDate") or None,
                    encrypted=bool(doc.is_encrypted),
                )
        except Exception as exc:
            logger.error(
                "PDF metadata extraction failed",
                extra_data={"error_type": type(exc).__name__, "error": str(exc)},
            )
            return PdfMetadata(page_count=0)


class DocxExtractor(BaseExtractor):
    """Body text of a Word document via python-docx."""

    def extract(self, file_bytes: bytes) -> ExtractionOutcome:
        try:
            with Timer("docx_extraction") as timer:
                doc = Document(io.BytesIO(file_bytes))

                paragraphs = [
                    para.text.strip() for para in doc.paragraphs if para.text.strip()
                ]

                rows = []
                for table in doc.tables:
                    for row in table.rows:
                        cells = [cell.text.strip() for cell in row.cells]
                        if any(cells):
                            rows.append(" | ".join(cells))

                text = "\n".join(paragraphs + rows).strip()
        except Exception as exc:
            logger.error(
                "DOCX extraction failed",
                extra_data={"error_type": type(exc).__name__, "error": str(exc)},
                exc_info=True,
            )
            raise ExtractionError(
                f"Failed to parse DOCX: {exc}", Sentinels.FAILED_DOCX
            ) from exc

        logger.debug(
            "DOCX extraction completed",
            extra_data={
                "paragraph_count": len(paragraphs),
                "table_row_count": len(rows),
                "characters_extracted": len(text),
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )

        if not text:
            return ExtractionOutcome(
                text=Sentinels.NO_TEXT_DOCX,
                method=ExtractionMethod.SENTINEL,
                is_sentinel=True,
            )
        return ExtractionOutcome(text=text, method=ExtractionMethod.DOCX)


class PlainTextExtractor(BaseExtractor):
    """UTF-8 text files, with a Latin-1 fallback for legacy encodings."""

    def extract(self, file_bytes: bytes) -> ExtractionOutcome:
        if len(file_bytes) > self.config.max_text_file_bytes:
            logger.warning(
                "Text file exceeds size limit",
                extra_data={
                    "file_size_bytes": len(file_bytes),
                    "max_text_file_bytes": self.config.max_text_file_bytes,
                },
            )
            raise InvalidDocumentError("Text file too large", Sentinels.TEXT_TOO_LARGE)

        try:
            text = file_bytes.decode("utf-8-sig")
        except UnicodeDecodeError:
            logger.info(
                "Text file is not valid UTF-8, decoding as Latin-1",
                extra_data={"file_size_bytes": len(file_bytes)},
            )
            text = file_bytes.decode("latin-1")

        return ExtractionOutcome(text=text.strip(), method=ExtractionMethod.PLAIN_TEXT)


class ImageOcrExtractor(BaseExtractor):
    """OCR applied directly to PNG/JPEG/WEBP uploads."""

    def extract(self, file_bytes: bytes) -> ExtractionOutcome:
        try:
            with Image.open(io.BytesIO(file_bytes)) as image:
                image.verify()
                image_format = image.format
        except Exception as exc:
            logger.warning(
                "Image could not be decoded",
                extra_data={"error_type": type(exc).__name__, "error": str(exc)},
            )
            raise InvalidDocumentError(
                f"Unreadable image: {exc}", Sentinels.FAILED_IMAGE
            ) from exc

        try:
            with Timer("image_ocr") as timer:
                with ocr_engine(self.config.ocr_config) as engine:
                    text = engine.recognize(engine.load_image(file_bytes))
        except Exception as exc:
            logger.error(
                "Image OCR failed",
                extra_data={
                    "image_format": image_format,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            text = ""
        else:
            logger.info(
                "Image OCR completed",
                extra_data={
                    "image_format": image_format,
                    "characters_extracted": len(text),
                    "ocr_time_ms": timer.get_elapsed_ms(),
                },
            )

        return ExtractionOutcome(
            text=text, method=ExtractionMethod.OCR, pages_processed=1, total_pages=1,
            ocr_attempted=True,
        )
