"""Extraction pipeline boundary.

``DocumentHandler`` never raises for bad input: every failure becomes a
placeholder string so that a broken upload cannot block the question it was
attached to.
"""

import asyncio
import re
from typing import Mapping, Optional

from upload_extractor.config import ExtractorConfig
from upload_extractor.detector import DocumentDetector, Sentinels, normalize_mime
from upload_extractor.exceptions import DocumentParserError
from upload_extractor.extractor import (
    BaseExtractor,
    DocxExtractor,
    ImageOcrExtractor,
    PdfExtractor,
    PlainTextExtractor,
)
from upload_extractor.logger import Timer, get_logger
from upload_extractor.models import (
    MIME_TYPES,
    DocumentExtractionResult,
    DocumentType,
    ExtractionMethod,
    ExtractionOutcome,
)

logger = get_logger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_HORIZONTAL_WS = re.compile(r"[ \t]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")


def sanitize_text(text: str) -> str:
    """Strip control characters and normalise whitespace."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _HORIZONTAL_WS.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE.sub("\n", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()


def truncate_text(text: str, max_chars: int, marker: str) -> tuple[str, bool]:
    """Cap ``text`` at ``max_chars`` characters including ``marker``.

    Returns the (possibly shortened) text and whether it was cut.
    """
    if len(text) <= max_chars:
        return text, False
    if max_chars <= len(marker):
        return text[:max_chars], True
    return text[: max_chars - len(marker)] + marker, True


class DocumentHandler:
    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        detector: Optional[DocumentDetector] = None,
        extractors: Optional[Mapping[DocumentType, BaseExtractor]] = None,
    ) -> None:
        """Initialize document handler.

        Args:
            config: Limits and OCR settings. If None, uses defaults.
            detector: Document type detector. If None, creates default.
            extractors: Variant per document type. Missing entries are filled
                with the default extractor for that type.
        """
        self.config = config or ExtractorConfig()
        self.detector = detector or DocumentDetector(
            validate_signatures=self.config.validate_signatures
        )
        self.extractors: dict[DocumentType, BaseExtractor] = {
            DocumentType.PDF: PdfExtractor(self.config),
            DocumentType.DOCX: DocxExtractor(self.config),
            DocumentType.TEXT: PlainTextExtractor(self.config),
            DocumentType.IMAGE: ImageOcrExtractor(self.config),
        }
        if extractors:
            self.extractors.update(extractors)

    def extract_document(
        self, file_bytes: bytes, mime_type: str
    ) -> DocumentExtractionResult:
        """Extract text and extraction details from an upload.

        Never raises for malformed or unsupported input; the result text is
        then a sentinel from ``Sentinels`` and ``is_sentinel`` is set.
        """
        declared = normalize_mime(mime_type)
        file_bytes = file_bytes or b""

        with Timer("extraction") as timer:
            try:
                descriptor = self.detector.detect(file_bytes, declared)
                outcome = self.extractors[descriptor.document_type].extract(file_bytes)
            except DocumentParserError as exc:
                logger.warning(
                    "Extraction returned placeholder",
                    extra_data={
                        "mime_type": declared,
                        "file_size_bytes": len(file_bytes),
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                        "sentinel": exc.sentinel,
                    },
                )
                outcome = _sentinel_outcome(exc.sentinel)
            except Exception as exc:
                logger.error(
                    "Unexpected extraction failure",
                    extra_data={
                        "mime_type": declared,
                        "file_size_bytes": len(file_bytes),
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=True,
                )
                document_type = MIME_TYPES.get(declared)
                outcome = _sentinel_outcome(
                    Sentinels.FAILURE_BY_TYPE.get(document_type, Sentinels.UNSUPPORTED_TYPE)
                )

        # Plain text is only trimmed, never rewritten
        if outcome.is_sentinel or outcome.method is ExtractionMethod.PLAIN_TEXT:
            text = outcome.text
        else:
            text = sanitize_text(outcome.text)
        text, truncated = truncate_text(
            text, self.config.max_chars, self.config.truncation_marker
        )

        if truncated:
            logger.info(
                "Extracted text truncated",
                extra_data={"mime_type": declared, "max_chars": self.config.max_chars},
            )

        logger.info(
            "Extraction finished",
            extra_data={
                "mime_type": declared,
                "method": outcome.method.value,
                "character_count": len(text),
                "truncated": truncated,
                "pages_processed": outcome.pages_processed,
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )

        return DocumentExtractionResult(
            text=text,
            mime_type=declared,
            character_count=len(text),
            method=outcome.method,
            ocr_used=outcome.ocr_used,
            ocr_attempted=outcome.ocr_attempted,
            truncated=truncated,
            pages_processed=outcome.pages_processed,
            total_pages=outcome.total_pages,
            is_sentinel=outcome.is_sentinel,
        )

    def extract_text(self, file_bytes: bytes, mime_type: str) -> str:
        return self.extract_document(file_bytes, mime_type).text

    async def aextract_document(
        self, file_bytes: bytes, mime_type: str
    ) -> DocumentExtractionResult:
        """Run ``extract_document`` on a worker thread."""
        return await asyncio.to_thread(self.extract_document, file_bytes, mime_type)

    async def aextract_text(self, file_bytes: bytes, mime_type: str) -> str:
        result = await self.aextract_document(file_bytes, mime_type)
        return result.text


def _sentinel_outcome(sentinel: str) -> ExtractionOutcome:
    return ExtractionOutcome(
        text=sentinel, method=ExtractionMethod.SENTINEL, is_sentinel=True
    )
