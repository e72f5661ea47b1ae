"""Data models for the extraction pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DocumentType(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    TEXT = "text"
    IMAGE = "image"


DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

MIME_TYPES: dict[str, DocumentType] = {
    "application/pdf": DocumentType.PDF,
    DOCX_MIME_TYPE: DocumentType.DOCX,
    "text/plain": DocumentType.TEXT,
    "image/png": DocumentType.IMAGE,
    "image/jpeg": DocumentType.IMAGE,
    "image/jpg": DocumentType.IMAGE,  # non-standard alias sent by some browsers
    "image/webp": DocumentType.IMAGE,
}


class ExtractionMethod(str, Enum):
    """How the returned text was produced."""

    TEXT_LAYER = "text_layer"
    OCR = "ocr"
    DOCX = "docx"
    PLAIN_TEXT = "plain_text"
    SENTINEL = "sentinel"


@dataclass
class PageText:
    page_number: int  # 1-based
    text: str


@dataclass
class ExtractionOutcome:
    """What an extractor variant produced, before sanitizing and truncation."""

    text: str
    method: ExtractionMethod
    pages_processed: int = 0
    total_pages: int = 0
    is_sentinel: bool = False
    ocr_attempted: bool = False  # PDF fallback ran or the input was an image

    @property
    def ocr_used(self) -> bool:
        return self.method is ExtractionMethod.OCR


@dataclass
class DocumentExtractionResult:
    """Result of one extraction call."""

    text: str
    mime_type: str
    character_count: int
    method: ExtractionMethod
    ocr_used: bool = False
    ocr_attempted: bool = False
    truncated: bool = False
    pages_processed: int = 0
    total_pages: int = 0
    is_sentinel: bool = False


@dataclass
class PdfMetadata:
    page_count: int
    title: Optional[str] = None
    author: Optional[str] = None
    subject: Optional[str] = None
    creator: Optional[str] = None
    producer: Optional[str] = None
    creation_date: Optional[str] = None
    modification_date: Optional[str] = None
    encrypted: bool = False
