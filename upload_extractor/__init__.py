"""Text extraction for uploaded documents, with OCR fallback."""

from upload_extractor.config import (
    DEFAULT_MAX_CHARS,
    PROMPT_CONTEXT_MAX_CHARS,
    TRUNCATION_MARKER,
    ExtractorConfig,
    OCRConfig,
)
from upload_extractor.detector import DocumentDetector, Sentinels, validate_signature
from upload_extractor.exceptions import (
    ConfigurationError,
    DocumentParserError,
    EmptyCompletionError,
    EncryptedDocumentError,
    ExtractionError,
    InvalidDocumentError,
    OCRUnavailableError,
    UnsupportedTypeError,
)
from upload_extractor.extractor import (
    BaseExtractor,
    DocxExtractor,
    ImageOcrExtractor,
    PdfExtractor,
    PlainTextExtractor,
)
from upload_extractor.handler import DocumentHandler, sanitize_text, truncate_text
from upload_extractor.models import (
    DocumentExtractionResult,
    DocumentType,
    ExtractionMethod,
    PageText,
    PdfMetadata,
)
from upload_extractor.ocr import OCREngine, ocr_engine
from upload_extractor.parser import extract_text_from_file, parse_document
from upload_extractor.prompt import build_context, build_messages, require_completion

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "extract_text_from_file",
    "parse_document",
    # Core classes
    "DocumentHandler",
    "DocumentDetector",
    "BaseExtractor",
    "PdfExtractor",
    "DocxExtractor",
    "PlainTextExtractor",
    "ImageOcrExtractor",
    "OCREngine",
    "ocr_engine",
    # Helpers
    "Sentinels",
    "validate_signature",
    "sanitize_text",
    "truncate_text",
    "build_context",
    "build_messages",
    "require_completion",
    # Data models
    "DocumentExtractionResult",
    "DocumentType",
    "ExtractionMethod",
    "PageText",
    "PdfMetadata",
    # Configuration
    "OCRConfig",
    "ExtractorConfig",
    "DEFAULT_MAX_CHARS",
    "PROMPT_CONTEXT_MAX_CHARS",
    "TRUNCATION_MARKER",
    # Exceptions
    "DocumentParserError",
    "ConfigurationError",
    "UnsupportedTypeError",
    "InvalidDocumentError",
    "EncryptedDocumentError",
    "ExtractionError",
    "OCRUnavailableError",
    "EmptyCompletionError",
]
