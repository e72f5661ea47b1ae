"""Exceptions raised inside the extraction pipeline.

Apart from ``ConfigurationError`` and ``EmptyCompletionError`` none of these
reach callers of ``DocumentHandler``: the handler turns them into the
placeholder text stored on ``sentinel``.
"""

from typing import Optional


class DocumentParserError(Exception):
    """Base exception for extraction errors."""

    default_sentinel = "[Failed to extract text from file]"

    def __init__(self, message: str, sentinel: Optional[str] = None):
        super().__init__(message)
        self.sentinel = sentinel or self.default_sentinel


class ConfigurationError(DocumentParserError):
    """Raised when extractor limits or OCR settings are invalid."""

    pass


class UnsupportedTypeError(DocumentParserError):
    """Raised when the declared MIME type has no extractor."""

    default_sentinel = "[Unsupported file type]"


class InvalidDocumentError(DocumentParserError):
    """Raised for structural problems found before parsing (empty, bad header, too large)."""

    pass


class EncryptedDocumentError(InvalidDocumentError):
    """Raised when a document needs a password to open."""

    default_sentinel = "[Password-protected PDF cannot be processed]"


class ExtractionError(DocumentParserError):
    """Raised when a parser fails on a structurally valid document."""

    pass


class OCRUnavailableError(DocumentParserError):
    """Raised when the tesseract binary cannot be used."""

    pass


class EmptyCompletionError(DocumentParserError):
    """Raised when the language model returns no usable text."""

    default_sentinel = "[No response generated]"
