"""High-level API for text extraction."""

import mimetypes
from pathlib import Path
from typing import Optional

from upload_extractor.config import ExtractorConfig
from upload_extractor.handler import DocumentHandler
from upload_extractor.models import DocumentExtractionResult

# mimetypes does not know .webp on every platform
mimetypes.add_type("image/webp", ".webp")
mimetypes.add_type(
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document", ".docx"
)


async def extract_text_from_file(
    file_bytes: bytes,
    mime_type: str,
    max_pages: Optional[int] = None,
    max_chars: Optional[int] = None,
    config: Optional[ExtractorConfig] = None,
) -> str:
    """Extract plain text from an uploaded file without blocking the event loop.

    Never raises for malformed or unsupported uploads; a placeholder such as
    ``"[Unsupported file type]"`` is returned instead. Invalid limits are a
    caller error and do raise.

    Args:
        file_bytes: Raw upload bytes
        mime_type: Declared MIME type of the upload
        max_pages: Per-call page limit for PDFs (overrides config)
        max_chars: Per-call output cap (overrides config)
        config: Base configuration (defaults if not provided)

    Raises:
        ConfigurationError: If ``max_pages`` is not positive or ``max_chars``
            does not exceed the truncation marker length

    Examples:
        >>> text = await extract_text_from_file(data, "application/pdf", max_chars=10_000)
    """
    base = config or ExtractorConfig()
    handler = DocumentHandler(config=base.with_limits(max_pages, max_chars))
    return await handler.aextract_text(file_bytes, mime_type)


def parse_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    mime_type: Optional[str] = None,
    config: Optional[ExtractorConfig] = None,
) -> DocumentExtractionResult:
    """Extract text from a file on disk or from raw bytes.

    Args:
        file_path: Path to document file (alternative to file_bytes)
        file_bytes: Raw document bytes (alternative to file_path)
        mime_type: MIME type; guessed from the file extension when omitted
        config: Extraction configuration (defaults if not provided)

    Returns:
        DocumentExtractionResult with extracted text and metadata

    Raises:
        ValueError: If both or neither of file_path and file_bytes are given,
            or the file does not exist

    Examples:
        >>> result = parse_document(file_path="parenting-plan.pdf")
        >>> print(result.text)
    """
    if file_path and file_bytes is not None:
        raise ValueError("Provide either file_path or file_bytes, not both")

    if not file_path and file_bytes is None:
        raise ValueError("Must provide either file_path or file_bytes")

    if file_path:
        path = Path(file_path)
        if not path.is_file():
            raise ValueError(f"File not found: {file_path}")

        file_bytes = path.read_bytes()

        if not mime_type:
            guessed_type, _ = mimetypes.guess_type(path.name)
            mime_type = guessed_type

    handler = DocumentHandler(config=config)
    return handler.extract_document(file_bytes, mime_type or "")
