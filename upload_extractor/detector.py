"""Document type detection and structural validation."""

import codecs
from dataclasses import dataclass

from upload_extractor.exceptions import InvalidDocumentError, UnsupportedTypeError
from upload_extractor.logger import get_logger
from upload_extractor.models import DOCX_MIME_TYPE, MIME_TYPES, DocumentType

logger = get_logger(__name__)


PDF_SIGNATURE = b"%PDF"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"
ZIP_SIGNATURES = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")
RIFF_SIGNATURE = b"RIFF"
WEBP_MARKER = b"WEBP"

# Share of non-printable characters in the first bytes above which a
# "text/plain" upload is treated as binary
BINARY_TEXT_RATIO = 0.3
TEXT_SAMPLE_BYTES = 100


class Sentinels:
    """Placeholder strings returned instead of extracted text."""

    EMPTY_FILE = "[Empty file: no content to extract]"
    UNSUPPORTED_TYPE = "[Unsupported file type]"
    INVALID_PDF = "[Invalid PDF: missing %PDF header]"
    PASSWORD_PROTECTED_PDF = "[Password-protected PDF cannot be processed]"
    CORRUPTED_PDF = "[Corrupted PDF: document could not be opened]"
    FAILED_PDF = "[Failed to extract PDF text]"
    FAILED_DOCX = "[Failed to extract DOCX text]"
    NO_TEXT_DOCX = "[No text found in DOCX]"
    FAILED_IMAGE = "[Failed to extract image text]"
    FAILED_TEXT = "[Failed to decode text file]"
    TEXT_TOO_LARGE = "[Text file too large to process]"
    INVALID_SIGNATURE = "[Invalid file: contents do not match the declared type]"

    ALL = frozenset(
        {
            EMPTY_FILE,
            UNSUPPORTED_TYPE,
            INVALID_PDF,
            PASSWORD_PROTECTED_PDF,
            CORRUPTED_PDF,
            FAILED_PDF,
            FAILED_DOCX,
            NO_TEXT_DOCX,
            FAILED_IMAGE,
            FAILED_TEXT,
            TEXT_TOO_LARGE,
            INVALID_SIGNATURE,
        }
    )

    FAILURE_BY_TYPE = {
        DocumentType.PDF: FAILED_PDF,
        DocumentType.DOCX: FAILED_DOCX,
        DocumentType.TEXT: FAILED_TEXT,
        DocumentType.IMAGE: FAILED_IMAGE,
    }

    @classmethod
    def is_sentinel(cls, text: str) -> bool:
        return text in cls.ALL


@dataclass
class DocumentDescriptor:
    mime_type: str
    document_type: DocumentType
    file_size: int


def normalize_mime(mime_type: str) -> str:
    """Lower-case a MIME string and drop parameters such as ``; charset=utf-8``."""
    return (mime_type or "").split(";", 1)[0].strip().lower()


def sniff_mime(file_bytes: bytes) -> str | None:
    """Guess a MIME type from the file signature."""
    if file_bytes.startswith(PDF_SIGNATURE):
        return "application/pdf"
    if file_bytes.startswith(PNG_SIGNATURE):
        return "image/png"
    if file_bytes.startswith(JPEG_SIGNATURE):
        return "image/jpeg"
    if file_bytes.startswith(RIFF_SIGNATURE) and file_bytes[8:12] == WEBP_MARKER:
        return "image/webp"
    if file_bytes.startswith(ZIP_SIGNATURES):
        # DOCX files are ZIP archives
        return DOCX_MIME_TYPE
    return None


def validate_signature(file_bytes: bytes, mime_type: str) -> bool:
    """Check that the magic bytes agree with the declared MIME type."""
    mime_type = normalize_mime(mime_type)
    if mime_type == "text/plain":
        return not _looks_binary(file_bytes[:TEXT_SAMPLE_BYTES])

    # Every magic number checked below is at least four bytes long
    if len(file_bytes) < 4:
        return False
    if mime_type == "application/pdf":
        return file_bytes.startswith(PDF_SIGNATURE)
    if mime_type == "image/png":
        return file_bytes.startswith(PNG_SIGNATURE)
    if mime_type in ("image/jpeg", "image/jpg"):
        return file_bytes.startswith(JPEG_SIGNATURE)
    if mime_type == "image/webp":
        return file_bytes.startswith(RIFF_SIGNATURE) and file_bytes[8:12] == WEBP_MARKER
    if mime_type == DOCX_MIME_TYPE:
        return file_bytes.startswith(ZIP_SIGNATURES)
    return True


def _decode_sample(sample: bytes) -> str:
    """Decode a text sample as UTF-8, or as Latin-1 when it is not UTF-8.

    A multi-byte character cut off at the end of the sample is dropped.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        text = decoder.decode(sample, final=False)
    except UnicodeDecodeError:
        return sample.decode("latin-1")
    return text or sample.decode("latin-1")


def _looks_binary(sample: bytes) -> bool:
    text = _decode_sample(sample)
    if not text:
        return True
    non_printable = sum(
        1
        for char in text
        if (ord(char) < 32 and char not in "\t\n\r\f\v") or 0x7F <= ord(char) <= 0x9F
    )
    return non_printable / len(text) >= BINARY_TEXT_RATIO


class DocumentDetector:
    """Maps a declared MIME type to a document type after structural checks."""

    def __init__(self, validate_signatures: bool = True):
        self.validate_signatures = validate_signatures

    def detect(self, file_bytes: bytes, mime_type: str) -> DocumentDescriptor:
        """Validate an upload before any parser touches it.

        Raises:
            InvalidDocumentError: empty buffer or signature mismatch
            UnsupportedTypeError: MIME type has no extractor
        """
        declared = normalize_mime(mime_type)
        file_size = len(file_bytes) if file_bytes else 0

        logger.debug(
            "Starting document type detection",
            extra_data={"declared_mime_type": mime_type, "file_size_bytes": file_size},
        )

        if file_size == 0:
            logger.warning(
                "Rejected empty upload", extra_data={"declared_mime_type": mime_type}
            )
            raise InvalidDocumentError("File buffer is empty", Sentinels.EMPTY_FILE)

        document_type = MIME_TYPES.get(declared)
        if document_type is None:
            logger.warning(
                "Unsupported MIME type",
                extra_data={
                    "declared_mime_type": mime_type,
                    "sniffed_mime_type": sniff_mime(file_bytes),
                },
            )
            raise UnsupportedTypeError(
                f"Unsupported mime type: {mime_type}", Sentinels.UNSUPPORTED_TYPE
            )

        if self.validate_signatures and not validate_signature(file_bytes, declared):
            sentinel = (
                Sentinels.INVALID_PDF
                if document_type is DocumentType.PDF
                else Sentinels.INVALID_SIGNATURE
            )
            logger.warning(
                "File signature does not match declared type",
                extra_data={
                    "declared_mime_type": declared,
                    "sniffed_mime_type": sniff_mime(file_bytes),
                    "file_size_bytes": file_size,
                },
            )
            raise InvalidDocumentError(
                f"File contents do not match {declared}", sentinel
            )

        logger.debug(
            "Document type detected",
            extra_data={"mime_type": declared, "document_type": document_type.value},
        )

        return DocumentDescriptor(
            mime_type=declared, document_type=document_type, file_size=file_size
        )
