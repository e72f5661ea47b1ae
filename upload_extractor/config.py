"""Configuration classes for the extraction pipeline."""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from upload_extractor.exceptions import ConfigurationError

DEFAULT_MAX_CHARS = 50_000
"""Output cap applied when an upload is extracted."""

PROMPT_CONTEXT_MAX_CHARS = 10_000
"""Cap applied again when extracted text is embedded in a prompt."""

DEFAULT_MAX_PAGES = 50

TRUNCATION_MARKER = "\n\n...[content truncated]"


@dataclass
class OCRConfig:
    """Configuration for OCR processing.

    Examples:
        >>> # Defaults: English, 150 DPI page rendering
        >>> config = OCRConfig()

        >>> # Scans with small print
        >>> config = OCRConfig(dpi=300, psm_mode=6)
    """

    tesseract_cmd: str = "tesseract"
    """Path to tesseract binary. Default: "tesseract" (assumes in PATH)."""

    tessdata_prefix: Optional[str] = None
    """Optional path to tessdata directory. If None, uses system default."""

    languages: str = "eng"
    """OCR languages in Tesseract format (e.g., "eng", "eng+spa")."""

    dpi: int = 150
    """DPI used when rendering PDF pages for OCR.

    - 120: fastest, acceptable quality
    - 150: default
    - 300: best quality, roughly twice the memory
    """

    psm_mode: int = 3
    """Page segmentation mode (0-13). Default: 3 (fully automatic).

    - 6: uniform block of text (court forms, letters)
    - 11: sparse text (screenshots of messages)
    """

    timeout_seconds: int = 30
    """Per-image tesseract timeout. 0 disables the timeout."""

    enable_image_preprocessing: bool = True
    """Convert to grayscale and boost contrast before OCR."""

    contrast_enhancement: float = 1.2
    """Contrast factor used by preprocessing. 1.0 leaves the image unchanged."""

    use_oem_1: bool = True
    """Use Tesseract OEM 1 (LSTM engine only)."""

    def tesseract_config(self) -> str:
        """Command line flags passed to tesseract."""
        flags = [f"--psm {self.psm_mode}"]
        if self.use_oem_1:
            flags.append("--oem 1")
        return " ".join(flags)


@dataclass
class ExtractorConfig:
    """Limits and policies for one extraction call."""

    ocr_config: OCRConfig = field(default_factory=OCRConfig)
    max_pages: int = DEFAULT_MAX_PAGES
    max_chars: int = DEFAULT_MAX_CHARS
    min_confidence_chars: int = 100
    """PDF text layers shorter than this (after stripping) trigger the OCR fallback.

    This is a policy knob rather than a measured constant; tune it per
    deployment.
    """
    max_text_file_bytes: int = 10 * 1024 * 1024
    truncation_marker: str = TRUNCATION_MARKER
    validate_signatures: bool = True

    def __post_init__(self):
        for name in ("max_pages", "max_chars", "max_text_file_bytes"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.min_confidence_chars < 0:
            raise ConfigurationError("min_confidence_chars must not be negative")
        if self.max_chars <= len(self.truncation_marker):
            raise ConfigurationError(
                "max_chars must be longer than the truncation marker"
            )
        if self.ocr_config.dpi <= 0:
            raise ConfigurationError("ocr dpi must be positive")

    def with_limits(
        self, max_pages: Optional[int] = None, max_chars: Optional[int] = None
    ) -> "ExtractorConfig":
        """Copy of this config with per-call page/character limits applied."""
        return ExtractorConfig(
            ocr_config=self.ocr_config,
            max_pages=max_pages if max_pages is not None else self.max_pages,
            max_chars=max_chars if max_chars is not None else self.max_chars,
            min_confidence_chars=self.min_confidence_chars,
            max_text_file_bytes=self.max_text_file_bytes,
            truncation_marker=self.truncation_marker,
            validate_signatures=self.validate_signatures,
        )

    @classmethod
    def from_env(
        cls, prefix: str = "UPLOAD_EXTRACT_", environ: Optional[Mapping[str, str]] = None
    ) -> "ExtractorConfig":
        """Build a config from environment variables.

        Recognised names (with ``prefix``): MAX_PAGES, MAX_CHARS,
        MIN_CONFIDENCE_CHARS, MAX_TEXT_FILE_BYTES, OCR_LANGUAGES, OCR_DPI,
        OCR_TIMEOUT_SECONDS, TESSERACT_CMD, TESSDATA_PREFIX. Missing names
        keep their defaults.
        """
        env = os.environ if environ is None else environ

        def _int(name: str, default: int) -> int:
            raw = env.get(prefix + name, "").strip()
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{prefix + name} must be an integer, got {raw!r}"
                ) from exc

        defaults = OCRConfig()
        ocr_config = OCRConfig(
            tesseract_cmd=env.get(prefix + "TESSERACT_CMD") or defaults.tesseract_cmd,
            tessdata_prefix=env.get(prefix + "TESSDATA_PREFIX") or None,
            languages=env.get(prefix + "OCR_LANGUAGES") or defaults.languages,
            dpi=_int("OCR_DPI", defaults.dpi),
            timeout_seconds=_int("OCR_TIMEOUT_SECONDS", defaults.timeout_seconds),
        )

        return cls(
            ocr_config=ocr_config,
            max_pages=_int("MAX_PAGES", DEFAULT_MAX_PAGES),
            max_chars=_int("MAX_CHARS", DEFAULT_MAX_CHARS),
            min_confidence_chars=_int("MIN_CONFIDENCE_CHARS", 100),
            max_text_file_bytes=_int("MAX_TEXT_FILE_BYTES", 10 * 1024 * 1024),
        )
