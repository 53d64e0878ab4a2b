"""Configuration classes for document analyzer."""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class OCRConfig:
    """Configuration for Tesseract OCR.

    Examples:
        >>> # Defaults: English model, automatic page segmentation
        >>> config = OCRConfig()

        >>> # Multilingual scans with preprocessing
        >>> config = OCRConfig(languages="eng+fra", enable_image_preprocessing=True)
    """

    tesseract_cmd: str = "tesseract"
    """Path to tesseract binary. Default: "tesseract" (assumes in PATH)."""

    tessdata_prefix: Optional[str] = None
    """Optional path to tessdata directory. If None, uses system default."""

    languages: str = "eng"
    """OCR languages in Tesseract format (e.g., "eng", "eng+fra")."""

    psm_mode: int = 3
    """Page segmentation mode (0-13). Default: 3 (fully automatic).

    Common modes:
    - 3: Fully automatic page segmentation
    - 6: Uniform block of text
    - 11: Sparse text
    """

    enable_image_preprocessing: bool = False
    """Convert images to grayscale and boost contrast before OCR."""

    contrast_enhancement: float = 1.2
    """Contrast factor used when preprocessing is enabled (1.0 = unchanged)."""

    pdf_ocr_fallback: bool = False
    """OCR the pages of a PDF whose text layer is empty.

    Off by default: an empty text layer is reported as a scanned PDF and the
    user is asked to describe the content instead.
    """

    dpi: int = 150
    """Rendering DPI for PDF pages when ``pdf_ocr_fallback`` is enabled."""

    max_workers: int = 3
    """Parallel page workers for the PDF OCR fallback."""


@dataclass
class ExtractorConfig:
    """Configuration for document extraction."""

    ocr_config: OCRConfig = field(default_factory=OCRConfig)

    pdf_markdown: bool = False
    """Render the PDF text layer as markdown with pymupdf4llm instead of plain text."""

    table_strategy: str = "lines_strict"
    fontsize_limit: int = 3


DEFAULT_PREFERRED_MODELS = ("qwen2.5:1.5b", "gemma3:1b", "gemma2:2b", "llama3.1:8b")


@dataclass
class AnalysisConfig:
    """Configuration for the Ollama-backed analysis caller."""

    base_url: str = "http://localhost:11434"
    preferred_models: tuple[str, ...] = DEFAULT_PREFERRED_MODELS

    model: Optional[str] = None
    """Pin a model instead of picking from ``preferred_models``."""

    timeout_seconds: float = 15.0

    question_preview_chars: int = 500
    summary_preview_chars: int = 800

    temperature: float = 0.7
    num_predict: int = 800
    num_ctx: int = 2048
    top_p: float = 0.9
    top_k: int = 20

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        """Build a config from ``OLLAMA_*`` environment variables."""
        config = cls()
        if os.getenv("OLLAMA_BASE_URL"):
            config.base_url = os.environ["OLLAMA_BASE_URL"].rstrip("/")
        if os.getenv("OLLAMA_MODEL"):
            config.model = os.environ["OLLAMA_MODEL"]
        if os.getenv("OLLAMA_TIMEOUT"):
            config.timeout_seconds = float(os.environ["OLLAMA_TIMEOUT"])
        return config

    def generation_options(self) -> dict:
        return {
            "temperature": self.temperature,
            "num_predict": self.num_predict,
            "num_ctx": self.num_ctx,
            "top_p": self.top_p,
            "top_k": self.top_k,
        }


@dataclass
class SummaryCacheConfig:
    """Bounds for the per-room conversation summary cache."""

    max_size: int = 256
    ttl_seconds: int = 30 * 60

    refresh_threshold: int = 20
    """Only histories longer than this trigger a background summary refresh."""

    history_window: int = 50
    """Number of most recent messages fed to the summarizer."""

    max_workers: int = 2
