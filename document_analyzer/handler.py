"""Upload handling: format detection, extraction dispatch and analysis."""

from pathlib import Path
from typing import Callable, Optional

from document_analyzer.analysis import AnalysisClient
from document_analyzer.config import AnalysisConfig, ExtractorConfig
from document_analyzer.detector import FormatDetector
from document_analyzer.extractor import DocumentExtractor
from document_analyzer.logger import Timer, get_logger
from document_analyzer.models import (
    AnalysisResult,
    ErrorKind,
    ExtractionResult,
    FileFormat,
    UploadedFile,
)

logger = get_logger(__name__)


class DocumentHandler:
    def __init__(
        self,
        detector: Optional[FormatDetector] = None,
        extractor: Optional[DocumentExtractor] = None,
        analysis_client: Optional[AnalysisClient] = None,
        config: Optional[ExtractorConfig] = None,
    ) -> None:
        """Initialize document handler.

        Args:
            detector: Format detector. If None, creates default.
            extractor: Document extractor. If None, creates one from ``config``.
            analysis_client: Model client for ``analyze``. If None, one is built
                from ``OLLAMA_*`` environment variables on first use.
            config: Extractor configuration. Only used if extractor is None.
        """
        self.detector = detector or FormatDetector()
        self.extractor = extractor or DocumentExtractor(config)
        self._analysis_client = analysis_client
        self._owns_client = False
        self._extractors: dict[FileFormat, Callable[[bytes, str], ExtractionResult]] = {
            FileFormat.IMAGE: self.extractor.extract_image,
            FileFormat.PDF: self.extractor.extract_pdf,
            FileFormat.WORD: self.extractor.extract_word,
            FileFormat.EXCEL: self.extractor.extract_excel,
            FileFormat.TEXT: self.extractor.extract_text,
        }

    @property
    def analysis_client(self) -> AnalysisClient:
        if self._analysis_client is None:
            self._analysis_client = AnalysisClient(AnalysisConfig.from_env())
            self._owns_client = True
        return self._analysis_client

    def close(self) -> None:
        """Close the analysis client if this handler created it."""
        if self._owns_client and self._analysis_client is not None:
            self._analysis_client.close()
            self._analysis_client = None
            self._owns_client = False

    def __enter__(self) -> "DocumentHandler":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def extract(self, upload: UploadedFile) -> ExtractionResult:
        """Extract text from an upload with exactly one format-specific extractor.

        Never raises for bad input: unsupported formats, empty documents and
        library failures all come back as ``success=False`` results.
        """
        file_format = self.detector.detect(upload.mime_type, upload.file_name, upload.content)

        extract = self._extractors.get(file_format)
        if extract is None:
            described = upload.mime_type or Path(upload.file_name).suffix or "unknown"
            logger.warning(
                "Unsupported file type",
                extra_data={
                    "file_name": upload.file_name,
                    "mime_type": upload.mime_type,
                    "file_size_bytes": upload.size,
                },
            )
            return ExtractionResult.failure(
                f"Unsupported file type: {described}",
                FileFormat.UNKNOWN,
                ErrorKind.UNSUPPORTED_FORMAT,
            )

        return extract(upload.content, upload.file_name)

    def analyze(self, upload: UploadedFile, question: Optional[str] = None) -> AnalysisResult:
        """Extract text and summarize it, or answer ``question`` about it."""
        extraction = self.extract(upload)
        if not extraction.success:
            return AnalysisResult.from_extraction(extraction)

        try:
            with Timer("analysis") as timer:
                outcome = self.analysis_client.analyze(
                    extraction.text,
                    upload.file_name,
                    upload.mime_type or extraction.file_format.value,
                    question,
                )
        except Exception as exc:
            logger.error(
                "Document analysis failed",
                extra_data={
                    "file_name": upload.file_name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return AnalysisResult.from_extraction(
                ExtractionResult.failure(
                    f"Analysis failed: {exc}", extraction.file_format, ErrorKind.LIBRARY_ERROR
                )
            )

        logger.info(
            "Document analyzed",
            extra_data={
                "file_name": upload.file_name,
                "model": outcome.model or "fallback",
                "analysis_time_ms": timer.get_elapsed_ms(),
            },
        )
        return AnalysisResult.from_extraction(extraction, outcome.summary, outcome.model)
