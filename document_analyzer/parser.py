"""High-level API for document extraction and analysis."""

from typing import Optional

from document_analyzer.analysis import AnalysisClient
from document_analyzer.config import ExtractorConfig
from document_analyzer.handler import DocumentHandler
from document_analyzer.models import AnalysisResult, ExtractionResult, UploadedFile


def _load_upload(
    file_path: Optional[str],
    file_bytes: Optional[bytes],
    file_name: Optional[str],
    mime_type: Optional[str],
) -> UploadedFile:
    if file_path and file_bytes is not None:
        raise ValueError("Provide either file_path or file_bytes, not both")

    if file_path:
        return UploadedFile.from_path(file_path, mime_type)

    if file_bytes is None:
        raise ValueError("Must provide either file_path or file_bytes")
    if not file_name:
        raise ValueError("file_name is required when using file_bytes")

    return UploadedFile(content=file_bytes, mime_type=mime_type or "", file_name=file_name)


def extract_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    file_name: Optional[str] = None,
    mime_type: Optional[str] = None,
    config: Optional[ExtractorConfig] = None,
) -> ExtractionResult:
    """Extract text content from a document.

    Accepts either a file path or raw bytes. The result is never raised as an
    exception: check ``result.success`` and ``result.error``.

    Args:
        file_path: Path to document file (alternative to file_bytes)
        file_bytes: Raw document bytes (alternative to file_path)
        file_name: Original filename (required if using file_bytes)
        mime_type: Declared MIME type (guessed from the extension for paths)
        config: Extractor configuration (optional, uses defaults if not provided)

    Raises:
        ValueError: If neither or both of file_path and file_bytes are given,
            if file_bytes comes without file_name, or if file_path does not exist

    Examples:
        >>> result = extract_document(file_path="lecture-notes.pdf")
        >>> print(result.metadata.word_count)

        >>> result = extract_document(
        ...     file_bytes=b"Hello World", file_name="notes.txt", mime_type="text/plain"
        ... )
        >>> result.text
        'Hello World'
    """
    upload = _load_upload(file_path, file_bytes, file_name, mime_type)
    return DocumentHandler(config=config).extract(upload)


def analyze_document(
    file_path: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    file_name: Optional[str] = None,
    mime_type: Optional[str] = None,
    question: Optional[str] = None,
    config: Optional[ExtractorConfig] = None,
    analysis_client: Optional[AnalysisClient] = None,
) -> AnalysisResult:
    """Extract a document and ask the language model about it.

    Same input rules as ``extract_document``. Without ``question`` the model
    produces a general summary.
    """
    upload = _load_upload(file_path, file_bytes, file_name, mime_type)
    with DocumentHandler(config=config, analysis_client=analysis_client) as handler:
        return handler.analyze(upload, question)
