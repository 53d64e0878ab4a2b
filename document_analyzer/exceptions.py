"""Exceptions raised inside the extraction pipeline.

Extractors raise these internally and convert them into failure results at
their boundary, so callers of the public API only ever see ``ExtractionResult``.
"""

from document_analyzer.models import ErrorKind


class DocumentAnalyzerError(Exception):
    """Base exception for document analyzer errors."""

    kind: ErrorKind = ErrorKind.LIBRARY_ERROR


class EmptyExtractionError(DocumentAnalyzerError):
    """Raised when a library succeeded but produced no usable text."""

    kind = ErrorKind.EMPTY_EXTRACTION


class ExtractionError(DocumentAnalyzerError):
    """Raised when a parsing or OCR library fails."""

    kind = ErrorKind.LIBRARY_ERROR
