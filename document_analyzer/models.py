"""Data models for document analyzer."""

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union


class FileFormat(str, Enum):
    """Formats the dispatcher knows how to extract."""

    IMAGE = "image"
    PDF = "pdf"
    WORD = "word"
    EXCEL = "excel"
    TEXT = "text"
    UNKNOWN = "unknown"


class ErrorKind(str, Enum):
    UNSUPPORTED_FORMAT = "unsupported_format"
    EMPTY_EXTRACTION = "empty_extraction"
    LIBRARY_ERROR = "library_error"


def count_words(text: str) -> int:
    """Number of whitespace-separated tokens in ``text``."""
    return len(text.split())


@dataclass(frozen=True)
class UploadedFile:
    """A file as received from an upload form."""

    content: bytes = field(repr=False)
    mime_type: str
    file_name: str

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(
        cls, path: Union[str, Path], mime_type: Optional[str] = None
    ) -> "UploadedFile":
        path = Path(path)
        if not path.is_file():
            raise ValueError(f"File not found: {path}")

        if not mime_type:
            guessed, _ = mimetypes.guess_type(str(path))
            mime_type = guessed or ""

        return cls(content=path.read_bytes(), mime_type=mime_type, file_name=path.name)


@dataclass(frozen=True)
class ExtractionMetadata:
    word_count: int
    page_count: Optional[int] = None
    language: str = "en"


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction call, successful or not."""

    success: bool
    text: str
    file_format: FileFormat
    confidence: Optional[int] = None  # OCR only
    metadata: Optional[ExtractionMetadata] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(
        cls,
        text: str,
        file_format: FileFormat,
        page_count: Optional[int] = None,
        confidence: Optional[int] = None,
    ) -> "ExtractionResult":
        return cls(
            success=True,
            text=text,
            file_format=file_format,
            confidence=confidence,
            metadata=ExtractionMetadata(
                word_count=count_words(text), page_count=page_count
            ),
        )

    @classmethod
    def failure(
        cls,
        error: str,
        file_format: FileFormat,
        kind: ErrorKind = ErrorKind.LIBRARY_ERROR,
    ) -> "ExtractionResult":
        return cls(
            success=False,
            text="",
            file_format=file_format,
            error=error,
            error_kind=kind,
        )


@dataclass(frozen=True)
class AnalysisResult(ExtractionResult):
    """Extraction result enriched with a model-generated summary."""

    summary: Optional[str] = None
    model: Optional[str] = None  # None when the summary is a canned fallback

    @classmethod
    def from_extraction(
        cls,
        result: ExtractionResult,
        summary: Optional[str] = None,
        model: Optional[str] = None,
    ) -> "AnalysisResult":
        return cls(
            success=result.success,
            text=result.text,
            file_format=result.file_format,
            confidence=result.confidence,
            metadata=result.metadata,
            error=result.error,
            error_kind=result.error_kind,
            summary=summary,
            model=model,
        )
