"""Text extraction and AI analysis for uploaded course documents."""

from document_analyzer.analysis import AnalysisClient, AnalysisOutcome
from document_analyzer.config import (
    AnalysisConfig,
    ExtractorConfig,
    OCRConfig,
    SummaryCacheConfig,
)
from document_analyzer.detector import FormatDetector
from document_analyzer.exceptions import (
    DocumentAnalyzerError,
    EmptyExtractionError,
    ExtractionError,
)
from document_analyzer.extractor import DocumentExtractor
from document_analyzer.formatter import format_analysis, format_extraction
from document_analyzer.handler import DocumentHandler
from document_analyzer.models import (
    AnalysisResult,
    ErrorKind,
    ExtractionMetadata,
    ExtractionResult,
    FileFormat,
    UploadedFile,
)
from document_analyzer.parser import analyze_document, extract_document
from document_analyzer.summaries import SummaryCache, SummaryRefresher, room_key

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "extract_document",
    "analyze_document",
    "format_extraction",
    "format_analysis",
    # Core classes
    "DocumentHandler",
    "FormatDetector",
    "DocumentExtractor",
    "AnalysisClient",
    "SummaryCache",
    "SummaryRefresher",
    "room_key",
    # Data models
    "UploadedFile",
    "FileFormat",
    "ErrorKind",
    "ExtractionMetadata",
    "ExtractionResult",
    "AnalysisResult",
    "AnalysisOutcome",
    # Configuration
    "OCRConfig",
    "ExtractorConfig",
    "AnalysisConfig",
    "SummaryCacheConfig",
    # Exceptions
    "DocumentAnalyzerError",
    "EmptyExtractionError",
    "ExtractionError",
]
