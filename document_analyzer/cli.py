"""
Command line entry point for document-analyzer.

    document-analyzer extract syllabus.pdf
    document-analyzer analyze notes.docx --question "When is the midterm?"
"""

import argparse
import sys
from dataclasses import replace

from document_analyzer.analysis import AnalysisClient
from document_analyzer.config import AnalysisConfig, ExtractorConfig, OCRConfig
from document_analyzer.formatter import format_analysis, format_extraction
from document_analyzer.handler import DocumentHandler
from document_analyzer.logger import get_logger, set_request_id, setup_logging
from document_analyzer.models import UploadedFile

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="document-analyzer",
        description="Extract text from uploaded documents and summarize it with a local model",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--languages",
        default="eng",
        help="Tesseract languages for images (default: eng)",
    )
    parser.add_argument(
        "--ocr-pdf",
        action="store_true",
        help="OCR PDF pages when the PDF has no text layer",
    )
    parser.add_argument(
        "--mime-type",
        default=None,
        help="Declared MIME type (default: guessed from the file extension)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    extract = commands.add_parser("extract", help="Print the text extracted from a file")
    extract.add_argument("path", help="File to extract")

    analyze = commands.add_parser("analyze", help="Summarize a file or answer a question about it")
    analyze.add_argument("path", help="File to analyze")
    analyze.add_argument("--question", "-q", default=None, help="Question about the document")
    analyze.add_argument(
        "--ollama-url",
        default=None,
        help="Ollama base URL (default: $OLLAMA_BASE_URL or http://localhost:11434)",
    )
    analyze.add_argument("--model", default=None, help="Ollama model to use")

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    set_request_id()

    try:
        upload = UploadedFile.from_path(args.path, args.mime_type)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    config = ExtractorConfig(
        ocr_config=OCRConfig(languages=args.languages, pdf_ocr_fallback=args.ocr_pdf)
    )

    if args.command == "extract":
        result = DocumentHandler(config=config).extract(upload)
        print(format_extraction(result, upload.file_name))
        return 0 if result.success else 1

    analysis_config = AnalysisConfig.from_env()
    if args.ollama_url:
        analysis_config = replace(analysis_config, base_url=args.ollama_url.rstrip("/"))
    if args.model:
        analysis_config = replace(analysis_config, model=args.model)

    with AnalysisClient(analysis_config) as client:
        result = DocumentHandler(config=config, analysis_client=client).analyze(
            upload, args.question
        )
    print(format_analysis(result, upload.file_name))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
