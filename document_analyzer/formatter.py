"""Markdown rendering of extraction and analysis results for chat display."""

from typing import Optional

from document_analyzer.models import AnalysisResult, ExtractionResult, FileFormat

ANALYSIS_PREVIEW_CHARS = 500

MANUAL_FALLBACK = (
    "**What you can do:**\n"
    "- Describe the content manually\n"
    "- Ask specific questions about the file\n"
    "- Paste the text content directly"
)

FOLLOW_UPS = (
    "**What I can help with:**\n"
    "- Explain any concepts from this content\n"
    "- Answer questions about the information\n"
    "- Provide additional context or examples\n"
    "- Help with related topics or assignments"
)


def _failure(title: str, error: Optional[str]) -> str:
    return f"**{title}**\n\n**Error:** {error or 'Unknown error'}\n\n{MANUAL_FALLBACK}"


def _metadata_lines(result: ExtractionResult) -> list[str]:
    lines = []
    metadata = result.metadata
    if metadata and metadata.word_count:
        lines.append(f"- **Word Count:** {metadata.word_count}")
    if metadata and metadata.page_count:
        lines.append(f"- **Pages:** {metadata.page_count}")
    if result.confidence is not None and result.file_format is FileFormat.IMAGE:
        lines.append(f"- **OCR Confidence:** {result.confidence}%")
    lines.append(f"- **File Type:** {result.file_format.value.upper()}")
    return lines


def format_extraction(result: ExtractionResult, file_name: str) -> str:
    """Chat message for an extraction result; failures quote the error verbatim."""
    if not result.success:
        return _failure(f"Text extraction failed for {file_name}", result.error)

    return "\n\n".join(
        [
            f"**Text extracted from {file_name}**",
            "\n".join(_metadata_lines(result)),
            "---",
            f"**Extracted Content:**\n\n{result.text}",
            "---",
            FOLLOW_UPS,
        ]
    )


def format_analysis(result: AnalysisResult, file_name: str) -> str:
    if not result.success:
        return _failure(f"Document analysis failed for {file_name}", result.error)

    sections = [f"**Analysis of {file_name}**"]
    if result.summary:
        sections.append(result.summary)
    sections.append("---")
    sections.append("\n".join(_metadata_lines(result)))

    preview = result.text
    if len(preview) > ANALYSIS_PREVIEW_CHARS:
        preview = preview[:ANALYSIS_PREVIEW_CHARS].rstrip() + "..."
    sections.append(f"**Content Preview:**\n\n{preview}")
    return "\n\n".join(sections)
