"""File format detection from MIME type and file name."""

import re
from typing import Optional

from document_analyzer.logger import get_logger
from document_analyzer.models import FileFormat

logger = get_logger(__name__)


PDF_SIGNATURE = b"%PDF"
PNG_SIGNATURE = b"\x89PNG"
JPEG_SIGNATURE = b"\xff\xd8\xff"
GIF_SIGNATURES = (b"GIF87a", b"GIF89a")

EXTENSION_PATTERNS = (
    (re.compile(r"\.(jpg|jpeg|png|gif|bmp|tiff|webp)$"), FileFormat.IMAGE),
    (re.compile(r"\.pdf$"), FileFormat.PDF),
    (re.compile(r"\.(doc|docx)$"), FileFormat.WORD),
    (re.compile(r"\.(xls|xlsx)$"), FileFormat.EXCEL),
    (re.compile(r"\.(txt|md|rtf)$"), FileFormat.TEXT),
)


class FormatDetector:
    """Classifies an upload into one of the extractable formats.

    MIME type wins over the file extension; magic bytes are only consulted
    when both say nothing. Unmatched input is ``FileFormat.UNKNOWN``.
    """

    def detect(
        self, mime_type: str, file_name: str, file_bytes: Optional[bytes] = None
    ) -> FileFormat:
        detected = self._from_mime(mime_type or "")
        source = "mime_type"

        if detected is None:
            detected = self._from_extension(file_name or "")
            source = "extension"

        if detected is None and file_bytes:
            detected = self._sniff(file_bytes)
            source = "signature"

        if detected is None:
            logger.warning(
                "Could not detect file format",
                extra_data={"file_name": file_name, "mime_type": mime_type},
            )
            return FileFormat.UNKNOWN

        logger.debug(
            "Detected file format",
            extra_data={
                "file_name": file_name,
                "mime_type": mime_type,
                "file_format": detected.value,
                "source": source,
            },
        )
        return detected

    @staticmethod
    def _from_mime(mime_type: str) -> Optional[FileFormat]:
        mime = mime_type.lower().strip()
        if not mime:
            return None
        if mime.startswith("image/"):
            return FileFormat.IMAGE
        if mime == "application/pdf":
            return FileFormat.PDF
        # OOXML spreadsheets live under "officedocument", so check them first
        if "spreadsheet" in mime or "excel" in mime:
            return FileFormat.EXCEL
        if "presentation" in mime or "powerpoint" in mime:
            return None
        if "word" in mime or "document" in mime:
            return FileFormat.WORD
        if mime.startswith("text/"):
            return FileFormat.TEXT
        return None

    @staticmethod
    def _from_extension(file_name: str) -> Optional[FileFormat]:
        name = file_name.lower().strip()
        for pattern, file_format in EXTENSION_PATTERNS:
            if pattern.search(name):
                return file_format
        return None

    @staticmethod
    def _sniff(file_bytes: bytes) -> Optional[FileFormat]:
        """Detect format from file signature/magic bytes."""
        if file_bytes.startswith(PDF_SIGNATURE):
            return FileFormat.PDF
        if file_bytes.startswith(PNG_SIGNATURE) or file_bytes.startswith(JPEG_SIGNATURE):
            return FileFormat.IMAGE
        if file_bytes.startswith(GIF_SIGNATURES):
            return FileFormat.IMAGE
        return None
