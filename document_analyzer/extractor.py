"""Per-format text extractors.

Each public ``extract_*`` method takes the raw upload bytes and returns an
``ExtractionResult``. Library failures and empty output are converted into
failure results here; nothing raises past this module.
"""

import io
import os
import re
import shutil
import subprocess
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Optional

import fitz  # PyMuPDF
import pymupdf4llm
import pytesseract
from docx import Document
from PIL import Image, ImageEnhance, ImageOps

from document_analyzer.config import ExtractorConfig
from document_analyzer.exceptions import EmptyExtractionError, ExtractionError
from document_analyzer.logger import Timer, get_logger
from document_analyzer.models import ErrorKind, ExtractionResult, FileFormat

logger = get_logger(__name__)

OLE_SIGNATURE = b"\xd0\xcf\x11\xe0"  # Legacy Office container (.doc/.xls)

BLANK_LINES = re.compile(r"\n\s*\n")

IMAGE_EMPTY_MESSAGE = (
    "No text could be extracted from this image. The image might be too blurry, "
    "have poor contrast, or contain no readable text."
)
PDF_EMPTY_MESSAGE = "No text content found in the PDF. This might be a scanned PDF."
WORD_EMPTY_MESSAGE = "No text content found in the Word document"
EXCEL_EMPTY_MESSAGE = "No data found in the Excel file"
TEXT_EMPTY_MESSAGE = "File appears to be empty"

Extract = Callable[[bytes, str], ExtractionResult]


class DocumentExtractor:
    """Text extraction for images, PDFs, Word, Excel and plain text files.

    Tesseract handles images, PyMuPDF the PDF text layer, python-docx Word
    documents, openpyxl/xlrd workbooks.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None):
        self.config = config or ExtractorConfig()
        self.ocr = self.config.ocr_config

        if self.ocr.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.ocr.tesseract_cmd
        if self.ocr.tessdata_prefix:
            os.environ["TESSDATA_PREFIX"] = self.ocr.tessdata_prefix

        logger.debug(
            "Initializing DocumentExtractor",
            extra_data={
                "tesseract_cmd": self.ocr.tesseract_cmd,
                "languages": self.ocr.languages,
                "pdf_markdown": self.config.pdf_markdown,
                "pdf_ocr_fallback": self.ocr.pdf_ocr_fallback,
            },
        )

    def extract_image(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        return self._run(FileFormat.IMAGE, "OCR failed", self._extract_image, file_bytes, file_name)

    def extract_pdf(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        return self._run(FileFormat.PDF, "PDF processing failed", self._extract_pdf, file_bytes, file_name)

    def extract_word(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        return self._run(
            FileFormat.WORD, "Word document processing failed", self._extract_word, file_bytes, file_name
        )

    def extract_excel(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        return self._run(
            FileFormat.EXCEL, "Excel file processing failed", self._extract_excel, file_bytes, file_name
        )

    def extract_text(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        return self._run(
            FileFormat.TEXT, "Text file processing failed", self._extract_text, file_bytes, file_name
        )

    def _run(
        self,
        file_format: FileFormat,
        failure_prefix: str,
        extract: Extract,
        file_bytes: bytes,
        file_name: str,
    ) -> ExtractionResult:
        logger.debug(
            "Starting extraction",
            extra_data={
                "file_name": file_name,
                "file_format": file_format.value,
                "file_size_bytes": len(file_bytes),
            },
        )

        with Timer(f"{file_format.value}_extraction") as timer:
            try:
                result = extract(file_bytes, file_name)
            except EmptyExtractionError as exc:
                logger.warning(
                    "No text content extracted",
                    extra_data={
                        "file_name": file_name,
                        "file_format": file_format.value,
                        "file_size_bytes": len(file_bytes),
                    },
                )
                return ExtractionResult.failure(str(exc), file_format, exc.kind)
            except Exception as exc:
                logger.error(
                    "Extraction failed",
                    extra_data={
                        "file_name": file_name,
                        "file_format": file_format.value,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                    },
                    exc_info=True,
                )
                return ExtractionResult.failure(
                    f"{failure_prefix}: {exc}", file_format, ErrorKind.LIBRARY_ERROR
                )

        logger.info(
            "Extraction completed",
            extra_data={
                "file_name": file_name,
                "file_format": file_format.value,
                "characters_extracted": len(result.text),
                "word_count": result.metadata.word_count if result.metadata else 0,
                "extraction_time_ms": timer.get_elapsed_ms(),
            },
        )
        return result

    # Images

    def _extract_image(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        image = Image.open(io.BytesIO(file_bytes))
        image.load()

        logger.debug(
            "Starting OCR on image",
            extra_data={
                "file_name": file_name,
                "image_format": image.format,
                "image_dimensions": f"{image.size[0]}x{image.size[1]}",
            },
        )

        if self.ocr.enable_image_preprocessing:
            image = self._preprocess(image)

        data = pytesseract.image_to_data(
            image,
            lang=self.ocr.languages,
            config=f"--psm {self.ocr.psm_mode}",
            output_type=pytesseract.Output.DICT,
        )
        text, confidence = assemble_ocr_data(data)

        cleaned = BLANK_LINES.sub("\n", text.strip()).strip()
        if not cleaned:
            raise EmptyExtractionError(IMAGE_EMPTY_MESSAGE)

        return ExtractionResult.ok(cleaned, FileFormat.IMAGE, confidence=confidence)

    def _preprocess(self, image: Image.Image) -> Image.Image:
        """Grayscale plus contrast boost; helps with phone photos of pages."""
        image = ImageOps.grayscale(image)
        if self.ocr.contrast_enhancement != 1.0:
            image = ImageEnhance.Contrast(image).enhance(self.ocr.contrast_enhancement)
        return image

    # PDF

    def _extract_pdf(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        with fitz.open(stream=file_bytes, filetype="pdf") as document:
            page_count = document.page_count

            if self.config.pdf_markdown:
                text = pymupdf4llm.to_markdown(
                    document,
                    table_strategy=self.config.table_strategy,
                    fontsize_limit=self.config.fontsize_limit,
                    force_text=True,
                    write_images=False,
                    ignore_images=True,
                )
            else:
                text = "\n".join(page.get_text("text") for page in document)
            text = text.strip()

            logger.debug(
                "PDF text layer read",
                extra_data={
                    "file_name": file_name,
                    "page_count": page_count,
                    "characters_extracted": len(text),
                },
            )

            if not text and self.ocr.pdf_ocr_fallback:
                logger.info(
                    "Empty text layer, running OCR on PDF pages",
                    extra_data={"file_name": file_name, "page_count": page_count},
                )
                text = self._ocr_pdf(document, file_name)

        if not text:
            raise EmptyExtractionError(PDF_EMPTY_MESSAGE)

        return ExtractionResult.ok(text, FileFormat.PDF, page_count=page_count)

    def _ocr_pdf(self, document: "fitz.Document", file_name: str) -> str:
        """OCR every page of ``document``, pages rendered serially and recognized in parallel."""
        # PyMuPDF documents are not thread-safe; only Tesseract runs in workers
        rendered = [page.get_pixmap(dpi=self.ocr.dpi).tobytes("png") for page in document]

        page_texts: dict[int, str] = {}
        with ThreadPoolExecutor(max_workers=self.ocr.max_workers) as executor:
            future_to_page = {
                executor.submit(self._ocr_page, png, page_num, file_name): page_num
                for page_num, png in enumerate(rendered)
            }
            for future in as_completed(future_to_page):
                page_texts[future_to_page[future]] = future.result()

        return "\n\n".join(
            page_texts[i] for i in range(len(rendered)) if page_texts[i]
        ).strip()

    def _ocr_page(self, png: bytes, page_num: int, file_name: str) -> str:
        try:
            with Timer("pdf_page_ocr") as timer:
                text = pytesseract.image_to_string(
                    Image.open(io.BytesIO(png)),
                    lang=self.ocr.languages,
                    config=f"--psm {self.ocr.psm_mode}",
                )
        except Exception as exc:
            logger.error(
                f"OCR failed for page {page_num + 1}",
                extra_data={
                    "file_name": file_name,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return ""

        logger.debug(
            f"OCR completed for page {page_num + 1}",
            extra_data={
                "file_name": file_name,
                "characters_extracted": len(text.strip()),
                "ocr_time_ms": timer.get_elapsed_ms(),
            },
        )
        return text.strip()

    # Word

    def _extract_word(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        if file_bytes.startswith(OLE_SIGNATURE):
            text = self._convert_legacy_doc(file_bytes, file_name)
        else:
            text = self._read_docx(file_bytes)

        text = text.strip()
        if not text:
            raise EmptyExtractionError(WORD_EMPTY_MESSAGE)

        return ExtractionResult.ok(text, FileFormat.WORD)

    @staticmethod
    def _read_docx(file_bytes: bytes) -> str:
        doc = Document(io.BytesIO(file_bytes))

        parts = [para.text.strip() for para in doc.paragraphs if para.text.strip()]

        for table in doc.tables:
            rows = []
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    rows.append("\t".join(cells))
            if rows:
                parts.append("\n".join(rows))

        return "\n\n".join(parts)

    @staticmethod
    def _convert_legacy_doc(file_bytes: bytes, file_name: str) -> str:
        """Extract text from legacy .doc using system converters if available."""
        with tempfile.TemporaryDirectory() as tmp_dir:
            source = Path(tmp_dir) / "document.doc"
            source.write_bytes(file_bytes)

            # macOS
            if shutil.which("textutil"):
                result = subprocess.run(
                    ["textutil", "-convert", "txt", str(source), "-stdout"],
                    capture_output=True,
                    text=True,
                )
                if result.returncode == 0 and result.stdout.strip():
                    logger.debug("DOC converted via textutil", extra_data={"file_name": file_name})
                    return result.stdout

            soffice = shutil.which("soffice") or shutil.which("libreoffice")
            if soffice:
                conversion = subprocess.run(
                    [soffice, "--headless", "--convert-to", "txt:Text", str(source), "--outdir", tmp_dir],
                    capture_output=True,
                    text=True,
                )
                out_path = Path(tmp_dir) / "document.txt"
                if conversion.returncode == 0 and out_path.exists():
                    logger.debug("DOC converted via soffice", extra_data={"file_name": file_name})
                    return out_path.read_text(encoding="utf-8", errors="ignore")

        raise ExtractionError(
            "legacy .doc files need textutil (macOS) or LibreOffice; convert to DOCX instead"
        )

    # Excel

    def _extract_excel(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        if file_bytes.startswith(OLE_SIGNATURE):
            sheets = self._read_xls(file_bytes)
        else:
            sheets = self._read_xlsx(file_bytes)

        blocks = []
        for sheet_name, rows in sheets:
            sheet_text = "\n".join(rows).strip()
            if sheet_text:
                blocks.append(f"--- Sheet: {sheet_name} ---\n{sheet_text}")

        logger.debug(
            "Workbook read",
            extra_data={
                "file_name": file_name,
                "sheet_count": len(sheets),
                "non_empty_sheets": len(blocks),
            },
        )

        text = "\n\n".join(blocks)
        if not text.strip():
            raise EmptyExtractionError(EXCEL_EMPTY_MESSAGE)

        return ExtractionResult.ok(text, FileFormat.EXCEL)

    @staticmethod
    def _read_xlsx(file_bytes: bytes) -> list[tuple[str, list[str]]]:
        from openpyxl import load_workbook

        workbook = load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
        try:
            return [
                (sheet.title, [line for line in map(format_row, sheet.iter_rows(values_only=True)) if line])
                for sheet in workbook.worksheets
            ]
        finally:
            workbook.close()

    @staticmethod
    def _read_xls(file_bytes: bytes) -> list[tuple[str, list[str]]]:
        import xlrd

        workbook = xlrd.open_workbook(file_contents=file_bytes)
        return [
            (
                sheet.name,
                [line for line in (format_row(sheet.row_values(i)) for i in range(sheet.nrows)) if line],
            )
            for sheet in workbook.sheets()
        ]

    # Plain text

    def _extract_text(self, file_bytes: bytes, file_name: str) -> ExtractionResult:
        text = file_bytes.decode("utf-8-sig", errors="replace").strip()
        if not text:
            raise EmptyExtractionError(TEXT_EMPTY_MESSAGE)
        return ExtractionResult.ok(text, FileFormat.TEXT)


def assemble_ocr_data(data: dict[str, list[Any]]) -> tuple[str, int]:
    """Rebuild line-broken text and mean word confidence from ``image_to_data`` output."""
    lines: list[str] = []
    confidences: list[float] = []
    current_line = None

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        conf = float(data["conf"][i])
        if not word or conf < 0:
            continue

        confidences.append(conf)
        line_key = (
            data["page_num"][i],
            data["block_num"][i],
            data["par_num"][i],
            data["line_num"][i],
        )
        if line_key != current_line:
            lines.append(word)
            current_line = line_key
        else:
            lines[-1] = f"{lines[-1]} {word}"

    confidence = round(sum(confidences) / len(confidences)) if confidences else 0
    return "\n".join(lines), confidence


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime) and value.time() == datetime.min.time():
        return value.date().isoformat()
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value).strip()


def format_row(values) -> str:
    """Tab-separated row with trailing empty cells dropped."""
    cells = [format_cell(value) for value in values]
    while cells and not cells[-1]:
        cells.pop()
    return "\t".join(cells)
