"""Tests for the per-format extractors against real in-memory documents."""

from unittest.mock import MagicMock, patch

import pytest
import pytesseract

from conftest import make_docx, make_pdf, make_xlsx, ocr_data
from document_analyzer.config import ExtractorConfig, OCRConfig
from document_analyzer.extractor import (
    OLE_SIGNATURE,
    DocumentExtractor,
    assemble_ocr_data,
    format_row,
)
from document_analyzer.models import ErrorKind, FileFormat


@pytest.fixture
def extractor():
    return DocumentExtractor()


class TestImageExtraction:
    def test_ocr_text_and_confidence(self, extractor, png_bytes):
        data = ocr_data(["Midterm review", "Chapter 3"], conf=87.6)
        with patch("document_analyzer.extractor.pytesseract.image_to_data", return_value=data) as ocr:
            result = extractor.extract_image(png_bytes, "board.png")

        assert result.success
        assert result.file_format is FileFormat.IMAGE
        assert result.text == "Midterm review\nChapter 3"
        assert result.confidence == 88
        assert result.metadata.word_count == 4
        assert ocr.call_args.kwargs["lang"] == "eng"

    def test_no_recognized_words_is_a_failure(self, extractor, png_bytes):
        with patch("document_analyzer.extractor.pytesseract.image_to_data", return_value=ocr_data([])):
            result = extractor.extract_image(png_bytes, "blank.png")

        assert not result.success
        assert result.error_kind is ErrorKind.EMPTY_EXTRACTION
        assert result.error.startswith("No text could be extracted from this image")

    def test_tesseract_error_is_reported(self, extractor, png_bytes):
        with patch(
            "document_analyzer.extractor.pytesseract.image_to_data",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            result = extractor.extract_image(png_bytes, "board.png")

        assert not result.success
        assert result.error_kind is ErrorKind.LIBRARY_ERROR
        assert result.error.startswith("OCR failed: ")

    def test_unreadable_image_is_reported(self, extractor):
        result = extractor.extract_image(b"definitely not a png", "broken.png")

        assert not result.success
        assert result.error.startswith("OCR failed: ")

    def test_preprocessing_converts_to_grayscale(self, png_bytes):
        extractor = DocumentExtractor(ExtractorConfig(OCRConfig(enable_image_preprocessing=True)))
        with patch(
            "document_analyzer.extractor.pytesseract.image_to_data",
            return_value=ocr_data(["ok"]),
        ) as ocr:
            extractor.extract_image(png_bytes, "photo.png")

        assert ocr.call_args.args[0].mode == "L"


def test_assemble_ocr_data_skips_structural_rows():
    data = ocr_data(["first line", "second"], conf=90)
    data["text"].append("   ")
    data["conf"].append(95)
    for key in ("page_num", "block_num", "par_num", "line_num"):
        data[key].append(1)

    text, confidence = assemble_ocr_data(data)

    assert text == "first line\nsecond"
    assert confidence == 90


def test_assemble_ocr_data_without_words():
    assert assemble_ocr_data({"text": [], "conf": []}) == ("", 0)


class TestPdfExtraction:
    def test_text_layer(self, extractor, text_pdf):
        result = extractor.extract_pdf(text_pdf, "week1.pdf")

        assert result.success
        assert "Week one covers sorting algorithms" in result.text
        assert result.metadata.page_count == 1
        assert result.metadata.word_count == len(result.text.split())

    def test_multiple_pages(self, extractor):
        result = extractor.extract_pdf(make_pdf("Page one", "Page two", "Page three"), "notes.pdf")

        assert result.success
        assert result.metadata.page_count == 3
        assert result.metadata.word_count == len(result.text.split()) == 6

    def test_empty_text_layer_is_treated_as_scan(self, extractor, scanned_pdf):
        with patch("document_analyzer.extractor.pytesseract.image_to_string") as ocr:
            result = extractor.extract_pdf(scanned_pdf, "scan.pdf")

        assert not result.success
        assert "scanned" in result.error
        assert result.error_kind is ErrorKind.EMPTY_EXTRACTION
        ocr.assert_not_called()

    def test_ocr_fallback_when_enabled(self, scanned_pdf):
        extractor = DocumentExtractor(
            ExtractorConfig(OCRConfig(pdf_ocr_fallback=True, dpi=50, max_workers=2))
        )
        with patch(
            "document_analyzer.extractor.pytesseract.image_to_string",
            return_value="  Handwritten notes \n",
        ) as ocr:
            result = extractor.extract_pdf(scanned_pdf, "scan.pdf")

        assert result.success
        assert result.text == "Handwritten notes\n\nHandwritten notes"
        assert result.metadata.page_count == 2
        assert ocr.call_count == 2

    def test_markdown_mode_uses_pymupdf4llm(self, text_pdf):
        extractor = DocumentExtractor(ExtractorConfig(pdf_markdown=True))
        with patch(
            "document_analyzer.extractor.pymupdf4llm.to_markdown",
            return_value="# Week one\n\nSorting algorithms\n",
        ) as to_markdown:
            result = extractor.extract_pdf(text_pdf, "week1.pdf")

        assert result.text == "# Week one\n\nSorting algorithms"
        assert to_markdown.call_args.kwargs["table_strategy"] == "lines_strict"

    def test_corrupt_pdf(self, extractor):
        result = extractor.extract_pdf(b"%PDF-1.4 garbage", "broken.pdf")

        assert not result.success


class TestWordExtraction:
    def test_paragraphs_and_tables(self, extractor):
        docx = make_docx(
            ["Syllabus", "", "Office hours on Monday"],
            table=[["Week", "Topic"], ["1", "Intro"]],
        )
        result = extractor.extract_word(docx, "syllabus.docx")

        assert result.success
        assert result.text == "Syllabus\n\nOffice hours on Monday\n\nWeek\tTopic\n1\tIntro"
        assert result.metadata.word_count == 9

    def test_document_without_text_runs(self, extractor):
        result = extractor.extract_word(make_docx(), "empty.docx")

        assert not result.success
        assert result.error == "No text content found in the Word document"

    def test_not_a_zip(self, extractor):
        result = extractor.extract_word(b"plain bytes", "fake.docx")

        assert not result.success
        assert result.error.startswith("Word document processing failed: ")

    def test_legacy_doc_without_converters(self, extractor):
        with patch("document_analyzer.extractor.shutil.which", return_value=None):
            result = extractor.extract_word(OLE_SIGNATURE + b"\x00" * 64, "old.doc")

        assert not result.success
        assert "LibreOffice" in result.error


class TestExcelExtraction:
    def test_sheets_become_tab_separated_blocks(self, extractor):
        xlsx = make_xlsx(
            {
                "Grades": [["Name", "Score"], ["Ada", 95], ["Linus", 87.0]],
                "Empty": [],
                "Notes": [["Curve applied", None, None]],
            }
        )
        result = extractor.extract_excel(xlsx, "grades.xlsx")

        assert result.success
        assert result.text == (
            "--- Sheet: Grades ---\nName\tScore\nAda\t95\nLinus\t87"
            "\n\n--- Sheet: Notes ---\nCurve applied"
        )

    def test_empty_workbook(self, extractor):
        result = extractor.extract_excel(make_xlsx({"Sheet1": []}), "empty.xlsx")

        assert not result.success
        assert result.error == "No data found in the Excel file"

    def test_legacy_xls_goes_through_xlrd(self, extractor):
        sheet = MagicMock(nrows=2)
        sheet.name = "Budget"
        sheet.row_values.side_effect = [["Item", "Cost"], ["Books", 120.0]]
        workbook = MagicMock()
        workbook.sheets.return_value = [sheet]

        with patch("xlrd.open_workbook", return_value=workbook) as open_workbook:
            result = extractor.extract_excel(OLE_SIGNATURE + b"rest", "budget.xls")

        assert result.success
        assert result.text == "--- Sheet: Budget ---\nItem\tCost\nBooks\t120"
        assert open_workbook.call_args.kwargs["file_contents"].startswith(OLE_SIGNATURE)

    def test_corrupt_workbook(self, extractor):
        result = extractor.extract_excel(b"PK\x03\x04 not really", "broken.xlsx")

        assert not result.success
        assert result.error.startswith("Excel file processing failed: ")


def test_format_row_drops_trailing_blanks():
    assert format_row(["a", None, 3.0, None, None]) == "a\t\t3"
    assert format_row([None, None]) == ""


class TestTextExtraction:
    def test_hello_world(self, extractor):
        result = extractor.extract_text(b"Hello World", "notes.txt")

        assert result.success
        assert result.text == "Hello World"
        assert result.metadata.word_count == 2

    def test_zero_bytes(self, extractor):
        result = extractor.extract_text(b"", "empty.txt")

        assert not result.success
        assert result.error == "File appears to be empty"

    def test_whitespace_only(self, extractor):
        assert not extractor.extract_text(b" \n\t \n", "blank.txt").success

    def test_bom_and_invalid_bytes(self, extractor):
        result = extractor.extract_text(b"\xef\xbb\xbfCaf\xc3\xa9 \xff menu", "menu.txt")

        assert result.success
        assert result.text == "Caf\u00e9 \ufffd menu"
