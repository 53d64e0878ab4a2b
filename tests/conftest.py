"""Shared fixtures: small real documents built in memory."""

import io

import fitz
import httpx
import pytest
from docx import Document
from openpyxl import Workbook
from PIL import Image

from document_analyzer.analysis import AnalysisClient
from document_analyzer.config import AnalysisConfig

OLLAMA_URL = "http://ollama.test"


def make_pdf(*page_texts: str) -> bytes:
    """PDF with one page per entry; empty strings give pages with no text layer."""
    document = fitz.open()
    for text in page_texts:
        page = document.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = document.tobytes()
    document.close()
    return data


def make_docx(paragraphs=(), table=None) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table:
        docx_table = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                docx_table.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def make_xlsx(sheets: dict) -> bytes:
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        sheet = workbook.create_sheet(name)
        for row in rows:
            sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def make_png() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (120, 40), "white").save(buffer, format="PNG")
    return buffer.getvalue()


def ocr_data(lines, conf=91):
    """Fake ``pytesseract.image_to_data`` output with one word row per token."""
    data = {key: [] for key in ("page_num", "block_num", "par_num", "line_num", "conf", "text")}

    def add(line_num, text, word_conf):
        data["page_num"].append(1)
        data["block_num"].append(1)
        data["par_num"].append(1)
        data["line_num"].append(line_num)
        data["conf"].append(word_conf)
        data["text"].append(text)

    add(0, "", -1)  # page/block rows carry no text
    for line_num, line in enumerate(lines, start=1):
        for word in line.split():
            add(line_num, word, conf)
    return data


def make_analysis_client(handler, **config_kwargs) -> AnalysisClient:
    http = httpx.Client(base_url=OLLAMA_URL, transport=httpx.MockTransport(handler))
    return AnalysisClient(AnalysisConfig(base_url=OLLAMA_URL, **config_kwargs), http_client=http)


def ollama_handler(models=("gemma2:2b",), response="Summary of the document", status=200):
    """MockTransport handler emulating Ollama; records generate payloads."""
    calls = []

    def handle(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": name} for name in models]})
        if request.url.path == "/api/generate":
            calls.append(request)
            if status != 200:
                return httpx.Response(status, json={"error": "model failed"})
            return httpx.Response(200, json={"model": "x", "response": response, "done": True})
        return httpx.Response(404)

    handle.calls = calls
    return handle


@pytest.fixture
def text_pdf():
    return make_pdf("Week one covers sorting algorithms")


@pytest.fixture
def scanned_pdf():
    return make_pdf("", "")


@pytest.fixture
def png_bytes():
    return make_png()
