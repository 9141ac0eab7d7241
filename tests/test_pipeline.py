import asyncio

import fitz
import pytest

from signage_takeoff.errors import PageRenderError
from signage_takeoff.models import KeyPageCategory
from signage_takeoff.orchestrator import TakeoffAnalyzer
from signage_takeoff.pdf_pages import (
    extract_pdf_text_index,
    get_page_text,
    load_pdf_document,
    parse_page_input,
    render_page,
)
from signage_takeoff.pipeline import analyze_image_file, analyze_pdf_page, index_document

from conftest import StubClient, make_image, ok


@pytest.fixture
def doc():
    document = fitz.open()
    for text in ["DRAWING INDEX A-101 FLOOR PLAN", "NOTES", "SIGN SCHEDULE", "A-101 FIRST FLOOR PLAN", "DETAILS"]:
        page = document.new_page(width=300, height=200)
        page.insert_text((20, 50), text)
    yield document
    document.close()


def test_parse_page_input():
    assert parse_page_input("1, 3-5", 10) == [1, 3, 4, 5]
    assert parse_page_input("5-3, 3, 12, x, 0", 10) == [3, 4, 5]
    assert parse_page_input("", 10) == []


def test_render_and_text(doc):
    data = render_page(doc, 0, scale=1.0)
    assert data[:2] == b"\xff\xd8"
    assert get_page_text(doc, 3) == "A-101 FIRST FLOOR PLAN"
    assert get_page_text(doc, 99) == ""
    assert len(extract_pdf_text_index(doc)) == 5


def test_render_failure_raises(doc):
    with pytest.raises(PageRenderError):
        render_page(doc, 99)


def test_load_pdf_document_from_bytes(doc):
    reopened = load_pdf_document(doc.tobytes())
    assert len(reopened) == 5
    with pytest.raises(PageRenderError):
        load_pdf_document(b"not a pdf")


def test_analyze_pdf_page(doc):
    client = StubClient(ok({"takeoff": [{"sheet": "A-101", "signType": "A1", "quantity": 1}], "catalog": []}))
    result = asyncio.run(analyze_pdf_page(TakeoffAnalyzer(client), doc, 3, "set.pdf", reference_pages="3, 4"))

    request = client.requests[0]
    # page 4 is the target itself and is not sent twice
    assert len(request.images) == 2
    assert "TARGET SHEET (set.pdf (Page 4))" in request.prompt
    assert "A-101 FIRST FLOOR PLAN" in request.prompt
    assert result.takeoff[0].page_number == 4


def test_analyze_image_file(tmp_path):
    path = tmp_path / "sheet.png"
    make_image(300, 200).save(path)
    client = StubClient(ok({"takeoff": [{"sheet": "S1", "signType": "A1"}], "catalog": []}))
    result = asyncio.run(analyze_image_file(TakeoffAnalyzer(client), path))
    assert client.requests[0].images[0].mime_type == "image/png"
    assert result.takeoff[0].page_number == 1


def test_index_document(doc):
    client = StubClient(ok({"keyPages": [{"sheetNumber": "A-101", "description": "Plan", "category": "Floor Plan"}]}))
    pages = asyncio.run(index_document(TakeoffAnalyzer(client), doc))
    assert len(client.requests[0].images) == 3
    assert [(p.sheet_number, p.page_index, p.category) for p in pages] == [("A-101", 3, KeyPageCategory.FLOOR_PLAN)]


def test_index_document_failure_yields_empty(doc):
    client = StubClient(ValueError("API key not valid"))
    assert asyncio.run(index_document(TakeoffAnalyzer(client), doc)) == []
