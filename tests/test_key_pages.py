import asyncio

from signage_takeoff.key_pages import find_sheet_pages, identify_key_pages, resolve_key_pages
from signage_takeoff.models import KeyPage, KeyPageCategory, SourceImage
from signage_takeoff.orchestrator import TakeoffAnalyzer

from conftest import StubClient, image_bytes, ok


def _pages(count, **overrides):
    texts = ["general notes"] * count
    for index, text in overrides.items():
        texts[int(index.lstrip("p"))] = text
    return texts


def _sheet(label="A-101", category=KeyPageCategory.FLOOR_PLAN):
    return KeyPage(sheet_number=label, description="First floor plan", category=category)


def test_only_listed_in_index_page_has_no_page_index():
    texts = _pages(50, p0="DRAWING INDEX A-101 FIRST FLOOR PLAN A-501 SIGNAGE DETAILS")
    resolved = resolve_key_pages([_sheet()], texts, scan_limit=3)
    assert len(resolved) == 1
    assert resolved[0].page_index is None


def test_last_match_wins():
    texts = _pages(50, p0="DRAWING INDEX A-101 FIRST FLOOR PLAN", p37="SHEET A 101 FIRST FLOOR PLAN")
    resolved = resolve_key_pages([_sheet()], texts, scan_limit=3)
    assert resolved[0].page_index == 37
    assert resolved[0].category is KeyPageCategory.FLOOR_PLAN


def test_short_document_keeps_match_inside_scan_range():
    texts = ["cover", "A-101 FLOOR PLAN"]
    resolved = resolve_key_pages([_sheet()], texts, scan_limit=3)
    assert resolved[0].page_index == 1


def test_unmatched_sheets_are_dropped():
    texts = _pages(10, p5="A-101")
    resolved = resolve_key_pages([_sheet("A-101"), _sheet("G-001")], texts)
    assert [p.sheet_number for p in resolved] == ["A-101"]


def test_label_normalization():
    texts = ["", "sheet a.101", "A 101", "A101"]
    assert find_sheet_pages("A-101", texts) == [1, 2, 3]
    assert find_sheet_pages(" - ", texts) == []


def test_identify_key_pages_end_to_end():
    payload = {"keyPages": [
        {"sheetNumber": "A-501", "description": "Signage details", "category": "Detail"},
        {"sheetNumber": "A-101", "description": "First floor plan", "category": "Floor Plan"},
        {"sheetNumber": "", "description": "blank", "category": "General"},
    ]}
    client = StubClient(ok(payload))
    analyzer = TakeoffAnalyzer(client)
    images = [SourceImage(image_bytes(100, 100)) for _ in range(3)]
    texts = _pages(20, p1="INDEX A-101 A-501", p8="A-101", p19="A-501 SIGN TYPES")

    resolved = asyncio.run(identify_key_pages(analyzer, images, texts))

    assert [(p.sheet_number, p.page_index) for p in resolved] == [("A-501", 19), ("A-101", 8)]
    assert resolved[0].category is KeyPageCategory.DETAIL
    assert len(client.requests[0].images) == 3


def test_identify_key_pages_without_images():
    client = StubClient()
    assert asyncio.run(identify_key_pages(TakeoffAnalyzer(client), [], ["A-101"])) == []
    assert client.requests == []
