import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import List, Optional

from .config import KEY_PAGE_RENDER_SCALE, KEY_PAGE_SCAN_LIMIT, REFERENCE_RENDER_SCALE, TARGET_RENDER_SCALE
from .errors import AnalysisCancelled
from .key_pages import identify_key_pages
from .models import ExtractionResult, KeyPage, ProjectSettings, SourceImage
from .orchestrator import TakeoffAnalyzer
from .pdf_pages import extract_pdf_text_index, get_page_text, parse_page_input, render_page

logger = logging.getLogger(__name__)


def inject_page_number(result: ExtractionResult, page_index: int):
    for item in result.takeoff:
        item.page_number = page_index + 1


async def analyze_pdf_page(
    analyzer: TakeoffAnalyzer,
    doc,
    page_index: int,
    file_name: str = "drawing.pdf",
    reference_pages: str = "",
    settings: Optional[ProjectSettings] = None,
    cancel: Optional[asyncio.Event] = None,
) -> ExtractionResult:
    """Analyse one PDF page with optional reference pages ("1, 3-5", 1-based)."""
    text_layer = await asyncio.to_thread(get_page_text, doc, page_index)
    target = SourceImage(await asyncio.to_thread(render_page, doc, page_index, TARGET_RENDER_SCALE))

    references = []
    for page_number in parse_page_input(reference_pages, len(doc)):
        index = page_number - 1
        if index == page_index:
            continue
        data = await asyncio.to_thread(render_page, doc, index, REFERENCE_RENDER_SCALE)
        references.append(SourceImage(data))
    logger.info("Analysing page %s with %s reference page(s)", page_index + 1, len(references))

    result = await analyzer.analyze_drawing(
        target,
        references,
        settings=settings,
        file_name=f"{file_name} (Page {page_index + 1})",
        text_layer=text_layer,
        cancel=cancel,
    )
    inject_page_number(result, page_index)
    return result


async def analyze_image_file(
    analyzer: TakeoffAnalyzer,
    path,
    settings: Optional[ProjectSettings] = None,
    cancel: Optional[asyncio.Event] = None,
) -> ExtractionResult:
    path = Path(path)
    mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    target = SourceImage(path.read_bytes(), mime_type)
    result = await analyzer.analyze_drawing(target, [], settings=settings, file_name=path.name, cancel=cancel)
    inject_page_number(result, 0)
    return result


async def index_document(
    analyzer: TakeoffAnalyzer,
    doc,
    cancel: Optional[asyncio.Event] = None,
    scan_limit: int = KEY_PAGE_SCAN_LIMIT,
) -> List[KeyPage]:
    """Background key-page pass; a failure only costs the index, never the document."""
    try:
        page_texts = await asyncio.to_thread(extract_pdf_text_index, doc)
        images = []
        for i in range(min(scan_limit, len(doc))):
            images.append(SourceImage(await asyncio.to_thread(render_page, doc, i, KEY_PAGE_RENDER_SCALE)))
        return await identify_key_pages(analyzer, images, page_texts, cancel=cancel, scan_limit=scan_limit)
    except AnalysisCancelled:
        raise
    except Exception as e:
        logger.warning("Key page detection failed: %s", e)
        return []
