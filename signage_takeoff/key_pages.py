import asyncio
import logging
import re
from typing import List, Optional, Sequence

from .config import KEY_PAGE_SCAN_LIMIT
from .gemini_client import ModelImage, ModelRequest
from .loader import load_key_page_candidates
from .models import KeyPage, SourceImage
from .prompt import KEY_PAGES_INSTRUCTION, KEY_PAGES_SCHEMA, build_key_pages_prompt

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s\-.]")


def normalize_sheet_label(value: str) -> str:
    return _SEPARATORS.sub("", (value or "").lower())


def find_sheet_pages(sheet_number: str, page_texts: Sequence[str]) -> List[int]:
    """All page indices whose text mentions the sheet label, in document order."""
    label = normalize_sheet_label(sheet_number)
    if not label:
        return []
    return [i for i, text in enumerate(page_texts) if label in normalize_sheet_label(text)]


def resolve_key_pages(candidates: Sequence[KeyPage], page_texts: Sequence[str], scan_limit: int = KEY_PAGE_SCAN_LIMIT) -> List[KeyPage]:
    """
    Map discovered key sheets to physical page indices.

    Drawing indices list a sheet before the sheet itself appears, so the last
    match wins. A last match that still lies inside the discovery scan range of
    a longer document is only the index page: the sheet is kept without a page.
    Sheets never mentioned in the text are dropped.
    """
    resolved = []
    page_count = len(page_texts)

    for candidate in candidates:
        matches = find_sheet_pages(candidate.sheet_number, page_texts)
        if not matches:
            logger.debug("Key sheet %s not found in document text", candidate.sheet_number)
            continue

        page_index: Optional[int] = matches[-1]
        if page_index < scan_limit and page_count > scan_limit:
            logger.info("Key sheet %s only found in the drawing index", candidate.sheet_number)
            page_index = None

        resolved.append(
            KeyPage(
                sheet_number=candidate.sheet_number,
                description=candidate.description,
                category=candidate.category,
                page_index=page_index,
            )
        )
    return resolved


async def identify_key_pages(
    analyzer,
    images: Sequence[SourceImage],
    page_texts: Sequence[str],
    cancel: Optional[asyncio.Event] = None,
    scan_limit: int = KEY_PAGE_SCAN_LIMIT,
) -> List[KeyPage]:
    """Ask the model for key sheets on the first pages, then resolve their pages."""
    if not images:
        return []

    request = ModelRequest(
        images=[ModelImage(data=img.data, mime_type=img.mime_type) for img in images],
        system_instruction=KEY_PAGES_INSTRUCTION,
        prompt=build_key_pages_prompt(len(images)),
        response_schema=KEY_PAGES_SCHEMA,
    )
    payload = await analyzer.generate_json(request, cancel)
    candidates = load_key_page_candidates(payload)
    logger.info("Model proposed %s key sheets", len(candidates))
    return resolve_key_pages(candidates, page_texts, scan_limit=scan_limit)
