import logging
from typing import List

import fitz  # PyMuPDF

from .config import JPEG_QUALITY
from .errors import PageRenderError

logger = logging.getLogger(__name__)


def load_pdf_document(source):
    """Open a PDF from a path or raw bytes."""
    try:
        if isinstance(source, (bytes, bytearray)):
            return fitz.open(stream=bytes(source), filetype="pdf")
        return fitz.open(source)
    except Exception as e:
        logger.error("Error loading PDF: %s", e)
        raise PageRenderError("Failed to load PDF file. Please ensure it is a valid PDF.") from e


def render_page(doc, page_index: int, scale: float = 2.0) -> bytes:
    """Render a 0-based page to JPEG bytes."""
    try:
        page = doc[page_index]
        pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale))
        return pix.tobytes("jpeg", jpg_quality=JPEG_QUALITY)
    except Exception as e:
        logger.error("Error rendering page %s: %s", page_index, e)
        raise PageRenderError(f"Failed to render page {page_index + 1}") from e


def get_page_text(doc, page_index: int) -> str:
    try:
        return " ".join(doc[page_index].get_text().split())
    except Exception as e:
        logger.warning("Failed to extract text from page %s: %s", page_index, e)
        return ""


def extract_pdf_text_index(doc) -> List[str]:
    return [get_page_text(doc, i) for i in range(len(doc))]


def parse_page_input(value: str, total_pages: int) -> List[int]:
    """Parse "1, 3-5" into sorted unique 1-based page numbers within the document."""
    pages = set()
    for part in (value or "").split(","):
        token = part.strip()
        if not token:
            continue
        if "-" in token:
            start_s, _, end_s = token.partition("-")
            try:
                start, end = int(start_s), int(end_s)
            except ValueError:
                continue
            for page in range(min(start, end), max(start, end) + 1):
                if 1 <= page <= total_pages:
                    pages.add(page)
        else:
            try:
                page = int(token)
            except ValueError:
                continue
            if 1 <= page <= total_pages:
                pages.add(page)
    return sorted(pages)
