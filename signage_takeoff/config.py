import os
import logging

from dotenv import load_dotenv

load_dotenv()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_MAX_OUTPUT_TOKENS = int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "65536"))
GEMINI_MAX_RETRIES = int(os.getenv("GEMINI_MAX_RETRIES", "2"))
GEMINI_RETRY_BASE_SECONDS = float(os.getenv("GEMINI_RETRY_BASE_SECONDS", "2.0"))

# pages rendered to discover key sheets; also the table-of-contents guard range
KEY_PAGE_SCAN_LIMIT = int(os.getenv("KEY_PAGE_SCAN_LIMIT", "3"))

TARGET_RENDER_SCALE = float(os.getenv("TARGET_RENDER_SCALE", "2.5"))
REFERENCE_RENDER_SCALE = float(os.getenv("REFERENCE_RENDER_SCALE", "2.0"))
KEY_PAGE_RENDER_SCALE = float(os.getenv("KEY_PAGE_RENDER_SCALE", "1.0"))

CATALOG_CROP_PADDING = 0.15
SYMBOL_CROP_PADDING = 0.20
JPEG_QUALITY = int(os.getenv("JPEG_QUALITY", "80"))

# truncates the PDF text layer sent along with the target image
TEXT_LAYER_MAX_CHARS = int(os.getenv("TEXT_LAYER_MAX_CHARS", "20000"))

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def setup_logging(level=logging.INFO):
    logging.basicConfig(level=level, format=LOG_FORMAT)
