import argparse
import asyncio
import json
import logging
import signal
from pathlib import Path

from .config import setup_logging
from .errors import AnalysisCancelled, TakeoffError
from .gemini_client import GeminiClient
from .loader import key_page_to_dict, result_to_dict
from .models import ProjectSettings
from .orchestrator import TakeoffAnalyzer
from .pdf_pages import load_pdf_document
from .pipeline import analyze_image_file, analyze_pdf_page, index_document

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="Signage takeoff from architectural drawings")
    parser.add_argument("source", help="PDF drawing set or a single sheet image")
    parser.add_argument("--page", type=int, default=1, help="1-based page to analyse (PDF only)")
    parser.add_argument("--refs", default="", help='reference pages, e.g. "1, 3-5"')
    parser.add_argument("--index", action="store_true", help="also detect key pages of the set")
    parser.add_argument("--no-symbol-fallback", action="store_true", help="do not crop plan symbols for unmatched rows")
    parser.add_argument("--out", default="takeoff.json", help="output JSON path")
    return parser


def _cancel_on_interrupt(cancel: asyncio.Event) -> bool:
    """Route Ctrl-C to the cancel event. Returns False where the loop cannot."""
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.set)
    except (NotImplementedError, RuntimeError):
        # no signal handlers on Windows event loops or outside the main thread
        return False
    return True


async def main_async(args, cancel=None):
    cancel = cancel or asyncio.Event()
    handled = _cancel_on_interrupt(cancel)
    try:
        await _run(args, cancel)
    finally:
        if handled:
            asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)


async def _run(args, cancel):
    analyzer = TakeoffAnalyzer(GeminiClient())
    settings = ProjectSettings(symbol_fallback=not args.no_symbol_fallback)
    source = Path(args.source)
    output = {}

    if source.suffix.lower() == ".pdf":
        doc = load_pdf_document(str(source))
        try:
            if args.index:
                settings.key_pages = await index_document(analyzer, doc, cancel=cancel)
                output["keyPages"] = [key_page_to_dict(p) for p in settings.key_pages]
            result = await analyze_pdf_page(
                analyzer,
                doc,
                args.page - 1,
                file_name=source.name,
                reference_pages=args.refs,
                settings=settings,
                cancel=cancel,
            )
        finally:
            doc.close()
    else:
        result = await analyze_image_file(analyzer, source, settings=settings, cancel=cancel)

    output.update(result_to_dict(result))
    Path(args.out).write_text(json.dumps(output, indent=2))
    logger.info("Takeoff written to %s", args.out)


def main(argv=None):
    setup_logging()
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(main_async(args))
    except (AnalysisCancelled, KeyboardInterrupt):
        logger.info("Analysis cancelled")
        return 130
    except TakeoffError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
