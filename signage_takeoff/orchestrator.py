import asyncio
import json
import logging
from typing import List, Optional

from .config import GEMINI_MAX_RETRIES, GEMINI_RETRY_BASE_SECONDS
from .errors import AnalysisCancelled, AnalysisError, JsonParseError
from .gemini_client import FinishReason, ModelClient, ModelImage, ModelRequest, ModelResponse
from .json_repair import clean_and_repair_json
from .loader import load_result
from .models import ExtractionResult, ProjectSettings, SourceImage
from .prompt import RESPONSE_SCHEMA, SYSTEM_INSTRUCTION, build_analysis_prompt
from .visuals import process_visuals

logger = logging.getLogger(__name__)

# substrings of upstream errors worth retrying (rate limit / overload / internal)
TRANSIENT_MARKERS = (
    "500",
    "503",
    "429",
    "internal",
    "overloaded",
    "unavailable",
    "resource_exhausted",
    "rate limit",
)


def is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (AnalysisError, AnalysisCancelled)):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


def check_cancelled(cancel: Optional[asyncio.Event], where: str):
    if cancel is not None and cancel.is_set():
        logger.info("Analysis cancelled %s", where)
        raise AnalysisCancelled()


async def wait_or_cancel(delay: float, cancel: Optional[asyncio.Event]):
    """Sleep for the backoff delay, returning early with AnalysisCancelled."""
    if cancel is None:
        await asyncio.sleep(delay)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return
    raise AnalysisCancelled()


def parse_model_response(response: ModelResponse):
    """Turn a raw model response into parsed JSON, repairing truncation."""
    text = response.text or ""

    if response.finish_reason == FinishReason.MAX_TOKENS:
        if not text.strip():
            raise AnalysisError("Analysis stopped: MAX_TOKENS reached and no text generated.")
        logger.warning("Model output truncated (MAX_TOKENS), attempting JSON repair")
    elif response.finish_reason == FinishReason.OTHER:
        raise AnalysisError(f"Analysis stopped: {response.finish_detail or 'unknown reason'}", raw_text=text)

    if not text.strip():
        raise AnalysisError("No data returned from model.")

    cleaned = clean_and_repair_json(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("JSON parse failed. Raw text: %s", text)
        raise JsonParseError(f"JSON parse failed: {exc}", raw_text=text) from exc


class TakeoffAnalyzer:
    """
    Drives one model request with retry/backoff and cooperative cancellation.

    `cancel` is an asyncio.Event; it is checked before the request, right after
    the call returns and before post-processing, and it cuts backoff short.
    """

    def __init__(self, client: ModelClient, max_retries=GEMINI_MAX_RETRIES, retry_base=GEMINI_RETRY_BASE_SECONDS):
        self.client = client
        self.max_retries = max_retries
        self.retry_base = retry_base

    async def generate_json(self, request: ModelRequest, cancel: Optional[asyncio.Event] = None):
        attempts = self.max_retries + 1
        last_error = None

        for attempt in range(attempts):
            check_cancelled(cancel, "before model request")
            try:
                response = await asyncio.to_thread(self.client.generate, request)
                check_cancelled(cancel, "after model response")
                return parse_model_response(response)
            except AnalysisCancelled:
                raise
            except AnalysisError as exc:
                raise type(exc)(f"Analysis failed: {exc}", raw_text=exc.raw_text) from exc
            except Exception as exc:
                last_error = exc
                logger.warning("Model attempt %s/%s failed: %s", attempt + 1, attempts, exc)
                if not is_transient(exc):
                    raise AnalysisError(f"Analysis failed: {exc}") from exc
                if attempt + 1 >= attempts:
                    break
                delay = self.retry_base * (2 ** attempt)
                logger.info("Retrying in %.1fs...", delay)
                await wait_or_cancel(delay, cancel)

        raise AnalysisError(f"Analysis failed after {attempts} attempts. Last error: {last_error}")

    async def analyze_drawing(
        self,
        target: SourceImage,
        references: Optional[List[SourceImage]] = None,
        settings: Optional[ProjectSettings] = None,
        file_name: str = "drawing",
        text_layer: str = "",
        cancel: Optional[asyncio.Event] = None,
    ) -> ExtractionResult:
        settings = settings or ProjectSettings()
        # reference images first, target last, so indices match the prompt guide
        images = [*(references or []), target]

        request = ModelRequest(
            images=[ModelImage(data=img.data, mime_type=img.mime_type) for img in images],
            system_instruction=SYSTEM_INSTRUCTION,
            prompt=build_analysis_prompt(len(images), file_name, settings, text_layer),
            response_schema=RESPONSE_SCHEMA,
        )
        payload = await self.generate_json(request, cancel)
        result = load_result(payload)
        logger.info("Model returned %s takeoff rows and %s catalog entries", len(result.takeoff), len(result.catalog))

        check_cancelled(cancel, "before visual processing")
        await process_visuals(result, images, symbol_fallback=settings.symbol_fallback)
        return result
