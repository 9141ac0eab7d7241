"""
Model invocation boundary.

The orchestrator only sees ModelRequest -> ModelResponse; GeminiClient is the
live implementation backed by google-genai, tests swap in a stub.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Protocol

from google import genai
from google.genai import types

from .config import GEMINI_API_KEY, GEMINI_MAX_OUTPUT_TOKENS, GEMINI_MODEL
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class FinishReason(str, Enum):
    STOP = "STOP"
    MAX_TOKENS = "MAX_TOKENS"
    OTHER = "OTHER"


@dataclass
class ModelImage:
    data: bytes
    mime_type: str = "image/jpeg"


@dataclass
class ModelRequest:
    images: List[ModelImage]
    system_instruction: str
    prompt: str
    response_schema: Any = None
    temperature: float = 0.0
    max_output_tokens: int = GEMINI_MAX_OUTPUT_TOKENS


@dataclass
class ModelResponse:
    text: str = ""
    finish_reason: FinishReason = FinishReason.STOP
    # raw reason name when finish_reason is OTHER, e.g. "SAFETY"
    finish_detail: Optional[str] = None


class ModelClient(Protocol):
    def generate(self, request: ModelRequest) -> ModelResponse:
        ...


SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_NONE)
    for category in (
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]


def _finish_reason(response):
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return FinishReason.STOP, None
    reason = getattr(candidates[0], "finish_reason", None)
    if reason is None:
        return FinishReason.STOP, None
    name = getattr(reason, "name", None) or str(reason)
    if name in ("STOP", "FINISH_REASON_UNSPECIFIED"):
        return FinishReason.STOP, None
    if name == "MAX_TOKENS":
        return FinishReason.MAX_TOKENS, None
    return FinishReason.OTHER, name


def _response_text(response) -> str:
    try:
        text = response.text
    except Exception as exc:
        logger.debug("response.text unavailable: %s", exc)
        text = None
    if text:
        return text

    pieces = []
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            if getattr(part, "text", None):
                pieces.append(part.text)
    return "".join(pieces)


class GeminiClient:
    def __init__(self, api_key=None, model=GEMINI_MODEL):
        api_key = api_key or GEMINI_API_KEY
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY not found")
        self.client = genai.Client(api_key=api_key)
        self.model = model
        logger.info("Gemini client initialized with %s", model)

    def generate(self, request: ModelRequest) -> ModelResponse:
        contents = [types.Part.from_bytes(data=img.data, mime_type=img.mime_type) for img in request.images]
        contents.append(request.prompt)

        config = types.GenerateContentConfig(
            system_instruction=request.system_instruction,
            response_mime_type="application/json",
            response_schema=request.response_schema,
            temperature=request.temperature,
            max_output_tokens=request.max_output_tokens,
            safety_settings=SAFETY_SETTINGS,
        )
        response = self.client.models.generate_content(model=self.model, contents=contents, config=config)

        finish_reason, detail = _finish_reason(response)
        return ModelResponse(text=_response_text(response), finish_reason=finish_reason, finish_detail=detail)
