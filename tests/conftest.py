import io
import json

import pytest
from PIL import Image

from signage_takeoff.gemini_client import FinishReason, ModelResponse
from signage_takeoff.models import SourceImage


class StubClient:
    """Replays canned responses (or raises canned exceptions) in order."""

    def __init__(self, *responses, on_call=None):
        self.responses = list(responses)
        self.requests = []
        self.on_call = on_call

    def generate(self, request):
        self.requests.append(request)
        if self.on_call:
            self.on_call()
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_image(width=1000, height=500, color="white"):
    return Image.new("RGB", (width, height), color)


def image_bytes(width=1000, height=500, color="white"):
    buffer = io.BytesIO()
    make_image(width, height, color).save(buffer, format="JPEG")
    return buffer.getvalue()


def ok(payload, finish_reason=FinishReason.STOP):
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return ModelResponse(text=text, finish_reason=finish_reason)


@pytest.fixture
def target():
    return SourceImage(image_bytes(1000, 500))


@pytest.fixture
def reference():
    return SourceImage(image_bytes(200, 200))
