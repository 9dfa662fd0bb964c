# Test fixtures and configuration
import io
import sys
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest
from google.genai import types
from PIL import Image

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fitting_room.config import PipelineConfig
from fitting_room.models import ImagePayload, Product
from fitting_room.services import GenerationClient, ProductImageFetcher


def make_image_bytes(width=64, height=48, mode="RGB", color=(200, 30, 30), fmt="PNG") -> bytes:
    """Encode a solid-color image with Pillow."""
    image = Image.new(mode, (width, height), color)
    output = io.BytesIO()
    image.save(output, format=fmt)
    return output.getvalue()


def image_size(payload: ImagePayload) -> tuple[int, int]:
    with Image.open(io.BytesIO(payload.data)) as image:
        return image.size


def text_response(text: str) -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=[types.Part(text=text)]),
                finish_reason=types.FinishReason.STOP,
            )
        ]
    )


def image_response(data: bytes, mime_type: str = "image/png") -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(
                    role="model",
                    parts=[
                        types.Part(text="Here is the try-on."),
                        types.Part(inline_data=types.Blob(data=data, mime_type=mime_type)),
                    ],
                ),
                finish_reason=types.FinishReason.STOP,
            )
        ]
    )


def safety_response() -> types.GenerateContentResponse:
    return types.GenerateContentResponse(
        candidates=[types.Candidate(finish_reason=types.FinishReason.SAFETY)]
    )


def no_image_response() -> types.GenerateContentResponse:
    return text_response("I cannot render this image.")


class FakeAPIError(Exception):
    """Backend failure carrying an HTTP status code, like google.genai errors."""

    def __init__(self, code: int, message: str):
        super().__init__(f"{code} {message}")
        self.code = code


class FakeGenai:
    """Stands in for ``genai.Client``: a factory that records keys and calls.

    ``outcomes`` are consumed in call order; exceptions are raised, anything
    else is returned as the response.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[dict] = []
        self.api_keys: list[str] = []

    def __call__(self, api_key: str):
        self.api_keys.append(api_key)
        return SimpleNamespace(aio=SimpleNamespace(models=self))

    async def generate_content(self, *, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class SleepRecorder:
    """Replacement for asyncio.sleep that returns at once."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def png_bytes():
    return make_image_bytes()


@pytest.fixture
def user_photo():
    """A portrait user photo larger than both normalization bounds."""
    return ImagePayload(data=make_image_bytes(1200, 1800, color=(90, 120, 160)), mime_type="image/png")


@pytest.fixture
def product():
    """Product whose image is embedded, so no fetch is needed."""
    embedded = ImagePayload(data=make_image_bytes(400, 600, color=(150, 180, 150)), mime_type="image/png")
    return Product(
        id="seamless-sage",
        name="Seamless Set Sage",
        description="Two-piece seamless set: cropped top and full-length leggings in sage green.",
        image_url=embedded.to_data_uri(),
        fit_hint="tight and athletic",
    )


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def fake_genai():
    return FakeGenai()


@pytest.fixture
def generation_client(config, fake_genai, sleep):
    return GenerationClient(
        config,
        key_provider=lambda: "test-key",
        client_factory=fake_genai,
        sleep=sleep,
    )


@pytest.fixture
def proxy_fetcher(config):
    """Fetcher whose proxy answers every request with a small PNG."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, content=make_image_bytes(300, 400), headers={"content-type": "image/png"})

    fetcher = ProductImageFetcher(
        config.image,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    fetcher.requests = requests
    return fetcher
