"""Gemini API client for size estimation and virtual try-on rendering."""

import asyncio
import base64
import logging
from typing import Any, Awaitable, Callable

from google import genai
from google.genai import types

from ..agents.tryon_prompts import build_size_prompt, build_tryon_prompt
from ..config import PipelineConfig
from ..errors import ContentRejected, CredentialError, GenerationFailed, PipelineError
from ..models import DEFAULT_SIZE, ImagePayload, Product, SizeCode
from ..utils.image_normalizer import normalize_image
from .credentials import KeyProvider, settings_key_provider
from .resilient import classify_backend_error, invoke_with_retry


logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], Any]

SAFETY_FINISH_REASONS = {"SAFETY", "IMAGE_SAFETY"}


def _default_client_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


def parse_size(text: str | None) -> SizeCode:
    """Return the first size code found in ``text``, else ``M``.

    The scan runs in the order XS, S, M, L, XL, XXL over the uppercased text,
    so e.g. "xl" yields L. The model's output format is not contractual.
    """
    if not text:
        return DEFAULT_SIZE
    upper = text.strip().upper()
    for code in SizeCode:
        if code.value in upper:
            return code
    return DEFAULT_SIZE


def _enum_name(value: Any) -> str | None:
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _image_part(payload: ImagePayload) -> types.Part:
    return types.Part.from_bytes(data=payload.data, mime_type=payload.mime_type)


class GenerationClient:
    """Issues the two Gemini calls of a try-on attempt.

    A fresh ``genai.Client`` is built for every attempt from the key provider,
    so a newly selected key applies to the very next call.
    """

    def __init__(
        self,
        config: PipelineConfig,
        key_provider: KeyProvider = settings_key_provider,
        client_factory: ClientFactory | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.config = config
        self.key_provider = key_provider
        self.client_factory = client_factory or _default_client_factory
        self._sleep = sleep

    def _new_client(self) -> Any:
        api_key = self.key_provider()
        if not api_key:
            raise CredentialError("No API key selected. Please select your API key.")
        return self.client_factory(api_key)

    async def _generate(
        self,
        model: str,
        contents: list[Any],
        generation_config: types.GenerateContentConfig | None = None,
    ) -> Any:
        """Call ``generate_content`` through the retry policy.

        Everything that escapes is a :class:`PipelineError`.
        """
        async def call():
            client = self._new_client()
            return await client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=generation_config,
            )

        try:
            return await invoke_with_retry(
                call,
                retries=self.config.retry.retries,
                base_delay=self.config.retry.base_delay,
                sleep=self._sleep,
                name=model,
            )
        except PipelineError:
            raise
        except Exception as exc:
            error = classify_backend_error(exc)
            logger.error("%s failed (%s): %s", model, error.kind.value, exc)
            raise error from exc

    async def estimate_size(self, user_image: ImagePayload, product_name: str) -> SizeCode:
        """Ask the text model which size fits the person in the photo."""
        image_config = self.config.image
        optimized = await normalize_image(
            user_image, image_config.size_estimate_max_dimension, image_config.jpeg_quality
        )

        response = await self._generate(
            self.config.gemini.text_model,
            [_image_part(optimized), build_size_prompt(product_name)],
        )

        size = parse_size(getattr(response, "text", None))
        logger.info("Size estimate for %r: %s", product_name, size.value)
        return size

    async def compose_tryon(
        self,
        user_image: ImagePayload,
        product_image: ImagePayload,
        product: Product,
    ) -> ImagePayload:
        """Render the user wearing ``product``.

        Raises:
            ContentRejected: if the backend blocked the request on safety grounds
            GenerationFailed: if the response carries no image
        """
        image_config = self.config.image
        optimized_user = await normalize_image(
            user_image, image_config.tryon_max_dimension, image_config.jpeg_quality
        )
        optimized_product = await normalize_image(
            product_image, image_config.tryon_max_dimension, image_config.jpeg_quality
        )

        response = await self._generate(
            self.config.gemini.image_model,
            [
                _image_part(optimized_user),
                _image_part(optimized_product),
                build_tryon_prompt(product),
            ],
            types.GenerateContentConfig(temperature=self.config.gemini.temperature),
        )
        return self._extract_image(response)

    def _extract_image(self, response: Any) -> ImagePayload:
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            logger.warning("Prompt blocked: %s", _enum_name(feedback.block_reason))
            raise ContentRejected()

        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            raise GenerationFailed()

        first = candidates[0]
        finish_reason = _enum_name(getattr(first, "finish_reason", None))
        if finish_reason in SAFETY_FINISH_REASONS:
            logger.warning("Generation stopped with finish reason %s", finish_reason)
            raise ContentRejected()

        content = getattr(first, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is None or not inline.data:
                continue
            data = inline.data
            if isinstance(data, str):
                data = base64.b64decode(data)
            return ImagePayload(data=data, mime_type=inline.mime_type or "image/jpeg")

        logger.warning("Response had no inline image (finish reason %s)", finish_reason)
        raise GenerationFailed()
