"""Loads product reference images through the resize proxy."""

import asyncio
import logging

import httpx

from ..config import ImageConfig
from ..errors import NetworkError
from ..models import ImagePayload
from ..utils.image_normalizer import reencode_jpeg


logger = logging.getLogger(__name__)


class ProductImageFetcher:
    """Turns a product's image URL into an :class:`ImagePayload`.

    Remote images go through an image proxy (capped width, JPEG output) so
    that cross-origin and exotic formats are handled upstream. ``data:`` URLs
    are returned as they are.
    """

    def __init__(self, config: ImageConfig, http_client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.config.fetch_timeout)
        return self._client

    def proxy_params(self, image_url: str) -> dict[str, str]:
        return {
            "url": image_url,
            "w": str(self.config.proxy_width),
            "output": self.config.proxy_format,
        }

    async def fetch(self, image_url: str) -> ImagePayload:
        """Resolve a product image.

        Raises:
            NetworkError: if the proxy cannot be reached or answers non-2xx
            DecodeError: if the returned body is not an image
        """
        if image_url.startswith("data:"):
            return ImagePayload.from_data_uri(image_url)

        logger.info("Fetching product image via proxy: %s", image_url)
        try:
            response = await self.client.get(
                self.config.proxy_url,
                params=self.proxy_params(image_url),
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NetworkError(
                f"Product image error (HTTP {exc.response.status_code})."
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Product image error: {exc}") from exc

        return await asyncio.to_thread(reencode_jpeg, response.content, self.config.proxy_jpeg_quality)

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
