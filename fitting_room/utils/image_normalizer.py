"""Bounded JPEG re-encoding of user and product images."""

import asyncio
import io
import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import DecodeError
from ..models import ImagePayload, sniff_mime_type


logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)

_EXTENSION_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


def detect_mime_type(data: bytes, filename: str | None = None) -> str:
    """Detect the MIME type from magic bytes, falling back to the file extension."""
    sniffed = sniff_mime_type(data, default="")
    if sniffed:
        return sniffed
    if filename:
        return _EXTENSION_MIME_TYPES.get(Path(filename).suffix.lower(), "image/png")
    return "image/png"


def payload_from_upload(data: bytes, filename: str | None = None) -> ImagePayload:
    """Wrap uploaded file bytes as a payload, unmodified."""
    if not data:
        raise DecodeError("Error reading the image file.")
    return ImagePayload(data=data, mime_type=detect_mime_type(data, filename))


def decode_image(data: bytes) -> Image.Image:
    """Decode raw bytes into a fully loaded, upright Pillow image.

    The EXIF orientation is applied, so phone photos come out the way a
    browser would draw them.

    Raises:
        DecodeError: for undecodable, truncated or zero-sized input
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError() from exc

    width, height = image.size
    if width <= 0 or height <= 0:
        raise DecodeError()
    return image


def fit_within(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Scale so the longer edge equals ``max_dimension``; never upscale."""
    longer = max(width, height)
    if longer <= max_dimension:
        return width, height
    scale = max_dimension / longer
    if width >= height:
        return max_dimension, max(1, round(height * scale))
    return max(1, round(width * scale)), max_dimension


def flatten_onto_white(image: Image.Image) -> Image.Image:
    """Composite any transparency onto an opaque white backdrop, returning RGB."""
    if image.mode == "P" and "transparency" in image.info:
        image = image.convert("RGBA")

    if image.mode in ("RGBA", "LA", "PA"):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background

    return image.convert("RGB")


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    output = io.BytesIO()
    image.save(output, format="JPEG", quality=quality)
    return output.getvalue()


def normalize_image_sync(payload: ImagePayload, max_dimension: int, quality: int = 70) -> ImagePayload:
    """Blocking variant of :func:`normalize_image`."""
    if max_dimension <= 0:
        raise ValueError(f"max_dimension must be positive, got {max_dimension}")

    image = decode_image(payload.data)
    source_size = image.size
    target_size = fit_within(*source_size, max_dimension)

    flat = flatten_onto_white(image)
    if target_size != source_size:
        flat = flat.resize(target_size, Image.Resampling.LANCZOS)

    logger.debug("Normalized image %sx%s -> %sx%s", *source_size, *target_size)
    return ImagePayload(data=encode_jpeg(flat, quality), mime_type="image/jpeg")


async def normalize_image(payload: ImagePayload, max_dimension: int, quality: int = 70) -> ImagePayload:
    """Resize to fit ``max_dimension`` and re-encode as JPEG on a white backdrop.

    Args:
        payload: Source image in any format Pillow can read
        max_dimension: Bound for the longer edge, in pixels
        quality: JPEG quality factor (1-95)

    Returns:
        A new JPEG payload; the source is left untouched

    Raises:
        DecodeError: if the source cannot be decoded
    """
    return await asyncio.to_thread(normalize_image_sync, payload, max_dimension, quality)


def reencode_jpeg(data: bytes, quality: int) -> ImagePayload:
    """Decode and re-encode at full size, as the product fetch path does."""
    image = decode_image(data)
    return ImagePayload(data=encode_jpeg(flatten_onto_white(image), quality), mime_type="image/jpeg")
