"""Data models for the try-on pipeline."""

from .payload import ImagePayload, sniff_mime_type
from .product import Product
from .tryon import DEFAULT_SIZE, SizeCode, Stage, TryOnRequest, TryOnResult
from .state import TryOnState

__all__ = [
    "ImagePayload",
    "sniff_mime_type",
    "Product",
    "DEFAULT_SIZE",
    "SizeCode",
    "Stage",
    "TryOnRequest",
    "TryOnResult",
    "TryOnState",
]
