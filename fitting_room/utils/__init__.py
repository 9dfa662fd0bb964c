"""Image and text helpers."""

from .description_cleaner import clean_description, is_multi_piece
from .image_normalizer import detect_mime_type, normalize_image, payload_from_upload

__all__ = [
    "clean_description",
    "is_multi_piece",
    "detect_mime_type",
    "normalize_image",
    "payload_from_upload",
]
