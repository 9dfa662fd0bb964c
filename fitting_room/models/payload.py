"""Encoded image payloads."""

import base64
import binascii
import re

from pydantic import BaseModel, ConfigDict

from ..errors import DecodeError


_DATA_URI = re.compile(r"^data:(?P<mime>[^;,]*)(?P<params>(;[^;,]*)*),(?P<data>.*)$", re.DOTALL)


def sniff_mime_type(data: bytes, default: str = "image/jpeg") -> str:
    """Detect image format from magic bytes."""
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return default


class ImagePayload(BaseModel):
    """Binary image content with its declared MIME type."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/jpeg"

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.b64}"

    @classmethod
    def from_data_uri(cls, value: str) -> "ImagePayload":
        """Parse a base64 data URI (or bare base64 string) into a payload.

        Raises:
            DecodeError: if the value is not valid base64 image data
        """
        value = value.strip()
        mime_type = None
        encoded = value

        if value.startswith("data:"):
            match = _DATA_URI.match(value)
            if match is None or ";base64" not in match.group("params"):
                raise DecodeError("Image data URI is malformed.")
            mime_type = match.group("mime") or None
            encoded = match.group("data")

        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError("Image data is not valid base64.") from exc

        if not raw:
            raise DecodeError("Image data is empty.")

        return cls(data=raw, mime_type=mime_type or sniff_mime_type(raw))
