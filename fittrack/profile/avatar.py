"""Avatar payload -> storable data-URL text.

No image processing: bytes are stored as-is, base64-encoded behind a
data:<mime>;base64, prefix. The MIME type comes from the caller or from the
file signature.
"""

from __future__ import annotations

import base64
import os
from typing import BinaryIO, Union

from fittrack.profile.errors import ValidationError

AvatarSource = Union[bytes, bytearray, BinaryIO]

_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
]


def sniff_image_type(data: bytes) -> str | None:
    for signature, mime in _SIGNATURES:
        if data.startswith(signature):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    head = data[:256].lstrip().lower()
    if head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in head):
        return "image/svg+xml"
    return None


def _require_binary(source: object) -> None:
    if not hasattr(source, "read"):
        raise TypeError(f"Avatar source must be bytes or a binary file, not {type(source).__name__}")


def payload_size(source: AvatarSource) -> int | None:
    """Size in bytes without reading the payload, when it can be known."""
    if isinstance(source, (bytes, bytearray)):
        return len(source)
    _require_binary(source)
    try:
        pos = source.tell()
        end = source.seek(0, os.SEEK_END)
        source.seek(pos)
        return end - pos
    except (AttributeError, OSError, ValueError):
        return None


def read_payload(source: AvatarSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    _require_binary(source)
    try:
        return source.read()
    except (OSError, ValueError) as exc:
        raise ValidationError("avatar", "unreadable", f"Could not read image: {exc}") from exc


def to_data_url(data: bytes, content_type: str | None = None) -> str:
    """Encode `data` as a data URL; raises ValidationError(avatar, unreadable)."""
    if not data:
        raise ValidationError("avatar", "unreadable", "Image file is empty")

    mime = sniff_image_type(data)
    if mime is None and content_type and content_type.lower().startswith("image/"):
        mime = content_type.split(";", 1)[0].strip().lower()
    if mime is None:
        raise ValidationError("avatar", "unreadable", "File is not a recognised image")

    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
