"""Utility helpers for data URLs and image previews."""

from __future__ import annotations

import base64
import binascii
import io
from typing import Tuple

from PIL import Image

_DATA_URL_PREFIX = "data:"


def to_data_url(payload: bytes, mime_type: str = "image/png") -> str:
    """Wrap binary image data in a base64 data URL."""
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a base64 data URL into its MIME type and raw bytes."""
    if not data_url.startswith(_DATA_URL_PREFIX) or "," not in data_url:
        raise ValueError("Not a data URL.")
    header, body = data_url[len(_DATA_URL_PREFIX):].split(",", 1)
    parts = header.split(";")
    if "base64" not in parts[1:]:
        raise ValueError("Only base64 data URLs are supported.")
    mime_type = parts[0] or "application/octet-stream"
    try:
        return mime_type, base64.b64decode(body, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Malformed base64 payload: {exc}") from exc


def data_url_to_image(data_url: str) -> Image.Image:
    """Decode a data URL into a loaded Pillow image."""
    _, payload = decode_data_url(data_url)
    image = Image.open(io.BytesIO(payload))
    image.load()
    return image


def verify_png(payload: bytes) -> None:
    """Raise when the payload is not a readable PNG image."""
    with Image.open(io.BytesIO(payload)) as image:
        if image.format != "PNG":
            raise ValueError(f"Expected PNG data, got {image.format}.")
        image.verify()


def generate_thumbnail(image: Image.Image, max_size: Tuple[int, int] = (160, 160)) -> Image.Image:
    """Create a thumbnail suitable for history previews."""
    preview = image.copy()
    preview.thumbnail(max_size, Image.Resampling.NEAREST)
    return preview
