"""Resolve image inputs (bytes, files, URLs, data URIs) to base64 data URIs."""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import Any

import httpx

from guildcal.errors import InvalidImage

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/png"
IMAGE_DOWNLOAD_TIMEOUT_SECONDS = 15.0

_MAGIC_PREFIXES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


def sniff_image_mime(data: bytes) -> str:
    """Guess the MIME type of an image from its leading bytes."""
    for prefix, mime in _MAGIC_PREFIXES:
        if data.startswith(prefix):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return DEFAULT_IMAGE_MIME


def encode_image(data: bytes) -> str:
    if not data:
        raise InvalidImage("Image payload is empty")
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{sniff_image_mime(data)};base64,{encoded}"


async def _download(url: str, http_client: httpx.AsyncClient | None) -> bytes:
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=IMAGE_DOWNLOAD_TIMEOUT_SECONDS)
    try:
        response = await client.get(url, follow_redirects=True)
    except httpx.HTTPError as exc:
        raise InvalidImage(f"Image download failed: {exc}") from exc
    finally:
        if owns_client:
            await client.aclose()
    if response.status_code < 200 or response.status_code >= 300:
        raise InvalidImage(f"Image download failed ({response.status_code}): {url}")
    return response.content


async def resolve_image(value: Any, *, http_client: httpx.AsyncClient | None = None) -> str:
    """Return *value* as a ``data:<mime>;base64,...`` URI.

    - ``bytes``: encoded directly
    - ``str`` starting with ``data:``: returned unchanged
    - ``str`` starting with ``http://`` or ``https://``: downloaded
    - any other ``str`` or ``Path``: read from disk in a worker thread
    """
    if isinstance(value, bytes | bytearray | memoryview):
        return encode_image(bytes(value))

    if isinstance(value, str):
        if value.startswith("data:"):
            return value
        if value.startswith(("http://", "https://")):
            logger.debug("Downloading image from %s", value)
            return encode_image(await _download(value, http_client))
        value = Path(value)

    if isinstance(value, Path):
        try:
            data = await asyncio.to_thread(value.read_bytes)
        except OSError as exc:
            raise InvalidImage(f"Could not read image file {value}: {exc}") from exc
        return encode_image(data)

    raise InvalidImage(f"Unsupported image input type: {type(value).__name__}")
