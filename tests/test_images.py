"""Unit tests for image input resolution."""

from __future__ import annotations

import base64

import httpx
import pytest

from guildcal.errors import InvalidImage
from guildcal.images import encode_image, resolve_image, sniff_image_mime

pytestmark = pytest.mark.unit

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 8
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 8


class TestSniff:
    @pytest.mark.parametrize(
        ("data", "mime"),
        [
            (PNG_BYTES, "image/png"),
            (JPEG_BYTES, "image/jpeg"),
            (b"GIF89a....", "image/gif"),
            (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"unknown", "image/png"),
        ],
    )
    def test_mime_from_magic_bytes(self, data, mime):
        assert sniff_image_mime(data) == mime

    def test_encode_builds_data_uri(self):
        uri = encode_image(JPEG_BYTES)
        assert uri == f"data:image/jpeg;base64,{base64.b64encode(JPEG_BYTES).decode()}"

    def test_encode_rejects_empty_payload(self):
        with pytest.raises(InvalidImage):
            encode_image(b"")


class TestResolveImage:
    async def test_bytes(self):
        assert (await resolve_image(PNG_BYTES)).startswith("data:image/png;base64,")

    async def test_data_uri_passes_through(self):
        assert await resolve_image("data:image/gif;base64,R0lG") == "data:image/gif;base64,R0lG"

    async def test_file_path(self, tmp_path):
        path = tmp_path / "cover.jpg"
        path.write_bytes(JPEG_BYTES)
        assert (await resolve_image(path)).startswith("data:image/jpeg;base64,")
        assert (await resolve_image(str(path))).startswith("data:image/jpeg;base64,")

    async def test_missing_file_raises(self, tmp_path):
        with pytest.raises(InvalidImage):
            await resolve_image(tmp_path / "missing.png")

    async def test_url_is_downloaded(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert str(request.url) == "https://cdn.test/cover.png"
            return httpx.Response(200, content=PNG_BYTES)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            uri = await resolve_image("https://cdn.test/cover.png", http_client=http_client)
        assert uri == encode_image(PNG_BYTES)

    async def test_failed_download_raises(self):
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(404))
        ) as http_client:
            with pytest.raises(InvalidImage, match="404"):
                await resolve_image("https://cdn.test/missing.png", http_client=http_client)

    @pytest.mark.parametrize("value", [None, 42, {"path": "x"}])
    async def test_unsupported_input_raises(self, value):
        with pytest.raises(InvalidImage):
            await resolve_image(value)
