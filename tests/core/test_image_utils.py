"""
图片处理工具测试
"""

import base64
import io
import os
from unittest.mock import patch

import pytest
from PIL import Image

from core.multimodal import (
    ImageDownloader,
    decode_image_payload,
    encode_caption_image,
    is_remote_ref,
    temporary_image_file,
)
from libs.exceptions import InvalidInputException
from tests.conftest import make_image_bytes


class TestDecodeImagePayload:
    """测试请求图片载荷解码"""

    def test_data_url(self, image_bytes):
        payload = "data:image/png;base64," + base64.b64encode(image_bytes).decode()
        assert decode_image_payload(payload) == image_bytes

    def test_plain_base64(self, image_bytes):
        assert decode_image_payload(base64.b64encode(image_bytes).decode()) == image_bytes

    @pytest.mark.parametrize("payload", [
        "",
        "   ",
        "data:image/bmp;base64,aGVsbG8=",
        "data:text/plain;base64,aGVsbG8=",
        "not base64 at all!",
    ])
    def test_invalid_payload(self, payload):
        with pytest.raises(InvalidInputException):
            decode_image_payload(payload)

    def test_oversized_payload_rejected_before_decoding(self):
        """超过上限的载荷在正则校验和解码之前被拒绝"""
        payload = base64.b64encode(b"\0" * 20_000_000).decode()

        with patch("core.multimodal.image_utils.base64.b64decode") as b64decode, \
                pytest.raises(InvalidInputException) as exc_info:
            decode_image_payload(payload, max_bytes=2_000_000)

        assert "超过上限" in exc_info.value.detail
        b64decode.assert_not_called()

    def test_payload_at_limit_accepted(self, image_bytes):
        payload = "data:image/png;base64," + base64.b64encode(image_bytes).decode()
        assert decode_image_payload(payload, max_bytes=len(image_bytes)) == image_bytes


class TestEncodeCaptionImage:

    @pytest.mark.asyncio
    async def test_fit_to_square_with_white_padding(self):
        """宽图等比缩放后居中，上下留白"""
        encoded = await encode_caption_image(make_image_bytes(size=(100, 50)), size=64)

        with Image.open(io.BytesIO(base64.b64decode(encoded))) as img:
            assert img.format == "JPEG"
            assert img.size == (64, 64)
            assert all(channel > 235 for channel in img.getpixel((0, 0)))
            red, green, blue = img.getpixel((32, 32))
            assert red > 150 and green < 100

    @pytest.mark.asyncio
    async def test_transparent_png_from_path(self, tmp_path):
        path = tmp_path / "clear.png"
        Image.new("RGBA", (20, 20), (0, 0, 0, 0)).save(path)

        encoded = await encode_caption_image(str(path), size=32)

        with Image.open(io.BytesIO(base64.b64decode(encoded))) as img:
            assert img.mode == "RGB"
            assert all(channel > 235 for channel in img.getpixel((16, 16)))


class TestTemporaryImageFile:
    """测试临时文件作用域"""

    @pytest.mark.asyncio
    async def test_removed_after_scope(self, image_bytes):
        async with temporary_image_file(image_bytes) as path:
            assert os.path.exists(path)
            with open(path, "rb") as f:
                assert f.read() == image_bytes

        assert not os.path.exists(path)

    @pytest.mark.asyncio
    async def test_removed_on_error(self, image_bytes):
        captured = {}
        with pytest.raises(RuntimeError):
            async with temporary_image_file(image_bytes) as path:
                captured["path"] = path
                raise RuntimeError("boom")

        assert not os.path.exists(captured["path"])


class TestImageDownloader:

    def test_is_remote_ref(self):
        assert is_remote_ref("https://cdn.example.com/a.jpg")
        assert not is_remote_ref("uploads/a.jpg")

    def test_cache_path_is_sanitized(self, tmp_path):
        downloader = ImageDownloader(str(tmp_path))
        assert downloader.cache_path("sku/1 2").name == "sku_1_2.jpg"

    @pytest.mark.asyncio
    async def test_cached_file_skips_download(self, tmp_path, image_bytes):
        """目标文件已存在时不发起下载"""
        downloader = ImageDownloader(str(tmp_path))
        target = downloader.cache_path("sku-1")
        target.write_bytes(image_bytes)

        with patch("core.multimodal.image_utils.aiohttp.ClientSession") as session:
            path = await downloader.fetch("https://cdn.example.com/sku-1.jpg", "sku-1")

        assert path == target
        session.assert_not_called()
