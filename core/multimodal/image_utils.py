"""
图片处理工具

核心功能:
- 请求图片载荷解码与校验（data URL / 纯base64）
- 缩放到固定正方形并编码为JPEG base64
- 临时图片文件的作用域管理
- 远程图片下载到本地缓存
"""

import asyncio
import base64
import binascii
import io
import os
import re
import tempfile
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles
import aiohttp
from PIL import Image, ImageOps

from libs.exceptions import InvalidInputException
from utils import LoggerMixin, get_component_logger

logger = get_component_logger(__name__, "ImageUtils")

_DATA_URL_PATTERN = re.compile(r"^data:image/(jpeg|jpg|png|gif|webp);base64,")
_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")


def is_remote_ref(image_ref: str) -> bool:
    """判断图片引用是否为远程URL"""
    return image_ref.startswith(("http://", "https://"))


def decode_image_payload(payload: str, max_bytes: Optional[int] = None) -> bytes:
    """
    解码请求中的图片载荷

    参数:
        payload: data URL（jpeg/png/gif/webp）或纯base64字符串
        max_bytes: 解码后大小上限，按编码长度估算，在校验和解码之前拒绝

    返回:
        bytes: 图片原始字节

    异常:
        InvalidInputException: 格式不合法或超过大小上限
    """
    if not payload or not payload.strip():
        raise InvalidInputException("图片数据为空")

    payload = payload.strip()
    if payload.startswith("data:"):
        match = _DATA_URL_PATTERN.match(payload)
        if not match:
            raise InvalidInputException("不支持的图片格式，仅支持 jpeg/png/gif/webp")
        payload = payload[match.end():]

    if max_bytes is not None:
        padding = 2 if payload.endswith("==") else 1 if payload.endswith("=") else 0
        estimated = len(payload) * 3 // 4 - padding
        if estimated > max_bytes:
            raise InvalidInputException(f"图片大小约 {estimated} 字节超过上限 {max_bytes} 字节")

    if not _BASE64_PATTERN.match(payload):
        raise InvalidInputException("图片数据不是合法的base64编码")

    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInputException("图片数据不是合法的base64编码")


def _verify_image(data: bytes):
    with Image.open(io.BytesIO(data)) as img:
        img.verify()


async def verify_image_bytes(data: bytes):
    """
    校验图片字节可以被解码

    异常:
        InvalidInputException: 不是可识别的图片
    """
    try:
        await asyncio.to_thread(_verify_image, data)
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise InvalidInputException(f"无法识别的图片: {type(e).__name__}")


def _fit_to_square_jpeg(source: str | bytes, size: int, quality: int) -> bytes:
    """等比缩放到 size×size 以内并居中贴到白色画布上，输出JPEG字节"""
    stream = io.BytesIO(source) if isinstance(source, bytes) else source
    with Image.open(stream) as img:
        # 透明通道铺白底
        if img.mode in ("RGBA", "LA", "P"):
            rgba = img.convert("RGBA")
            background = Image.new("RGB", rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[-1])
            img = background
        elif img.mode != "RGB":
            img = img.convert("RGB")

        fitted = ImageOps.contain(img, (size, size), Image.Resampling.LANCZOS)
        canvas = Image.new("RGB", (size, size), (255, 255, 255))
        canvas.paste(fitted, ((size - fitted.width) // 2, (size - fitted.height) // 2))

        output = io.BytesIO()
        canvas.save(output, "JPEG", quality=quality)
        return output.getvalue()


async def encode_caption_image(source: str | bytes, size: int = 384, quality: int = 85) -> str:
    """
    将图片缩放为固定正方形并编码为base64 JPEG

    参数:
        source: 本地图片路径或图片字节
        size: 正方形边长（像素）
        quality: JPEG质量

    返回:
        str: base64编码（不含data URL前缀）
    """
    jpeg_bytes = await asyncio.to_thread(_fit_to_square_jpeg, source, size, quality)
    return base64.b64encode(jpeg_bytes).decode("utf-8")


@asynccontextmanager
async def temporary_image_file(
    data: bytes,
    suffix: str = ".jpg",
    directory: Optional[str] = None
) -> AsyncIterator[str]:
    """
    把图片字节写入临时文件，退出作用域时无论成功失败都删除

    用法:
        async with temporary_image_file(image_bytes) as path:
            ...
    """
    temp_dir = directory or tempfile.gettempdir()
    path = os.path.join(temp_dir, f"search_{uuid.uuid4().hex}{suffix}")

    try:
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        yield path
    finally:
        try:
            os.remove(path)
            logger.debug(f"已删除临时图片: {path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"临时图片删除失败: {path}, 错误: {e}")


class ImageDownloader(LoggerMixin):
    """
    商品图片下载器

    以商品标识作为缓存键，把远程图片保存到本地存储目录；
    目标文件已存在时直接复用，不重复下载。
    """

    def __init__(self, storage_path: str, timeout: float = 30.0):
        self.storage_path = Path(storage_path)
        self.timeout = timeout

    def cache_path(self, cache_key: str) -> Path:
        """缓存键对应的本地文件路径"""
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", cache_key)
        return self.storage_path / f"{safe_key}.jpg"

    async def fetch(self, url: str, cache_key: str) -> Path:
        """
        获取图片的本地路径，必要时下载

        参数:
            url: 远程图片URL
            cache_key: 缓存键（商品 source_id）

        返回:
            Path: 本地图片路径
        """
        target = self.cache_path(cache_key)
        if target.exists():
            self.logger.debug(f"图片已缓存，跳过下载: {target}")
            return target

        await asyncio.to_thread(self.storage_path.mkdir, parents=True, exist_ok=True)
        partial = target.with_name(f"{target.name}.{uuid.uuid4().hex}.part")

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.get(url) as response:
                    response.raise_for_status()
                    async with aiofiles.open(partial, "wb") as f:
                        async for chunk in response.content.iter_chunked(64 * 1024):
                            await f.write(chunk)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        # 原子替换，避免并发下载写出半个文件
        os.replace(partial, target)
        self.logger.info(f"图片下载完成: {url} -> {target}")
        return target
