"""
图片描述生成服务

为商品图片生成一句话描述，作为视觉内容的文本代理参与检索。

核心功能:
- 远程图片按商品标识缓存到本地，已存在则跳过下载
- 图片缩放为固定正方形后以base64发送给LLM
- 单次请求，不做重试，失败抛出 CaptionUnavailableException
"""

import re
from pathlib import Path
from typing import Optional

from config import app_config
from config.rag_config import rag_config
from core.multimodal import ImageDownloader, encode_caption_image, is_remote_ref
from infra.runtimes import LLMClient, LLMRequest
from libs.exceptions import CaptionUnavailableException, InvalidInputException
from utils import get_component_logger

logger = get_component_logger(__name__, "CaptionGenerator")

# 中文句末标点直接断句；英文句末标点后有空白才断句，"3.5" 不断开
_SENTENCE_END = re.compile(r"(?<=[。！？])|(?<=[.!?])\s+")

CAPTION_PROMPT = (
    "Generate a detailed caption in a single sentence for a product in this image, "
    "describing its type, color, material, and any notable features. "
    "Reply with the sentence only, without any preamble."
)


class CaptionGenerator:
    """商品图片描述生成器"""

    def __init__(
        self,
        llm_client: LLMClient,
        downloader: Optional[ImageDownloader] = None,
        image_size: Optional[int] = None
    ):
        self.llm_client = llm_client
        self.downloader = downloader or ImageDownloader(
            rag_config.IMAGE_STORAGE_PATH,
            timeout=rag_config.IMAGE_DOWNLOAD_TIMEOUT
        )
        self.image_size = image_size or rag_config.CAPTION_IMAGE_SIZE

    async def resolve_image(self, image_ref: str, cache_key: Optional[str] = None) -> Path:
        """
        把图片引用解析为本地文件路径

        参数:
            image_ref: 本地路径或远程URL
            cache_key: 远程图片的缓存键，通常为商品 source_id

        返回:
            Path: 本地图片路径
        """
        if is_remote_ref(image_ref):
            if not cache_key:
                raise InvalidInputException("远程图片需要提供缓存键")
            return await self.downloader.fetch(image_ref, cache_key)

        path = Path(image_ref)
        if not path.is_absolute() and not path.exists():
            path = self.downloader.storage_path / path
        return path

    async def caption(self, image_ref: str, cache_key: Optional[str] = None) -> str:
        """
        生成图片的一句话描述

        参数:
            image_ref: 本地路径或远程URL
            cache_key: 远程图片缓存键

        返回:
            str: 描述句子

        异常:
            CaptionUnavailableException: 图片不可读、LLM不可达或回复不合法
        """
        try:
            local_path = await self.resolve_image(image_ref, cache_key)
            image_base64 = await encode_caption_image(
                str(local_path),
                size=self.image_size,
                quality=rag_config.CAPTION_JPEG_QUALITY
            )
        except InvalidInputException:
            raise
        except Exception as e:
            logger.warning(f"图片准备失败: {image_ref}, 错误: {e}")
            raise CaptionUnavailableException(f"图片不可用: {type(e).__name__}")

        try:
            reply = await self.llm_client.completions(LLMRequest(
                prompt=CAPTION_PROMPT,
                image_base64=image_base64,
                temperature=app_config.LLM_TEMPERATURE,
                max_tokens=app_config.LLM_MAX_TOKENS
            ))
        except Exception as e:
            logger.warning(f"图片描述生成失败: {e}")
            raise CaptionUnavailableException("LLM端点不可用")

        sentence = _first_sentence(reply.text)
        if not sentence:
            raise CaptionUnavailableException("LLM返回空描述")

        logger.debug(f"图片描述生成完成 ({reply.provider}): {sentence[:80]}")
        return sentence


def _first_sentence(text: str) -> str:
    """去掉引号和多余行，只保留第一句"""
    for line in text.strip().splitlines():
        line = line.strip().strip('"').strip()
        if line:
            return _SENTENCE_END.split(line, maxsplit=1)[0].strip().strip('"').strip()
    return ""
