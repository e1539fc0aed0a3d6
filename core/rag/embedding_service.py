"""
Embedding生成服务

该模块提供文本和图片的向量生成接口。
模型为进程级共享实例，加载完成后可被并发请求直接使用。

核心功能:
- 模型加载与维度校验
- 文本embedding生成（去除首尾空白后不能为空）
- 图片embedding生成（路径、字节或PIL图片）
- L2归一化输出
"""

import asyncio
import io
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image
from sentence_transformers import SentenceTransformer

from config.rag_config import rag_config
from libs.exceptions import InvalidInputException, ModelNotReadyException
from utils import get_component_logger

logger = get_component_logger(__name__, "EmbeddingProvider")

ImageInput = Path | bytes | Image.Image


class EmbeddingProvider:
    """
    Embedding提供者

    文本和图片模型可以分别配置；两者名称相同时共享同一个模型实例。
    推理在线程池中执行，不阻塞事件循环。无内部重试，由调用方决定。
    """

    def __init__(
        self,
        text_model_name: Optional[str] = None,
        image_model_name: Optional[str] = None,
        dimension: Optional[int] = None,
        device: Optional[str] = None
    ):
        self.text_model_name = text_model_name or rag_config.EMBEDDING_TEXT_MODEL
        self.image_model_name = image_model_name or rag_config.EMBEDDING_IMAGE_MODEL
        self.dimension = dimension or rag_config.EMBEDDING_DIMENSION
        self.device = device or rag_config.EMBEDDING_DEVICE

        self._text_model: Optional[SentenceTransformer] = None
        self._image_model: Optional[SentenceTransformer] = None
        self._load_lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._text_model is not None and self._image_model is not None

    async def load(self):
        """
        加载模型并校验输出维度

        重复调用为空操作。

        异常:
            ValueError: 模型输出维度与配置不一致
        """
        async with self._load_lock:
            if self.is_ready:
                return

            logger.info(f"加载embedding模型: text={self.text_model_name}, image={self.image_model_name}")
            text_model = await asyncio.to_thread(SentenceTransformer, self.text_model_name, device=self.device)
            if self.image_model_name == self.text_model_name:
                image_model = text_model
            else:
                image_model = await asyncio.to_thread(SentenceTransformer, self.image_model_name, device=self.device)

            # 用探针输入确认两个模型的输出维度一致
            text_dim = len(await asyncio.to_thread(self._encode, text_model, "dimension probe"))
            probe_image = Image.new("RGB", (32, 32), (255, 255, 255))
            image_dim = len(await asyncio.to_thread(self._encode, image_model, probe_image))
            if text_dim != self.dimension or image_dim != self.dimension:
                raise ValueError(
                    f"embedding维度不一致: text={text_dim}, image={image_dim}, 期望={self.dimension}"
                )

            self._text_model = text_model
            self._image_model = image_model
            logger.info(f"embedding模型加载完成，维度: {self.dimension}")

    @staticmethod
    def _encode(model: SentenceTransformer, payload) -> list[float]:
        vector = model.encode(payload, convert_to_numpy=True, normalize_embeddings=True)
        vector = np.asarray(vector, dtype=np.float32)
        norm = float(np.linalg.norm(vector))
        if norm > 0:
            vector = vector / norm
        return vector.tolist()

    async def embed_text(self, text: str) -> list[float]:
        """
        生成文本embedding

        参数:
            text: 输入文本

        返回:
            list[float]: L2归一化后的向量
        """
        if self._text_model is None:
            raise ModelNotReadyException(self.text_model_name)
        if not isinstance(text, str) or not text.strip():
            raise InvalidInputException("文本不能为空")

        return await asyncio.to_thread(self._encode, self._text_model, text.strip())

    async def embed_image(self, image: ImageInput) -> list[float]:
        """
        生成图片embedding

        参数:
            image: 图片路径、图片字节或PIL图片

        返回:
            list[float]: L2归一化后的向量
        """
        if self._image_model is None:
            raise ModelNotReadyException(self.image_model_name)

        def encode_sync() -> list[float]:
            try:
                source = io.BytesIO(image) if isinstance(image, bytes) else image
                with (Image.open(source) if not isinstance(image, Image.Image) else nullcontext(image)) as img:
                    return self._encode(self._image_model, img.convert("RGB"))
            except (OSError, Image.DecompressionBombError) as e:
                raise InvalidInputException(f"无法解析图片: {type(e).__name__}")

        return await asyncio.to_thread(encode_sync)

    async def embed(self, payload: str | ImageInput) -> list[float]:
        """字符串按文本处理，Path/bytes/PIL图片按图片处理"""
        if isinstance(payload, str):
            return await self.embed_text(payload)
        return await self.embed_image(payload)


# 全局embedding提供者实例
embedding_provider = EmbeddingProvider()
