"""
测试公共夹具

提供检索编排测试用的内存替身：关键词存储、向量索引、embedding提供者和图片描述生成器。
"""

import asyncio
import io
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

from config.rag_config import RAGConfig
from libs.exceptions import CaptionUnavailableException, DependencyUnavailableException
from libs.types import VectorField
from models import Product, SearchHit


def make_product(source_id: str, name: str, category: str = "general", **kwargs) -> Product:
    return Product(source_id=source_id, name=name, category=category, **kwargs)


def make_hit(product_id: str, score: float, field: VectorField = VectorField.TEXT) -> SearchHit:
    return SearchHit(product_id=product_id, score=score, search_type=field.search_type)


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (16, 16)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, fmt)
    return buffer.getvalue()


class FakeKeywordStore:
    """按名称/类目子串匹配的内存商品目录"""

    def __init__(self, products: list[Product], delay: float = 0.0, error: Optional[Exception] = None):
        self.products = {product.source_id: product for product in products}
        self.delay = delay
        self.error = error
        self.calls: list[str] = []

    async def _maybe_fail(self, name: str):
        self.calls.append(name)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def search(self, keyword: str, limit: int) -> list[Product]:
        await self._maybe_fail("search")
        keyword = keyword.lower()
        matches = [
            product for product in self.products.values()
            if keyword in product.name.lower() or keyword in (product.category or "").lower()
        ]
        return matches[:limit]

    async def resolve(self, source_ids) -> dict[str, Product]:
        self.calls.append("resolve")
        return {sid: self.products[sid] for sid in source_ids if sid in self.products}

    async def list_recent(self, limit: int) -> list[Product]:
        await self._maybe_fail("list_recent")
        return list(reversed(list(self.products.values())))[:limit]


class FakeVectorIndex:
    """按向量字段返回预置命中的向量索引"""

    def __init__(
        self,
        text_hits: Optional[list[SearchHit]] = None,
        image_hits: Optional[list[SearchHit]] = None,
        reachable: bool = True,
        delay: float = 0.0
    ):
        self.hits = {
            VectorField.TEXT: text_hits or [],
            VectorField.IMAGE: image_hits or [],
        }
        self.reachable = reachable
        self.delay = delay
        self.calls: list[tuple] = []
        self.search_started: list[float] = []

    async def ping(self) -> bool:
        self.calls.append(("ping",))
        return self.reachable

    async def search(self, vector, field, limit, probe_width=None) -> list[SearchHit]:
        self.calls.append(("search", field, limit, probe_width))
        self.search_started.append(asyncio.get_running_loop().time())
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.reachable:
            raise DependencyUnavailableException("milvus", "unreachable")
        return sorted(self.hits[field], key=lambda h: h.score, reverse=True)[:limit]


class FakeEmbeddingProvider:
    def __init__(self, dimension: int = 4):
        self.dimension = dimension
        self.calls: list[str] = []

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append("text")
        return [0.5] * self.dimension

    async def embed_image(self, image) -> list[float]:
        self.calls.append("image")
        if isinstance(image, Path):
            assert image.exists()
        return [0.25] * self.dimension


class FakeCaptionGenerator:
    def __init__(self, caption: Optional[str] = "red shirt", delay: float = 0.0):
        self._caption = caption
        self.delay = delay
        self.seen_paths: list[str] = []

    async def caption(self, image_ref: str, cache_key: Optional[str] = None) -> str:
        self.seen_paths.append(image_ref)
        assert Path(image_ref).exists()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self._caption is None:
            raise CaptionUnavailableException("LLM端点不可用")
        return self._caption


@pytest.fixture
def rag_settings() -> RAGConfig:
    return RAGConfig(
        DEFAULT_LIMIT=10,
        MAX_LIMIT=100,
        SEMANTIC_OVERSAMPLE=2,
        SEARCH_NPROBE=16,
        SEARCH_TIMEOUT=5.0,
        IMAGE_MAX_BYTES=2_000_000,
        IMAGE_SCORE_WEIGHT=0.9,
        FALLBACK_QUERY="product",
    )


@pytest.fixture
def catalog() -> list[Product]:
    return [
        make_product("p1", "Red Shirt", "clothing"),
        make_product("p2", "Blue Shirt", "clothing"),
        make_product("p3", "Leather Bag", "bags"),
        make_product("p4", "Shirt Hanger", "home"),
        make_product("p5", "Running Shoes", "shoes"),
    ]


@pytest.fixture
def image_bytes() -> bytes:
    return make_image_bytes()
