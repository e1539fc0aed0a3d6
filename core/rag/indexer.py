"""
商品向量导入

为商品目录中的每个商品生成并写入一条向量记录。
已存在记录的商品直接跳过；导入批次与集合重建在进程内串行执行，
后一批次的存在性检查总能看到前一批次已刷新的记录，保证每个商品只有一条向量记录。
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Sequence

from config.rag_config import rag_config
from core.rag.caption_service import CaptionGenerator
from core.rag.embedding_service import EmbeddingProvider
from core.rag.keyword_store import KeywordStore
from core.rag.query_expander import QueryExpander
from core.rag.vector_index import VectorIndexClient
from models import EmbeddingRecord, Product, VectorMetadata
from utils import get_component_logger, get_current_datetime

logger = get_component_logger(__name__, "ProductIndexer")


@dataclass
class IndexStats:
    total: int = 0
    indexed: int = 0
    skipped: int = 0
    failed: int = 0


class ProductIndexer:
    """商品向量导入器"""

    def __init__(
        self,
        vector_index: VectorIndexClient,
        embedding_provider: EmbeddingProvider,
        caption_generator: CaptionGenerator,
        query_expander: QueryExpander,
        keyword_store: KeywordStore,
        concurrency: int = 4
    ):
        self.vector_index = vector_index
        self.embedding_provider = embedding_provider
        self.caption_generator = caption_generator
        self.query_expander = query_expander
        self.keyword_store = keyword_store
        self.concurrency = concurrency
        self._write_lock = asyncio.Lock()

    async def index_product(self, product: Product) -> bool:
        """
        导入单个商品并立即刷新

        返回:
            bool: 写入了新记录为True，已存在而跳过为False
        """
        async with self._write_lock:
            return await self._index_one(product, flush=True)

    async def _index_one(self, product: Product, flush: bool) -> bool:
        if await self.vector_index.exists(product.source_id):
            logger.debug(f"商品已存在向量记录，跳过: {product.source_id}")
            return False

        expanded: Optional[str] = None
        if self.query_expander.should_expand(product.name):
            expanded = await self.query_expander.expand(product.name)
            if expanded == product.name:
                expanded = None

        caption, image_vector = await self._process_image(product)

        separator = f" {rag_config.FIELD_SEPARATOR} "
        text = product.model_copy(update={"caption": caption}).embedding_text(
            separator=separator,
            expanded_name=expanded
        )
        text_vector = await self.embedding_provider.embed_text(text)

        record = EmbeddingRecord(
            id=self.vector_index.id_generator.next_id(),
            text_vector=text_vector,
            image_vector=image_vector or [0.0] * self.vector_index.dimension,
            metadata=VectorMetadata(
                product_id=product.source_id,
                created_at=get_current_datetime()
            )
        )
        await self.vector_index.insert(record)
        if flush:
            await self.vector_index.flush()

        if caption and caption != product.caption:
            await self.keyword_store.update_caption(product.source_id, caption)

        logger.info(f"商品向量写入完成: {product.source_id}, 含图片: {record.has_image}")
        return True

    async def _process_image(self, product: Product) -> tuple[Optional[str], Optional[list[float]]]:
        """并发生成图片描述和图片向量；失败时分别退化为已有描述和无图片"""
        if not product.image:
            return product.caption, None

        try:
            local_path = await self.caption_generator.resolve_image(product.image, product.source_id)
        except Exception as e:
            logger.warning(f"商品图片获取失败，按无图片处理: {product.source_id}, 错误: {e}")
            return product.caption, None

        caption_result, vector_result = await asyncio.gather(
            self.caption_generator.caption(str(local_path)),
            self.embedding_provider.embed_image(local_path),
            return_exceptions=True
        )

        caption = product.caption
        if isinstance(caption_result, BaseException):
            logger.warning(f"商品图片描述生成失败: {product.source_id}, 错误: {caption_result}")
        else:
            caption = caption_result

        image_vector = None
        if isinstance(vector_result, BaseException):
            logger.warning(f"商品图片向量生成失败: {product.source_id}, 错误: {vector_result}")
        else:
            image_vector = vector_result

        return caption, image_vector

    async def index_products(self, products: Sequence[Product]) -> IndexStats:
        """
        批量导入商品，全部写入后统一刷新一次

        同一批次中重复的 source_id 只导入一次，其余计为跳过；
        并发的导入请求排队执行。

        返回:
            IndexStats: 导入统计
        """
        stats = IndexStats(total=len(products))
        unique = list({product.source_id: product for product in products}.values())
        stats.skipped = len(products) - len(unique)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def index_one(product: Product):
            async with semaphore:
                try:
                    if await self._index_one(product, flush=False):
                        stats.indexed += 1
                    else:
                        stats.skipped += 1
                except Exception as e:
                    stats.failed += 1
                    logger.error(f"商品导入失败: {product.source_id}, 错误: {e}")

        async with self._write_lock:
            await asyncio.gather(*(index_one(product) for product in unique))
            if stats.indexed:
                await self.vector_index.flush()

        logger.info(
            f"批量导入完成: 总数={stats.total}, 写入={stats.indexed}, "
            f"跳过={stats.skipped}, 失败={stats.failed}"
        )
        return stats

    async def reset_collection(self) -> dict:
        """删除并重建向量集合，等待进行中的导入批次结束"""
        async with self._write_lock:
            await self.vector_index.drop()
            return await self.vector_index.ensure_collection()
