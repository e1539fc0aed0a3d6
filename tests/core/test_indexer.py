"""
商品向量导入测试
"""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.rag.indexer import ProductIndexer
from core.rag.vector_index import RecordIdGenerator
from libs.exceptions import CaptionUnavailableException, InvalidInputException
from tests.conftest import make_product

DIMENSION = 4


@pytest.fixture
def vector_index():
    index = MagicMock()
    index.dimension = DIMENSION
    index.id_generator = RecordIdGenerator()
    index.exists = AsyncMock(return_value=False)
    index.insert = AsyncMock(side_effect=lambda record: record.id)
    index.flush = AsyncMock()
    index.drop = AsyncMock(return_value=True)
    index.ensure_collection = AsyncMock(return_value={"row_count": 0})
    return index


@pytest.fixture
def embedding():
    provider = MagicMock()
    provider.embed_text = AsyncMock(return_value=[0.5] * DIMENSION)
    provider.embed_image = AsyncMock(return_value=[0.25] * DIMENSION)
    return provider


@pytest.fixture
def caption_generator():
    generator = MagicMock()
    generator.resolve_image = AsyncMock(return_value=Path("/tmp/sku.jpg"))
    generator.caption = AsyncMock(return_value="a red cotton shirt")
    return generator


@pytest.fixture
def expander():
    query_expander = MagicMock()
    query_expander.should_expand = MagicMock(return_value=True)
    query_expander.expand = AsyncMock(return_value="a classic red shirt for daily wear")
    return query_expander


@pytest.fixture
def keyword_store():
    store = MagicMock()
    store.update_caption = AsyncMock(return_value=True)
    return store


@pytest.fixture
def indexer(vector_index, embedding, caption_generator, expander, keyword_store):
    return ProductIndexer(vector_index, embedding, caption_generator, expander, keyword_store)


class TestProductIndexer:
    """测试商品导入"""

    @pytest.mark.asyncio
    async def test_existing_record_skipped(self, indexer, vector_index, embedding):
        """已有向量记录的商品不会重复写入"""
        vector_index.exists.return_value = True

        assert await indexer.index_product(make_product("p1", "Red Shirt")) is False
        vector_index.insert.assert_not_awaited()
        embedding.embed_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_product_without_image(self, indexer, vector_index, embedding, caption_generator, keyword_store):
        """无图片商品写入全零图片向量"""
        product = make_product("p1", "Red Shirt", "clothing", description="Cotton shirt")

        assert await indexer.index_product(product) is True

        text = embedding.embed_text.call_args.args[0]
        assert text == "Red Shirt | a classic red shirt for daily wear | clothing | Cotton shirt"
        record = vector_index.insert.call_args.args[0]
        assert record.image_vector == [0.0] * DIMENSION
        assert record.has_image is False
        assert record.metadata.product_id == "p1"
        vector_index.flush.assert_awaited_once()
        caption_generator.caption.assert_not_awaited()
        keyword_store.update_caption.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_product_with_image(self, indexer, vector_index, embedding, keyword_store):
        """图片描述参与文本向量，并回填到商品目录"""
        product = make_product("p2", "Shirt", image="https://cdn.example.com/p2.jpg")

        await indexer.index_product(product)

        text = embedding.embed_text.call_args.args[0]
        assert text.endswith("a red cotton shirt")
        record = vector_index.insert.call_args.args[0]
        assert record.image_vector == [0.25] * DIMENSION
        assert record.has_image is True
        keyword_store.update_caption.assert_awaited_once_with("p2", "a red cotton shirt")

    @pytest.mark.asyncio
    async def test_caption_failure_keeps_image_vector(self, indexer, vector_index, caption_generator, keyword_store):
        caption_generator.caption.side_effect = CaptionUnavailableException("timeout")
        product = make_product("p3", "Bag", image="https://cdn.example.com/p3.jpg")

        assert await indexer.index_product(product) is True

        assert vector_index.insert.call_args.args[0].has_image is True
        keyword_store.update_caption.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_batch_stats_and_single_flush(self, indexer, vector_index, embedding):
        """批量导入统计写入/跳过/失败数量，并只刷新一次"""
        vector_index.exists.side_effect = lambda source_id: source_id == "old"

        async def embed_text(text):
            if text.startswith("Broken"):
                raise InvalidInputException("bad text")
            return [0.5] * DIMENSION

        embedding.embed_text.side_effect = embed_text
        products = [
            make_product("old", "Old Item"),
            make_product("new", "New Item"),
            make_product("bad", "Broken Item"),
        ]

        stats = await indexer.index_products(products)

        assert (stats.total, stats.indexed, stats.skipped, stats.failed) == (3, 1, 1, 1)
        vector_index.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reset_collection(self, indexer, vector_index):
        await indexer.reset_collection()

        vector_index.drop.assert_awaited_once()
        vector_index.ensure_collection.assert_awaited_once()


class TestConcurrentIndexing:
    """测试并发导入不产生重复记录"""

    @pytest.fixture
    def flushing_index(self, vector_index):
        """写入后必须刷新才对存在性检查可见的向量索引"""
        pending: set[str] = set()
        visible: set[str] = set()

        async def exists(source_id):
            return source_id in visible

        async def insert(record):
            await asyncio.sleep(0.05)
            pending.add(record.metadata.product_id)
            return record.id

        async def flush():
            visible.update(pending)
            pending.clear()

        vector_index.exists.side_effect = exists
        vector_index.insert.side_effect = insert
        vector_index.flush.side_effect = flush
        return vector_index

    @pytest.mark.asyncio
    async def test_concurrent_requests_write_one_record(self, indexer, flushing_index):
        """两个并发导入请求针对同一商品时只写入一条记录"""
        product = make_product("p1", "Red Shirt")

        first, second = await asyncio.gather(
            indexer.index_products([product]),
            indexer.index_products([product]),
        )

        flushing_index.insert.assert_awaited_once()
        assert sorted([first.indexed, second.indexed]) == [0, 1]
        assert sorted([first.skipped, second.skipped]) == [0, 1]

    @pytest.mark.asyncio
    async def test_duplicate_ids_in_one_batch(self, indexer, flushing_index):
        product = make_product("p1", "Red Shirt")

        stats = await indexer.index_products([product, product])

        flushing_index.insert.assert_awaited_once()
        assert (stats.total, stats.indexed, stats.skipped) == (2, 1, 1)
