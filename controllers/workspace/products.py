"""
商品检索API端点

主要端点:
- GET /v1/products/search - 文本检索
- POST /v1/products/image-search - 以图搜图
- GET /v1/products/index/stats - 向量集合统计
- POST /v1/products/index - 导入商品向量
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from config.rag_config import rag_config
from core.multimodal import decode_image_payload
from core.rag.indexer import ProductIndexer
from core.rag.keyword_store import KeywordStore
from core.rag.retrieval_service import RetrievalService
from core.rag.vector_index import VectorIndexClient
from schemas import (
    ImageSearchRequest, IndexRequest, IndexResponse, IndexStatsResponse, SearchResponse
)
from utils import get_component_logger
from ..dependencies import get_indexer, get_keyword_store, get_retrieval_service, get_vector_index

logger = get_component_logger(__name__)


router = APIRouter()


@router.get("/search", response_model=SearchResponse)
async def search_products(
    keyword: Optional[str] = Query(None, description="查询文本，为空时返回最新商品"),
    limit: Optional[int] = Query(None, ge=1, description="最大返回数量"),
    service: RetrievalService = Depends(get_retrieval_service)
) -> SearchResponse:
    """
    文本检索商品

    语义命中优先，关键词命中补充；向量索引不可用时降级为关键词检索。
    """
    logger.info(f"文本检索请求: keyword={keyword!r}, limit={limit}")
    outcome = await service.search_by_text(keyword, limit)
    return SearchResponse.from_outcome(outcome)


@router.post("/image-search", response_model=SearchResponse)
async def search_products_by_image(
    request: ImageSearchRequest,
    service: RetrievalService = Depends(get_retrieval_service)
) -> SearchResponse:
    """
    以图搜图

    视觉相似度命中优先，其次是图片描述的语义与关键词命中。
    """
    image_bytes = decode_image_payload(request.image, max_bytes=rag_config.IMAGE_MAX_BYTES)
    logger.info(f"以图搜图请求: size={len(image_bytes)}B, limit={request.limit}")
    outcome = await service.search_by_image(image_bytes, request.limit)
    return SearchResponse.from_outcome(outcome)


@router.get("/index/stats", response_model=IndexStatsResponse)
async def index_stats(
    vector_index: VectorIndexClient = Depends(get_vector_index)
) -> IndexStatsResponse:
    """向量集合状态与行数"""
    stats = await vector_index.stats()
    return IndexStatsResponse(**stats)


@router.post("/index", response_model=IndexResponse)
async def index_products(
    request: IndexRequest,
    indexer: ProductIndexer = Depends(get_indexer),
    keyword_store: KeywordStore = Depends(get_keyword_store)
) -> IndexResponse:
    """
    为商品目录中的商品生成向量记录

    已有向量记录的商品会被跳过；reset 为真时先重建集合。
    """
    source_ids = list(dict.fromkeys(request.source_ids))
    products = await keyword_store.resolve(source_ids)
    missing = [source_id for source_id in source_ids if source_id not in products]
    if missing:
        logger.warning(f"导入请求中有 {len(missing)} 个商品不存在")

    if request.reset:
        await indexer.reset_collection()

    stats = await indexer.index_products([products[sid] for sid in source_ids if sid in products])
    return IndexResponse(
        total=stats.total,
        indexed=stats.indexed,
        skipped=stats.skipped,
        failed=stats.failed,
        missing=missing
    )
