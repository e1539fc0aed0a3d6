"""
API请求与响应数据模型
"""

from .search_schema import (
    ImageSearchRequest,
    ProductItem,
    SearchResponse,
    IndexStatsResponse,
    IndexRequest,
    IndexResponse,
)

__all__ = [
    "ImageSearchRequest",
    "ProductItem",
    "SearchResponse",
    "IndexStatsResponse",
    "IndexRequest",
    "IndexResponse",
]
