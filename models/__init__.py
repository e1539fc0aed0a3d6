"""
模型包

每个文件包含相关业务的所有模型（Pydantic业务模型 + SQLAlchemy数据库模型）。

模型文件:
- product.py: 商品目录相关的所有模型
- search.py: 向量记录与检索结果模型
"""

from .base import Base
from .product import ProductOrm, Product, Rating
from .search import (
    VectorMetadata,
    EmbeddingRecord,
    SearchHit,
    RankedResult,
    SearchOutcome
)

__all__ = [
    "Base",

    # Product
    "ProductOrm",
    "Product",
    "Rating",

    # Search
    "VectorMetadata",
    "EmbeddingRecord",
    "SearchHit",
    "RankedResult",
    "SearchOutcome"
]
