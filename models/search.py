"""
检索数据模型

主要模型:
- VectorMetadata: 向量记录的封闭元数据结构
- EmbeddingRecord: 向量集合中的一行
- SearchHit: 单次向量/关键词检索的命中
- RankedResult: 检索编排器的输出单元
- SearchOutcome: 一次检索请求的完整结果
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from libs.types import MatchType, SearchType
from .product import Product


class VectorMetadata(BaseModel):
    """向量记录元数据，仅允许 product_id 与 created_at 两个字段"""

    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(min_length=1, description="关联商品的 source_id")
    created_at: datetime = Field(description="向量记录创建时间")


class EmbeddingRecord(BaseModel):
    """向量集合记录"""

    id: int = Field(description="主键，int64")
    text_vector: list[float] = Field(description="文本向量")
    image_vector: list[float] = Field(description="图片向量，无图片时为全零向量")
    metadata: VectorMetadata

    @property
    def has_image(self) -> bool:
        """全零图片向量表示无视觉信号"""
        return any(value != 0.0 for value in self.image_vector)


class SearchHit(BaseModel):
    """检索命中，仅在单次检索调用内有效，分数只在同一调用内可比"""

    product_id: str
    score: float
    search_type: SearchType
    created_at: Optional[datetime] = None


class RankedResult(BaseModel):
    """排序后的检索结果"""

    product_id: str
    match_type: MatchType
    score: Optional[float] = None
    position: int = Field(ge=0)
    product: Optional[Product] = None


class SearchOutcome(BaseModel):
    """检索请求结果"""

    results: list[RankedResult] = Field(default_factory=list)
    degraded: bool = Field(default=False, description="是否有检索分支失败或被跳过")
    fallback_used: bool = Field(default=False, description="是否使用了兜底查询或最新商品列表")
    elapsed_ms: float = Field(default=0.0)

    @property
    def count(self) -> int:
        return len(self.results)
