"""
商品检索相关数据模型

核心模型:
- ImageSearchRequest: 以图搜图请求
- ProductItem: 单条检索结果
- SearchResponse: 检索响应
- IndexStatsResponse: 向量集合统计
- IndexRequest / IndexResponse: 商品向量导入
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from libs.types import CollectionState, MatchType
from models import RankedResult, SearchOutcome


class ImageSearchRequest(BaseModel):
    """
    以图搜图请求模型
    """

    image: str = Field(description="图片数据，data URL（jpeg/png/gif/webp）或纯base64")
    limit: Optional[int] = Field(None, ge=1, description="最大返回数量")

    @field_validator("image")
    def validate_image(cls, v):
        """验证图片数据非空"""
        if not v or not v.strip():
            raise ValueError("图片数据不能为空")
        return v.strip()


class ProductItem(BaseModel):
    """检索结果条目"""

    product_id: str = Field(description="商品 source_id")
    match_type: MatchType = Field(description="匹配来源")
    score: Optional[float] = Field(None, description="同一检索调用内的相似度分数")
    position: int = Field(description="结果位置")
    name: Optional[str] = Field(None, description="商品名称")
    category: Optional[str] = Field(None, description="商品类目")
    price: Optional[float] = Field(None, description="价格")
    description: Optional[str] = Field(None, description="商品描述")
    image: Optional[str] = Field(None, description="图片URL")
    product_url: Optional[str] = Field(None, description="商品链接")
    caption: Optional[str] = Field(None, description="图片描述")
    rating_rate: Optional[float] = Field(None, description="评分")
    rating_count: Optional[int] = Field(None, description="评分人数")
    in_stock: Optional[bool] = Field(None, description="是否有货")

    @classmethod
    def from_result(cls, result: RankedResult) -> "ProductItem":
        item = cls(
            product_id=result.product_id,
            match_type=result.match_type,
            score=result.score,
            position=result.position,
        )
        product = result.product
        if product is not None:
            item.name = product.name
            item.category = product.category
            item.price = product.price
            item.description = product.description
            item.image = product.image
            item.product_url = product.product_url
            item.caption = product.caption
            item.rating_rate = product.rating.rate
            item.rating_count = product.rating.count
            item.in_stock = product.in_stock
        return item


class SearchResponse(BaseModel):
    """检索响应，无结果时 count 为 0 且 success 为 True"""

    success: bool = Field(default=True)
    count: int = Field(description="结果数量")
    data: list[ProductItem] = Field(default_factory=list)
    degraded: bool = Field(default=False, description="是否有检索分支失败或被跳过")
    fallback_used: bool = Field(default=False, description="是否使用了兜底结果")
    elapsed_ms: float = Field(default=0.0, description="处理耗时（毫秒）")

    @classmethod
    def from_outcome(cls, outcome: SearchOutcome) -> "SearchResponse":
        return cls(
            count=outcome.count,
            data=[ProductItem.from_result(result) for result in outcome.results],
            degraded=outcome.degraded,
            fallback_used=outcome.fallback_used,
            elapsed_ms=round(outcome.elapsed_ms, 2),
        )


class IndexStatsResponse(BaseModel):
    """向量集合统计响应"""

    collection_name: str
    state: CollectionState
    row_count: int = 0


class IndexRequest(BaseModel):
    """
    商品向量导入请求模型
    """

    source_ids: list[str] = Field(min_length=1, max_length=1000, description="需要导入的商品 source_id")
    reset: bool = Field(default=False, description="导入前是否删除并重建向量集合")


class IndexResponse(BaseModel):
    """商品向量导入响应"""

    success: bool = Field(default=True)
    total: int
    indexed: int
    skipped: int
    failed: int
    missing: list[str] = Field(default_factory=list, description="商品目录中不存在的 source_id")
