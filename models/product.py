"""
商品数据模型

包含商品目录的业务模型和数据库模型。

主要模型:
- ProductOrm: 商品数据库模型（关键词检索的数据源）
- Rating: 商品评分
- Product: 商品业务模型
"""

from datetime import datetime
from typing import Optional, Self

from pydantic import BaseModel, Field
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .base import Base


class ProductOrm(Base):
    """
    商品数据库模型

    source_id 为外部稳定标识，同时作为向量记录 metadata.product_id 的关联键。
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_id = Column(String(128), nullable=False, unique=True)

    # 基本信息
    name = Column(String(512), nullable=False)
    category = Column(String(255))
    price = Column(Float, nullable=False, default=0.0)
    description = Column(Text)
    specification = Column(Text)
    image = Column(String(1024))
    product_url = Column(String(1024))
    caption = Column(Text)

    # 评分与库存
    rating_rate = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)
    in_stock = Column(Boolean, nullable=False, default=True)

    # 审计字段
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
        CheckConstraint("rating_rate >= 0 AND rating_rate <= 5", name="ck_product_rating_rate"),
        CheckConstraint("rating_count >= 0", name="ck_product_rating_count"),
        Index("idx_product_category", "category"),
        Index("idx_product_created_at", "created_at"),
    )


class Rating(BaseModel):
    """商品评分"""
    rate: float = Field(default=0.0, ge=0, le=5, description="评分（0-5）")
    count: int = Field(default=0, ge=0, description="评分人数")


class Product(BaseModel):
    """
    商品业务模型

    caption 在图片处理完成后异步回填，其余字段在导入时确定。
    """

    source_id: str = Field(description="外部稳定商品标识")
    name: str = Field(description="商品名称")
    category: Optional[str] = Field(default=None, description="商品类目")
    price: float = Field(default=0.0, ge=0, description="价格")
    description: Optional[str] = Field(default=None, description="商品描述")
    specification: Optional[str] = Field(default=None, description="规格参数")
    image: Optional[str] = Field(default=None, description="图片URL或本地路径")
    product_url: Optional[str] = Field(default=None, description="商品链接")
    caption: Optional[str] = Field(default=None, description="LLM生成的图片描述")
    rating: Rating = Field(default_factory=Rating, description="评分")
    in_stock: bool = Field(default=True, description="是否有货")
    created_at: Optional[datetime] = Field(default=None, description="创建时间")

    @classmethod
    def from_orm_model(cls, orm: ProductOrm) -> Self:
        """从数据库模型构建业务模型"""
        return cls(
            source_id=orm.source_id,
            name=orm.name,
            category=orm.category,
            price=orm.price or 0.0,
            description=orm.description,
            specification=orm.specification,
            image=orm.image,
            product_url=orm.product_url,
            caption=orm.caption,
            rating=Rating(rate=orm.rating_rate or 0.0, count=orm.rating_count or 0),
            in_stock=bool(orm.in_stock),
            created_at=orm.created_at,
        )

    def to_orm(self) -> ProductOrm:
        """转换为数据库模型"""
        return ProductOrm(
            source_id=self.source_id,
            name=self.name,
            category=self.category,
            price=self.price,
            description=self.description,
            specification=self.specification,
            image=self.image,
            product_url=self.product_url,
            caption=self.caption,
            rating_rate=self.rating.rate,
            rating_count=self.rating.count,
            in_stock=self.in_stock,
        )

    def embedding_text(self, separator: str = " | ", expanded_name: Optional[str] = None) -> str:
        """
        拼接用于生成文本向量的结构化商品文本

        参数:
            separator: 字段分隔符
            expanded_name: 查询扩展后的商品名称描述

        返回:
            str: 以分隔符连接的非空字段
        """
        parts = [
            self.name,
            expanded_name,
            self.category,
            self.description,
            self.specification,
            self.caption,
        ]
        return separator.join(part.strip() for part in parts if part and part.strip())
